"""Double-entry ledger: balanced journal entries, default accounts, trial balance."""

import logging
from datetime import date

from finance.exceptions import LedgerError
from finance.money import ZERO, quantize
from finance.repositories import AccountRepository, JournalRepository

logger = logging.getLogger('practicehub.finance.ledger')

BANK = '1100'
CASH = '1110'
ACCOUNTS_RECEIVABLE = '1200'
TAX_LIABILITY = '2200'
SERVICE_REVENUE = '4000'

DEFAULT_ACCOUNTS = (
    (BANK, 'Bank', 'asset'),
    (CASH, 'Cash', 'asset'),
    (ACCOUNTS_RECEIVABLE, 'Trade Debtors', 'asset'),
    (TAX_LIABILITY, 'Tax Liability', 'liability'),
    (SERVICE_REVENUE, 'Service Revenue', 'revenue'),
)

ENTRY_TYPES = ('INV', 'INVAP', 'PMT', 'JV')


def debit(account_id, amount, description=None):
    return {'account_id': account_id, 'debit_amount': amount, 'credit_amount': ZERO,
            'description': description}


def credit(account_id, amount, description=None):
    return {'account_id': account_id, 'debit_amount': ZERO, 'credit_amount': amount,
            'description': description}


def build_entry(lines):
    """Validate and normalise entry lines.

    Zero lines are dropped. Raises LedgerError when nothing is left, when a
    line is both debit and credit or negative, or when debits != credits.
    """
    normalised = []
    for line in lines:
        dr = quantize(line.get('debit_amount') or 0)
        cr = quantize(line.get('credit_amount') or 0)
        if dr < 0 or cr < 0:
            raise LedgerError('Journal amounts must not be negative')
        if dr and cr:
            raise LedgerError('A journal line is either a debit or a credit')
        if not dr and not cr:
            continue
        if not line.get('account_id'):
            raise LedgerError('Every journal line needs an account')
        normalised.append(dict(line, debit_amount=dr, credit_amount=cr))

    if not normalised:
        raise LedgerError('Journal entry has no lines')
    total_debit = sum((l['debit_amount'] for l in normalised), ZERO)
    total_credit = sum((l['credit_amount'] for l in normalised), ZERO)
    if total_debit != total_credit:
        raise LedgerError(f'Journal entry is unbalanced: debit {total_debit} != credit {total_credit}')
    return normalised


class LedgerService:

    def __init__(self):
        self._account_repo = AccountRepository()
        self._journal_repo = JournalRepository()

    def post_entry(self, tenant_id, entry_type, lines, entry_date=None, reference=None,
                   description=None, source_document=None, source_document_id=None, created_by=None):
        """Validate and post an entry. Returns the journal entry id."""
        if entry_type not in ENTRY_TYPES:
            raise LedgerError(f'Unknown entry type: {entry_type}')
        normalised = build_entry(lines)
        entry_id = self._journal_repo.create_entry(tenant_id, {
            'entry_date': entry_date or date.today(),
            'reference': reference,
            'entry_type': entry_type,
            'description': description,
            'source_document': source_document,
            'source_document_id': source_document_id,
        }, normalised, created_by)
        logger.info(f'Posted {entry_type} entry {entry_id} ({reference}) for tenant {tenant_id}')
        return entry_id

    def post_manual_entry(self, tenant_id, data, created_by=None):
        """Post a JV entry from a request body.

        Lines name their account by `account_id` or `account_code`; both are
        looked up within the tenant. Raises LedgerError for unknown accounts,
        a bad entry_date or an unbalanced entry.
        """
        raw_lines = data.get('lines')
        if not isinstance(raw_lines, list) or not raw_lines:
            raise LedgerError('lines must be a non-empty list')

        lines = []
        for idx, line in enumerate(raw_lines, 1):
            if not isinstance(line, dict):
                raise LedgerError(f'Line {idx}: expected an object')
            account = self._resolve_account(tenant_id, line)
            if not account:
                raise LedgerError(f'Line {idx}: unknown account')
            lines.append({
                'account_id': account['id'],
                'debit_amount': line.get('debit_amount'),
                'credit_amount': line.get('credit_amount'),
                'description': line.get('description'),
            })

        entry_date = data.get('entry_date')
        if isinstance(entry_date, str):
            try:
                entry_date = date.fromisoformat(entry_date[:10])
            except ValueError:
                raise LedgerError(f'entry_date is not a date: {entry_date!r}')

        return self.post_entry(
            tenant_id, 'JV', lines, entry_date=entry_date,
            reference=data.get('reference'), description=data.get('description'),
            source_document='manual', created_by=created_by)

    def _resolve_account(self, tenant_id, line):
        if line.get('account_id'):
            return self._account_repo.get(tenant_id, line['account_id'])
        if line.get('account_code'):
            return self._account_repo.get_by_code(tenant_id, str(line['account_code']))
        return None

    def seed_default_accounts(self, tenant_id):
        """Create the standard accounts that are missing. Returns the codes created."""
        created = []
        for code, name, account_type in DEFAULT_ACCOUNTS:
            if self._account_repo.get_by_code(tenant_id, code):
                continue
            self._account_repo.create(tenant_id, code, name, account_type)
            created.append(code)
        if created:
            logger.info(f"Seeded accounts {', '.join(created)} for tenant {tenant_id}")
        return created

    def trial_balance(self, tenant_id):
        """Per-account debit/credit totals plus net, and the grand totals."""
        rows = self._journal_repo.trial_balance(tenant_id)
        accounts = []
        total_debit = total_credit = ZERO
        for row in rows:
            dr = quantize(row['total_debit'])
            cr = quantize(row['total_credit'])
            total_debit += dr
            total_credit += cr
            accounts.append(dict(row, total_debit=dr, total_credit=cr, net=dr - cr))
        return {
            'accounts': accounts,
            'total_debit': total_debit,
            'total_credit': total_credit,
            'is_balanced': total_debit == total_credit,
        }

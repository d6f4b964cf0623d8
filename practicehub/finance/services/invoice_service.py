"""
Invoice Service - invoice lifecycle and its ledger postings.

Revenue is recognised once, when an invoice leaves draft:
  - draft -> approved posts an INVAP entry after validating the accounts
  - draft -> sent, or an invoice created as non-draft, posts an INV entry
    when the default accounts exist
Both entries are Dr receivable (total) / Cr revenue (total - tax) / Cr tax.
A failed posting is logged; the status change still stands.
"""

import logging
from datetime import date, timedelta

from clients.repositories import ClientRepository, EntityRepository
from core.services.base import UserContext
from core.tenants.repositories import TenantSettingsRepository
from finance import money
from finance.exceptions import (
    DuplicateInvoiceNumberError, InvalidTransitionError, InvoiceError,
    InvoiceNotFoundError, MissingAccountsError,
)
from finance.repositories import AccountRepository, InvoiceRepository, JournalRepository
from finance.services import ledger_service
from finance.services.ledger_service import LedgerService, credit, debit
from workflows.engine import emit

logger = logging.getLogger('practicehub.finance.invoice_service')

STATUSES = ('draft', 'approved', 'sent', 'paid', 'partially_paid', 'overdue', 'canceled', 'void')

TRANSITIONS = {
    'draft': {'approved', 'sent', 'canceled', 'void'},
    'sent': {'approved', 'paid', 'partially_paid', 'overdue', 'canceled', 'void'},
    'approved': {'paid', 'partially_paid', 'overdue', 'canceled', 'void'},
    'partially_paid': {'paid', 'overdue', 'void'},
    'overdue': {'paid', 'partially_paid', 'void'},
    'paid': {'void'},
    'canceled': {'draft'},
    'void': set(),
}

INITIAL_STATUSES = ('draft', 'sent')
CLIENT_ACCOUNT_PREFIX = '1210'


def can_transition(from_status, to_status):
    return to_status in TRANSITIONS.get(from_status, set())


def _as_date(value, field):
    if value in (None, ''):
        return None
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError:
        raise ValueError(f'{field} must be a date (YYYY-MM-DD)')


def compute_lines(line_items):
    """Validate raw line items and attach their computed amounts."""
    lines = []
    for idx, item in enumerate(line_items):
        description = (item.get('description') or '').strip()
        if not description:
            raise ValueError(f'Line {idx + 1}: description is required')
        amounts = money.line_amounts(
            item.get('quantity', 1), item.get('unit_price', 0),
            item.get('tax_rate', 0), item.get('discount_rate', 0))
        lines.append({
            'description': description,
            'quantity': money.to_decimal(item.get('quantity', 1), 'quantity'),
            'unit_price': money.quantize(item.get('unit_price', 0)),
            'tax_rate': money.to_decimal(item.get('tax_rate', 0), 'tax_rate'),
            'discount_rate': money.to_decimal(item.get('discount_rate', 0), 'discount_rate'),
            'task_id': item.get('task_id') or None,
            'sort_order': item.get('sort_order', idx),
            **amounts,
        })
    return lines


class InvoiceService:

    def __init__(self):
        self._invoice_repo = InvoiceRepository()
        self._account_repo = AccountRepository()
        self._journal_repo = JournalRepository()
        self._client_repo = ClientRepository()
        self._entity_repo = EntityRepository()
        self._settings_repo = TenantSettingsRepository()
        self._ledger = LedgerService()

    # ============== Lookups ==============

    def get_invoice(self, tenant_id, invoice_id):
        invoice = self._invoice_repo.get(tenant_id, invoice_id)
        if not invoice:
            raise InvoiceNotFoundError(invoice_id)
        return invoice

    def next_invoice_number(self, tenant_id, issue_date):
        """<prefix>-<YYYY>-<seq:05d>, seq = invoices this year + 1, bumped past collisions."""
        prefix = self._settings_repo.get_setting(tenant_id, 'invoice_prefix', 'INV')
        seq = self._invoice_repo.count_for_year(tenant_id, issue_date.year) + 1
        while True:
            number = f'{prefix}-{issue_date.year}-{seq:05d}'
            if not self._invoice_repo.number_exists(tenant_id, number):
                return number
            seq += 1

    # ============== Create & Update ==============

    def _prepare(self, tenant_id, data, existing=None):
        """Build (header, lines) from a request body, filling defaults."""
        line_items = data.get('line_items')
        if not line_items and data.get('total_amount') not in (None, ''):
            line_items = [{'description': data.get('description') or 'Professional services',
                           'quantity': 1, 'unit_price': data['total_amount']}]
        if not line_items:
            raise InvoiceError('An invoice needs at least one line item or a total amount')
        lines = compute_lines(line_items)
        totals = money.invoice_totals(lines, existing.get('amount_paid', 0) if existing else 0)

        issue_date = _as_date(data.get('issue_date'), 'issue_date') \
            or (existing and _as_date(existing.get('issue_date'), 'issue_date')) or date.today()
        due_date = _as_date(data.get('due_date'), 'due_date')
        if not due_date:
            due_days = self._settings_repo.get_int_setting(tenant_id, 'invoice_due_days', 30)
            due_date = issue_date + timedelta(days=due_days)
        if due_date < issue_date:
            raise ValueError('due_date cannot be before issue_date')

        header = {
            'client_id': data.get('client_id') or (existing or {}).get('client_id'),
            'entity_id': data.get('entity_id') or None,
            'task_id': data.get('task_id') or None,
            'issue_date': issue_date,
            'due_date': due_date,
            'currency_code': data.get('currency_code') or data.get('currency')
                or (existing or {}).get('currency_code')
                or self._settings_repo.get_setting(tenant_id, 'default_currency', 'USD'),
            'notes': data.get('notes'),
            'terms_and_conditions': data.get('terms_and_conditions'),
            **totals,
        }
        return header, lines

    def create_invoice(self, data, user: UserContext):
        """Create an invoice with its lines. Returns the invoice dict (with `lines`)."""
        tenant_id = user.tenant_id
        if not data.get('client_id'):
            raise InvoiceError('client_id is required')
        if not self._client_repo.get(tenant_id, data['client_id']):
            raise InvoiceError(f"Client {data['client_id']} not found")

        status = data.get('status') or 'draft'
        if status not in INITIAL_STATUSES:
            raise InvoiceError(f"New invoices must be {' or '.join(INITIAL_STATUSES)}")

        header, lines = self._prepare(tenant_id, data)
        number = (data.get('invoice_number') or '').strip()
        if number:
            if self._invoice_repo.number_exists(tenant_id, number):
                raise DuplicateInvoiceNumberError(number)
        else:
            number = self.next_invoice_number(tenant_id, header['issue_date'])
        header.update(invoice_number=number, status=status)

        try:
            invoice_id = self._invoice_repo.create(tenant_id, header, lines, user.user_id)
        except ValueError:
            raise DuplicateInvoiceNumberError(number)

        invoice = self._invoice_repo.get(tenant_id, invoice_id)
        invoice['lines'] = self._invoice_repo.get_lines(tenant_id, invoice_id)
        logger.info(f'Invoice {number} created for tenant {tenant_id}: total {header["total_amount"]}')

        if status != 'draft':
            self._post_invoice_entry(invoice, 'INV', user)
        emit('finance', 'invoice_created', {'invoice': invoice}, tenant_id, user.user_id)
        return invoice

    def update_invoice(self, invoice_id, data, user: UserContext):
        """Edit a draft invoice; totals are recomputed from the lines."""
        invoice = self.get_invoice(user.tenant_id, invoice_id)
        if invoice['status'] != 'draft':
            raise InvoiceError('Only draft invoices can be edited')

        merged = dict(data)
        if 'line_items' not in merged and 'total_amount' not in merged:
            merged['line_items'] = [dict(l) for l in self._invoice_repo.get_lines(user.tenant_id, invoice_id)]
        header, lines = self._prepare(user.tenant_id, merged, existing=invoice)
        for key in ('entity_id', 'task_id', 'notes', 'terms_and_conditions'):
            if key not in data:
                header[key] = invoice.get(key)

        number = (data.get('invoice_number') or '').strip()
        if number and number != invoice['invoice_number']:
            if self._invoice_repo.number_exists(user.tenant_id, number, exclude_id=invoice_id):
                raise DuplicateInvoiceNumberError(number)
            header['invoice_number'] = number

        self._invoice_repo.replace(user.tenant_id, invoice_id, header, lines, user.user_id)
        updated = self._invoice_repo.get(user.tenant_id, invoice_id)
        updated['lines'] = self._invoice_repo.get_lines(user.tenant_id, invoice_id)
        return updated

    def delete_invoice(self, invoice_id, user: UserContext):
        """Soft delete. Invoices with payments must be voided instead."""
        invoice = self.get_invoice(user.tenant_id, invoice_id)
        if money.to_decimal(invoice.get('amount_paid')) > 0:
            raise InvoiceError('Invoices with payments cannot be deleted; void them instead')
        self._invoice_repo.soft_delete(user.tenant_id, invoice_id, user.user_id)

    # ============== Status ==============

    def change_status(self, invoice_id, status, user: UserContext,
                      create_client_account=False, income_account_id=None):
        if status not in STATUSES:
            raise InvoiceError(f'Unknown invoice status: {status}')
        invoice = self.get_invoice(user.tenant_id, invoice_id)
        old_status = invoice['status']
        if not can_transition(old_status, status):
            raise InvalidTransitionError(old_status, status)

        accounts = None
        if old_status == 'draft' and status == 'approved':
            accounts = self.resolve_approval_accounts(
                invoice, create_client_account, income_account_id)

        self._invoice_repo.update_status(user.tenant_id, invoice_id, status, user.user_id)
        updated = self._invoice_repo.get(user.tenant_id, invoice_id)

        if accounts is not None:
            self._post_invoice_entry(updated, 'INVAP', user, accounts)
        elif old_status == 'draft' and status == 'sent':
            self._post_invoice_entry(updated, 'INV', user)

        payload = {'invoice': updated, 'old_status': old_status, 'new_status': status}
        emit('finance', 'invoice_status_changed', payload, user.tenant_id, user.user_id)
        if status == 'approved':
            emit('finance', 'invoice_approved', {'invoice': updated}, user.tenant_id, user.user_id)
        return updated

    def resolve_approval_accounts(self, invoice, create_client_account=False, income_account_id=None):
        """Find (or open) the accounts an approval posts to. Raises MissingAccountsError."""
        tenant_id = invoice['tenant_id']
        missing = []

        receivable = self._account_repo.get_client_account(tenant_id, invoice['client_id'])
        if not receivable and create_client_account:
            client = self._client_repo.get(tenant_id, invoice['client_id']) or {}
            receivable = self._account_repo.create(
                tenant_id, f"{CLIENT_ACCOUNT_PREFIX}-{invoice['client_id']}",
                f"Debtors - {client.get('display_name', invoice['client_id'])}",
                'asset', client_id=invoice['client_id'])
            logger.info(f"Opened receivable account {receivable['account_code']} for client {invoice['client_id']}")
        if not receivable:
            receivable = self._account_repo.get_by_code(tenant_id, ledger_service.ACCOUNTS_RECEIVABLE)
        if not receivable:
            missing.append(f'Trade Debtors ({ledger_service.ACCOUNTS_RECEIVABLE})')

        revenue = None
        if income_account_id:
            revenue = self._account_repo.get(tenant_id, income_account_id)
            if not revenue:
                missing.append(f'Selected income account ({income_account_id})')
        elif invoice.get('entity_id'):
            entity = self._entity_repo.get(tenant_id, invoice['entity_id'])
            if entity and entity.get('revenue_account_id'):
                revenue = self._account_repo.get(tenant_id, entity['revenue_account_id'])
        if not revenue and not income_account_id:
            revenue = self._account_repo.get_by_code(tenant_id, ledger_service.SERVICE_REVENUE)
            if not revenue:
                missing.append(f'Service Revenue ({ledger_service.SERVICE_REVENUE})')

        tax = None
        if money.to_decimal(invoice.get('tax_amount')) > 0:
            tax = self._account_repo.get_by_code(tenant_id, ledger_service.TAX_LIABILITY)
            if not tax:
                missing.append(f'Tax Liability ({ledger_service.TAX_LIABILITY})')

        if missing:
            raise MissingAccountsError(missing)
        return {'receivable': receivable, 'revenue': revenue, 'tax': tax}

    def _default_accounts(self, invoice):
        tenant_id = invoice['tenant_id']
        receivable = self._account_repo.get_client_account(tenant_id, invoice['client_id']) \
            or self._account_repo.get_by_code(tenant_id, ledger_service.ACCOUNTS_RECEIVABLE)
        revenue = None
        if invoice.get('entity_id'):
            entity = self._entity_repo.get(tenant_id, invoice['entity_id'])
            if entity and entity.get('revenue_account_id'):
                revenue = self._account_repo.get(tenant_id, entity['revenue_account_id'])
        revenue = revenue or self._account_repo.get_by_code(tenant_id, ledger_service.SERVICE_REVENUE)
        tax = self._account_repo.get_by_code(tenant_id, ledger_service.TAX_LIABILITY)
        return {'receivable': receivable, 'revenue': revenue, 'tax': tax}

    def _post_invoice_entry(self, invoice, entry_type, user, accounts=None):
        """Post the revenue entry for an invoice once. Returns the entry id or None."""
        tenant_id = invoice['tenant_id']
        try:
            if self._journal_repo.exists_for(tenant_id, 'invoice', invoice['id'], 'INV') or \
                    self._journal_repo.exists_for(tenant_id, 'invoice', invoice['id'], 'INVAP'):
                logger.info(f"Invoice {invoice['invoice_number']} already posted")
                return None

            accounts = accounts or self._default_accounts(invoice)
            total = money.quantize(invoice['total_amount'])
            tax_amount = money.quantize(invoice.get('tax_amount') or 0)
            if not accounts.get('receivable') or not accounts.get('revenue') or \
                    (tax_amount > 0 and not accounts.get('tax')):
                logger.warning(f"Invoice {invoice['invoice_number']} not posted: default accounts missing")
                return None

            number = invoice['invoice_number']
            lines = [
                debit(accounts['receivable']['id'], total, f'Accounts Receivable - Invoice {number}'),
                credit(accounts['revenue']['id'], total - tax_amount, f'Revenue - Invoice {number}'),
            ]
            if tax_amount > 0:
                lines.append(credit(accounts['tax']['id'], tax_amount, f'Tax Liability - Invoice {number}'))

            return self._ledger.post_entry(
                tenant_id, entry_type, lines,
                entry_date=date.today() if entry_type == 'INVAP' else invoice['issue_date'],
                reference=f'INV-{number}',
                description=f"Invoice {number} {'approved' if entry_type == 'INVAP' else 'issued'}",
                source_document='invoice', source_document_id=invoice['id'],
                created_by=user.user_id)
        except Exception as e:
            logger.error(f"Failed to post {entry_type} entry for invoice {invoice.get('id')}: {e}")
            return None

    def mark_overdue(self, today=None):
        """Flag open invoices past their due date as overdue. Returns the count."""
        today = today or date.today()
        count = 0
        for invoice in self._invoice_repo.find_overdue(today):
            self._invoice_repo.update_status(invoice['tenant_id'], invoice['id'], 'overdue')
            invoice['status'] = 'overdue'
            emit('finance', 'invoice_overdue', {'invoice': invoice}, invoice['tenant_id'])
            count += 1
        if count:
            logger.info(f'Marked {count} invoices overdue')
        return count

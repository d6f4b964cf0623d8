"""Payment Service - records payments against invoices and posts PMT entries."""

import logging
from datetime import date

from core.services.base import UserContext
from finance import money
from finance.exceptions import InvoiceNotFoundError, PaymentError
from finance.repositories import AccountRepository, InvoiceRepository, PaymentRepository
from finance.services import ledger_service
from finance.services.ledger_service import LedgerService, credit, debit
from workflows.engine import emit

logger = logging.getLogger('practicehub.finance.payment_service')

PAYMENT_METHODS = ('bank_transfer', 'cash', 'card', 'cheque', 'online', 'other')
CLOSED_STATUSES = ('void', 'canceled', 'draft')


class PaymentService:

    def __init__(self):
        self._invoice_repo = InvoiceRepository()
        self._payment_repo = PaymentRepository()
        self._account_repo = AccountRepository()
        self._ledger = LedgerService()

    def record_payment(self, data, user: UserContext):
        """Record a payment and settle the invoice balance.

        Args:
            data: invoice_id, amount, payment_date (default today),
                payment_method, reference_number, notes
            user: acting user

        Returns:
            dict with `payment` and the updated `invoice`.

        Raises:
            InvoiceNotFoundError: unknown invoice
            PaymentError: closed invoice, non-positive amount or overpayment
        """
        tenant_id = user.tenant_id
        invoice_id = data.get('invoice_id')
        invoice = self._invoice_repo.get(tenant_id, invoice_id) if invoice_id else None
        if not invoice:
            raise InvoiceNotFoundError(invoice_id)
        if invoice['status'] in CLOSED_STATUSES:
            raise PaymentError(f"Cannot record a payment on a {invoice['status']} invoice")

        try:
            amount = money.quantize(data.get('amount'))
        except ValueError as e:
            raise PaymentError(str(e))
        if amount <= 0:
            raise PaymentError('Payment amount must be greater than zero')

        # early answer; the repository re-checks under the invoice row lock
        amount_due = money.quantize(invoice.get('amount_due') or 0)
        if amount > amount_due:
            raise PaymentError(f'Payment {amount} exceeds the amount due {amount_due}')

        method = data.get('payment_method') or 'bank_transfer'
        if method not in PAYMENT_METHODS:
            raise PaymentError(f"payment_method must be one of {', '.join(PAYMENT_METHODS)}")

        payment, settlement = self._payment_repo.record(tenant_id, invoice['id'], {
            'payment_date': data.get('payment_date') or date.today(),
            'amount': amount,
            'payment_method': method,
            'reference_number': data.get('reference_number'),
            'notes': data.get('notes'),
        }, user.user_id, closed_statuses=CLOSED_STATUSES)
        status = settlement['status']
        logger.info(f"Payment {payment['id']} of {amount} on invoice {invoice['invoice_number']}")

        self._post_payment_entry(invoice, payment, amount, method, user)

        updated = self._invoice_repo.get(tenant_id, invoice['id'])
        emit('finance', 'payment_received', {'payment': payment, 'invoice': updated},
             tenant_id, user.user_id)
        if status == 'paid':
            emit('finance', 'invoice_paid', {'invoice': updated}, tenant_id, user.user_id)
        return {'payment': payment, 'invoice': updated}

    def _post_payment_entry(self, invoice, payment, amount, method, user):
        """Dr bank (cash for cash payments) / Cr receivable. Failures are logged only."""
        tenant_id = user.tenant_id
        try:
            bank_code = ledger_service.CASH if method == 'cash' else ledger_service.BANK
            bank = self._account_repo.get_by_code(tenant_id, bank_code)
            receivable = self._account_repo.get_client_account(tenant_id, invoice['client_id']) \
                or self._account_repo.get_by_code(tenant_id, ledger_service.ACCOUNTS_RECEIVABLE)
            if not bank or not receivable:
                logger.warning(f"Payment {payment['id']} not posted: account {bank_code} or receivable missing")
                return None

            number = invoice['invoice_number']
            return self._ledger.post_entry(
                tenant_id, 'PMT', [
                    debit(bank['id'], amount, f'Payment received - Invoice {number}'),
                    credit(receivable['id'], amount, f'Accounts Receivable - Invoice {number}'),
                ],
                entry_date=payment.get('payment_date'),
                reference=f"PMT-{number}-{payment['id']}",
                description=f'Payment for invoice {number}',
                source_document='payment', source_document_id=payment['id'],
                created_by=user.user_id)
        except Exception as e:
            logger.error(f"Failed to post PMT entry for payment {payment.get('id')}: {e}")
            return None

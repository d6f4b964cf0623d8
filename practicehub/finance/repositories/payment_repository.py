"""Payment Repository."""

from core.base_repository import BaseRepository
from finance import money
from finance.exceptions import PaymentError


class PaymentRepository(BaseRepository):

    def list(self, tenant_id, invoice_id=None):
        params = [tenant_id]
        where = 'p.tenant_id = %s'
        if invoice_id:
            where += ' AND p.invoice_id = %s'
            params.append(invoice_id)
        return self.query_all(f'''
            SELECT p.*, i.invoice_number, c.display_name AS client_name
            FROM payments p
            JOIN invoices i ON i.id = p.invoice_id
            JOIN clients c ON c.id = i.client_id
            WHERE {where}
            ORDER BY p.payment_date DESC, p.id DESC
        ''', params)

    def record(self, tenant_id, invoice_id, payment, created_by=None, closed_statuses=()):
        """Insert the payment and settle the invoice balance in one transaction.

        The invoice row is locked (SELECT ... FOR UPDATE) and its balance is
        re-read under the lock, so concurrent payments are applied one after
        the other and cannot overpay or overwrite each other's amount_paid.

        Returns (payment_row, settlement) where settlement holds the new
        amount_paid, amount_due and status of the invoice.

        Raises:
            PaymentError: invoice missing or closed, or amount above amount_due
        """
        amount = money.quantize(payment['amount'])

        def _work(cursor):
            cursor.execute('''
                SELECT id, status, total_amount, amount_paid, amount_due
                FROM invoices
                WHERE tenant_id = %s AND id = %s
                FOR UPDATE
            ''', (tenant_id, invoice_id))
            invoice = cursor.fetchone()
            if not invoice:
                raise PaymentError(f'Invoice {invoice_id} not found')
            if invoice['status'] in closed_statuses:
                raise PaymentError(f"Cannot record a payment on a {invoice['status']} invoice")

            amount_due = money.quantize(invoice['amount_due'] or 0)
            if amount > amount_due:
                raise PaymentError(f'Payment {amount} exceeds the amount due {amount_due}')
            new_paid = money.quantize(invoice['amount_paid'] or 0) + amount
            new_due = max(money.quantize(invoice['total_amount']) - new_paid, money.ZERO)
            status = 'paid' if new_due == 0 else 'partially_paid'

            cursor.execute('''
                INSERT INTO payments (tenant_id, invoice_id, payment_date, amount, payment_method,
                                      reference_number, notes, created_by)
                VALUES (%s, %s, %s, %s, %s, %s, %s, %s)
                RETURNING *
            ''', (
                tenant_id, invoice_id, payment['payment_date'], amount,
                payment.get('payment_method') or 'bank_transfer',
                payment.get('reference_number'), payment.get('notes'), created_by,
            ))
            row = cursor.fetchone()
            cursor.execute('''
                UPDATE invoices
                SET amount_paid = %s, amount_due = %s, status = %s, updated_by = %s, updated_at = NOW()
                WHERE tenant_id = %s AND id = %s
            ''', (new_paid, new_due, status, created_by, tenant_id, invoice_id))
            return dict(row), {'amount_paid': new_paid, 'amount_due': new_due, 'status': status}
        return self.execute_many(_work)

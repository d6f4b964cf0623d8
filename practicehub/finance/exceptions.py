"""
Finance Exceptions

Each carries the HTTP status the routes answer with.
"""


class InvoiceError(Exception):
    """Base exception for invoice operations."""
    status_code = 400


class InvoiceNotFoundError(InvoiceError):
    status_code = 404

    def __init__(self, invoice_id):
        self.invoice_id = invoice_id
        super().__init__(f"Invoice {invoice_id} not found")


class InvalidTransitionError(InvoiceError):
    """Raised when a status change is not in the transition map."""
    def __init__(self, from_status: str, to_status: str):
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(f"Cannot change invoice status from '{from_status}' to '{to_status}'")


class DuplicateInvoiceNumberError(InvoiceError):
    status_code = 409

    def __init__(self, invoice_number: str):
        self.invoice_number = invoice_number
        super().__init__(f"Invoice number {invoice_number} already exists")


class MissingAccountsError(InvoiceError):
    """Raised when approval needs ledger accounts that are not set up."""
    def __init__(self, missing: list):
        self.missing = list(missing)
        super().__init__(f"Missing ledger accounts: {', '.join(self.missing)}")


class PaymentError(Exception):
    status_code = 400


class LedgerError(Exception):
    """Unbalanced or empty journal entry."""
    status_code = 400


class GatewayError(Exception):
    def __init__(self, message: str, status_code: int = 400):
        self.status_code = status_code
        super().__init__(message)

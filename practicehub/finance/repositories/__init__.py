"""Finance repositories."""
from .invoice_repository import InvoiceRepository
from .payment_repository import PaymentRepository
from .account_repository import AccountRepository
from .journal_repository import JournalRepository
from .gateway_repository import GatewayRepository

__all__ = [
    'InvoiceRepository', 'PaymentRepository', 'AccountRepository',
    'JournalRepository', 'GatewayRepository',
]

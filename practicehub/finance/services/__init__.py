"""Finance services."""
from . import ledger_service
from .ledger_service import LedgerService, build_entry
from .invoice_service import InvoiceService
from .payment_service import PaymentService
from .gateway_service import GatewayService

__all__ = [
    'ledger_service', 'LedgerService', 'build_entry',
    'InvoiceService', 'PaymentService', 'GatewayService',
]

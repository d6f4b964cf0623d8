"""Finance: invoices, payments, chart of accounts, journal and payment gateways."""
from flask import Blueprint

finance_bp = Blueprint('finance', __name__)

from .routes import invoices, payments, ledger, gateways  # noqa: F401, E402

"""Report filter parsing."""
from dataclasses import dataclass
from typing import Optional

RISK_LEVELS = ('critical', 'high', 'medium', 'low')


def _int_or_none(value):
    if value is None:
        return None
    value = str(value).strip()
    if not value or value.lower() == 'all':
        return None
    try:
        return int(value)
    except ValueError:
        return None


@dataclass
class ReportFilters:
    """Filters shared by every report. None means "all"."""
    timeframe_days: Optional[int] = None
    country_id: Optional[int] = None
    client_id: Optional[int] = None
    entity_id: Optional[int] = None
    entity_type_id: Optional[int] = None
    tax_jurisdiction_id: Optional[int] = None
    risk_level: Optional[str] = None
    assignee_id: Optional[int] = None
    search: Optional[str] = None
    compliance_only: bool = False

    @classmethod
    def from_args(cls, args):
        """Build filters from a query-string mapping such as request.args."""
        risk_level = (args.get('risk_level') or '').strip().lower()
        search = (args.get('search') or '').strip()
        return cls(
            timeframe_days=_int_or_none(args.get('timeframe')),
            country_id=_int_or_none(args.get('country_id')),
            client_id=_int_or_none(args.get('client_id')),
            entity_id=_int_or_none(args.get('entity_id')),
            entity_type_id=_int_or_none(args.get('entity_type_id')),
            tax_jurisdiction_id=_int_or_none(args.get('tax_jurisdiction_id')),
            risk_level=risk_level if risk_level in RISK_LEVELS else None,
            assignee_id=_int_or_none(args.get('assignee_id')),
            search=search or None,
            compliance_only=(args.get('compliance_only') or '').lower() in ('1', 'true', 'yes'),
        )

from .report import Report
from .schema import REPORT_SCHEMA, validate_field

__all__ = ['Report', 'REPORT_SCHEMA', 'validate_field']

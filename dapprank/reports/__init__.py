from .json_reporter import JSONReporter
from .table_reporter import TableReporter
__all__ = ['JSONReporter', 'TableReporter']

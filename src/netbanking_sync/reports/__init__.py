from .axis import AXIS_HEADER_ROW, AXIS_TRANSACTION_MAPPING
from .ingest import ColumnMapping, FieldSpec, parse_rows, read_report
from .kotak import KOTAK_PAYMENT_GRID_KEYS, KOTAK_PAYMENT_GRID_MAPPING
from .store import ResultsStore, UpsertSummary, ingest_report_file

__all__ = [
    "AXIS_HEADER_ROW",
    "AXIS_TRANSACTION_MAPPING",
    "ColumnMapping",
    "FieldSpec",
    "KOTAK_PAYMENT_GRID_KEYS",
    "KOTAK_PAYMENT_GRID_MAPPING",
    "ResultsStore",
    "UpsertSummary",
    "ingest_report_file",
    "parse_rows",
    "read_report",
]

"""Statement ingestion: format detection, row parsing and sign normalization."""

from .parser import NO_DATA_ERROR, UNSUPPORTED_FORMAT_ERROR, parse_rows
from .registry import DEFAULT_REGISTRY, FormatSpec, detect_format
from .utils import RawTable, read_csv_rows, read_json_rows, read_rows

__all__ = [
    "DEFAULT_REGISTRY",
    "FormatSpec",
    "NO_DATA_ERROR",
    "RawTable",
    "UNSUPPORTED_FORMAT_ERROR",
    "detect_format",
    "parse_rows",
    "read_csv_rows",
    "read_json_rows",
    "read_rows",
]

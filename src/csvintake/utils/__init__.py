"""Utility functions for csvintake."""

from csvintake.utils.csv_tokenizer import parse_csv, detect_delimiter, format_csv
from csvintake.utils.date_parser import normalize_date, detect_date_format
from csvintake.utils.amount_parser import normalize_amount

__all__ = [
    "parse_csv",
    "detect_delimiter",
    "format_csv",
    "normalize_date",
    "detect_date_format",
    "normalize_amount",
]

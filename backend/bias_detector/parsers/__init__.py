"""Parser utilities for converting uploaded batches into structured data."""

from .base import BaseParser
from .csv_parser import CSVParser, serialize_records

__all__ = ["BaseParser", "CSVParser", "serialize_records"]

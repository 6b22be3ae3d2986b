"""Base classes and interfaces for parsers."""

from abc import ABC, abstractmethod

from bias_detector.models import ParsedTable


class BaseParser(ABC):
    """Abstract base class for upload parsers."""

    @abstractmethod
    def parse(self, source: str) -> ParsedTable:
        """Parse the provided source and return the header with its data rows."""
        raise NotImplementedError

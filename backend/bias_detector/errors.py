"""Exception types shared across the service."""


class ConfigurationError(RuntimeError):
    """Raised at startup when required settings are missing or invalid."""


class CSVParseError(ValueError):
    """Base class for uploads that cannot be turned into a batch."""


class InsufficientRowsError(CSVParseError):
    def __init__(self) -> None:
        super().__init__("CSV file must contain a header and at least one data row.")


class MissingColumnsError(CSVParseError):
    def __init__(self) -> None:
        super().__init__('CSV must have "generated_text" and "reference_text" columns.')


class AnalysisFailure(RuntimeError):
    """The model call failed or returned a payload of the wrong shape."""


class BatchCancelled(RuntimeError):
    """A running batch was asked to stop between rows."""

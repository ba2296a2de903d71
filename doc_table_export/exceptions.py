class TableExportError(Exception):
    """Base exception for all table export errors."""


class InputRejected(TableExportError):
    """Raised when an upload is missing or has an unsupported type or size."""


class ExtractionFailure(TableExportError):
    """Raised when the AI service call fails or returns unusable data."""


class RenderFailure(TableExportError):
    """Raised when a spreadsheet or PDF artifact cannot be produced."""


class SweeperFileError(TableExportError):
    """Raised when a single file cannot be inspected or deleted during cleanup."""

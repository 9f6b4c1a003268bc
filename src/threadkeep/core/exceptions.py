"""Shared exceptions for file-level ingestion failures."""


class IngestionError(Exception):
    """A whole file could not be ingested."""

    pass


class UnsupportedFileTypeError(IngestionError):
    """Raised when a file extension is not one of the supported types."""

    def __init__(self, extension: str) -> None:
        self.extension = extension
        super().__init__(f"Unsupported file type: {extension or '(none)'}")


class FormatUndetectedError(IngestionError):
    """Raised when a CSV header row matches no known dialect."""

    def __init__(self, header: str) -> None:
        self.header = header
        super().__init__(f"Could not detect CSV format. Headers: {header}")

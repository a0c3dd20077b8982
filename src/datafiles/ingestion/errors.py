"""
Ingestion Error Types.

Only IngestExecutionError (and its subclasses) ever propagates out of
ingest(); everything else is absorbed into a fallback or an error result.
"""

from typing import Optional


class IngestError(Exception):
    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class IngestExecutionError(IngestError):
    """Fatal failure; aborts the whole ingestion call."""


class StagingError(IngestExecutionError):
    """Scratch storage is unconfigured or a stream could not be copied to it."""


class PackageHandlerError(IngestExecutionError):
    """The package-format handler could not process the upload."""


class ShapefileProcessingError(IngestError):
    """A zipped shapefile could not be split into complete shapefile sets."""


class StagingLimitExceeded(IngestError):
    """A bounded stream copy went past its byte ceiling."""

    def __init__(self, bytes_read: int, limit: Optional[int]) -> None:
        self.bytes_read = bytes_read
        self.limit = limit
        super().__init__(
            f"Stream exceeded the limit of {limit} bytes "
            f"({bytes_read} bytes read)"
        )

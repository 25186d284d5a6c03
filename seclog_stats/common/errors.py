"""Domain errors and failure typing."""

from __future__ import annotations


class PipelineError(Exception):
    """Base class for pipeline failures."""

    error_code = "PIPELINE_ERROR"


class ConfigError(PipelineError):
    """Raised for invalid or missing configuration."""

    error_code = "CONFIG_ERROR"


class StageError(PipelineError):
    """Raised for stage failures that should halt in strict mode."""

    error_code = "STAGE_ERROR"


class SourceConnectionError(StageError):
    """Raised when the record source cannot be reached; aborts the run."""

    error_code = "SOURCE_CONNECTION_ERROR"


class PartitionError(StageError):
    """Raised when a single partition cannot be opened for consumption."""

    error_code = "PARTITION_ERROR"


class LookupOpenError(StageError):
    """Raised when the address lookup databases cannot be opened."""

    error_code = "LOOKUP_OPEN_ERROR"


class ExportError(StageError):
    error_code = "EXPORT_ERROR"


class RecordError(PipelineError):
    """Raised for a single record that cannot be used; never fatal.

    ``event_time`` is the timestamp embedded in the record when the value
    decoded far enough to read one, otherwise ``None``.
    """

    error_code = "RECORD_ERROR"

    def __init__(self, message: str, event_time: float | None = None) -> None:
        super().__init__(message)
        self.event_time = event_time


class MalformedRecord(RecordError):
    error_code = "MALFORMED_RECORD"


class UnexpectedSource(RecordError):
    error_code = "UNEXPECTED_SOURCE"


class InvalidTimestamp(RecordError):
    error_code = "INVALID_TIMESTAMP"

"""Error types for the HTTP export stage.

Pre-flight errors (configuration, missing data, coercion, secrets, URL) halt
the pipeline and are never persisted. Export failures (transport, status,
response read) are the only errors eligible for store-and-forward.
"""

from enum import Enum


class ExportErrorClass(str, Enum):
    """Classification of export errors.

    - CONFIGURATION: Contradictory flags or incomplete secret fields
    - NO_DATA: No input data received
    - COERCION: Input data could not be converted to bytes
    - SECRET: Secret store lookup failed
    - URL: URL template expansion or parsing failed
    - TRANSPORT: Network-level failure
    - STATUS: Non-2xx HTTP response
    - RESPONSE_READ: Body read failure after a 2xx response
    """

    CONFIGURATION = "CONFIGURATION"
    NO_DATA = "NO_DATA"
    COERCION = "COERCION"
    SECRET = "SECRET"
    URL = "URL"
    TRANSPORT = "TRANSPORT"
    STATUS = "STATUS"
    RESPONSE_READ = "RESPONSE_READ"


_EXPORT_FAILURE_CLASSES = frozenset(
    {
        ExportErrorClass.TRANSPORT,
        ExportErrorClass.STATUS,
        ExportErrorClass.RESPONSE_READ,
    }
)


class ExportError(Exception):
    """Base exception for export stage errors.

    Provides structured error information for logging and status reporting.
    """

    error_class: ExportErrorClass = ExportErrorClass.CONFIGURATION

    def __init__(
        self,
        message: str,
        pipeline_id: str | None = None,
        details: dict[str, str | int | bool | None] | None = None,
    ) -> None:
        """Initialize the export error.

        Args:
            message: Human-readable error message.
            pipeline_id: Identifier of the pipeline that failed.
            details: Additional structured error details.
        """
        super().__init__(message)
        self.message = message
        self.pipeline_id = pipeline_id
        self.details = details or {}

    @property
    def is_export_failure(self) -> bool:
        """Whether this error happened after a send was attempted."""
        return self.error_class in _EXPORT_FAILURE_CLASSES

    def to_dict(
        self,
    ) -> dict[str, str | int | bool | None | dict[str, str | int | bool | None]]:
        """Convert error to dictionary for logging/serialization.

        Returns:
            Dictionary representation of the error.
        """
        return {
            "error_class": self.error_class.value,
            "message": self.message,
            "pipeline_id": self.pipeline_id,
            "details": self.details,
        }


class ConfigurationError(ExportError):
    """Contradictory export flags or incomplete secret configuration."""

    error_class = ExportErrorClass.CONFIGURATION


class NoDataError(ExportError):
    """No data was passed to the export stage."""

    error_class = ExportErrorClass.NO_DATA


class DataCoercionError(ExportError):
    """Input data could not be converted to a byte payload."""

    error_class = ExportErrorClass.COERCION


class SecretResolutionError(ExportError):
    """Secret store lookup failed."""

    error_class = ExportErrorClass.SECRET

    def __init__(
        self,
        message: str,
        secret_name: str,
        pipeline_id: str | None = None,
    ) -> None:
        """Initialize the secret error.

        Args:
            message: Human-readable error message.
            secret_name: Name of the secret that could not be read.
            pipeline_id: Identifier of the pipeline that failed.
        """
        super().__init__(
            message, pipeline_id=pipeline_id, details={"secret_name": secret_name}
        )
        self.secret_name = secret_name


class UrlResolutionError(ExportError):
    """URL template could not be expanded or parsed."""

    error_class = ExportErrorClass.URL


class TransportError(ExportError):
    """Network-level failure while sending the request."""

    error_class = ExportErrorClass.TRANSPORT


class StatusError(ExportError):
    """Destination answered with a non-2xx status code.

    Attributes:
        status_code: HTTP status code from the response.
    """

    error_class = ExportErrorClass.STATUS

    def __init__(
        self,
        message: str,
        status_code: int,
        pipeline_id: str | None = None,
    ) -> None:
        super().__init__(
            message, pipeline_id=pipeline_id, details={"status_code": status_code}
        )
        self.status_code = status_code


class ResponseReadError(ExportError):
    """Response body could not be read after a successful status."""

    error_class = ExportErrorClass.RESPONSE_READ


class DuplicateMetricError(Exception):
    """Raised when registering a metric name that already exists."""

    def __init__(self, name: str) -> None:
        """Initialize the error with the duplicate name.

        Args:
            name: The metric name that is already registered.
        """
        self.name = name
        super().__init__(f"Metric already registered: {name}")

"""HTTP export stage for data pipelines.

This module delivers pipeline data to HTTP endpoints with:
- Validation of contradictory export flags before any network activity
- Secret-backed authentication headers
- URL templates expanded from pipeline context values
- Per-destination error counters and payload size histograms
- Store-and-forward persistence and chaining of multiple exporters
"""

from src.export.coerce import coerce_to_bytes
from src.export.config import HttpSenderOptions
from src.export.constants import (
    DEFAULT_MIME_TYPE,
    HTTP_EXPORT_ERRORS_NAME,
    HTTP_EXPORT_SIZE_NAME,
    METRICS_RESERVOIR_SIZE,
)
from src.export.errors import (
    ConfigurationError,
    DataCoercionError,
    ExportError,
    ExportErrorClass,
    NoDataError,
    ResponseReadError,
    SecretResolutionError,
    StatusError,
    TransportError,
    UrlResolutionError,
)
from src.export.formatter import ContextValuesFormatter
from src.export.metrics import (
    Counter,
    DestinationMetrics,
    ExportMetricsRegistry,
    Histogram,
    UniformSample,
)
from src.export.models import ExportOutcome
from src.export.protocols import (
    DataCoercer,
    PipelineContext,
    SecretProvider,
    StringValuesFormatter,
)
from src.export.sender import HttpSender
from src.export.state_machine import ExportState, ExportStateMachine


__all__ = [
    # Sender
    "HttpSender",
    "HttpSenderOptions",
    "ExportOutcome",
    # State
    "ExportState",
    "ExportStateMachine",
    # Errors
    "ExportError",
    "ExportErrorClass",
    "ConfigurationError",
    "NoDataError",
    "DataCoercionError",
    "SecretResolutionError",
    "UrlResolutionError",
    "TransportError",
    "StatusError",
    "ResponseReadError",
    # Metrics
    "ExportMetricsRegistry",
    "DestinationMetrics",
    "Counter",
    "Histogram",
    "UniformSample",
    # Collaborators
    "PipelineContext",
    "SecretProvider",
    "StringValuesFormatter",
    "DataCoercer",
    "ContextValuesFormatter",
    "coerce_to_bytes",
    # Constants
    "DEFAULT_MIME_TYPE",
    "HTTP_EXPORT_ERRORS_NAME",
    "HTTP_EXPORT_SIZE_NAME",
    "METRICS_RESERVOIR_SIZE",
]

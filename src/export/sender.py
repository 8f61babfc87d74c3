"""HTTP export stage: sends pipeline data to an HTTP endpoint."""

from threading import Lock
from typing import Any

import httpx
import structlog

from src.export.coerce import coerce_to_bytes
from src.export.config import HttpSenderOptions
from src.export.constants import (
    COMPONENT_HTTP_EXPORT,
    CONTENT_TYPE_HEADER,
    HTTP_METHOD_POST,
    HTTP_METHOD_PUT,
    HTTP_STATUS_OK_MAX,
    HTTP_STATUS_OK_MIN,
    METRICS_RESERVOIR_SIZE,
)
from src.export.errors import (
    DataCoercionError,
    ExportError,
    NoDataError,
    ResponseReadError,
    StatusError,
    TransportError,
)
from src.export.formatter import ContextValuesFormatter
from src.export.metrics import (
    DestinationMetrics,
    ExportMetricsRegistry,
    register_destination_metrics,
)
from src.export.models import ExportOutcome
from src.export.protocols import DataCoercer, PipelineContext
from src.export.redact import redact_headers
from src.export.secrets import determine_secret_usage, resolve_secret_header
from src.export.state_machine import ExportState, ExportStateMachine
from src.export.url import ResolvedUrl, resolve_url
from src.export.validation import validate_export_flags


class HttpSender:
    """Pipeline function that exports data to an HTTP endpoint.

    One sender instance may serve many concurrent pipeline executions.
    Options are immutable; the only shared mutable state is the
    per-destination metrics and the static request headers, which are
    replaced as a whole.

    Each call:
    - Validates the export flags before touching the network
    - Resolves an optional secret-backed header
    - Expands the URL template against the pipeline context
    - Sends the payload with a fresh client and routes the outcome
    """

    def __init__(
        self,
        options: HttpSenderOptions,
        *,
        registry: ExportMetricsRegistry | None = None,
        coercer: DataCoercer = coerce_to_bytes,
        transport: httpx.BaseTransport | None = None,
        reservoir_size: int = METRICS_RESERVOIR_SIZE,
    ) -> None:
        """Initialize the sender.

        Args:
            options: Sender options.
            registry: Metrics registry; the shared registry when omitted.
            coercer: Converts pipeline data into the request body.
            transport: httpx transport for every request (tests, proxies).
            reservoir_size: Reservoir size for new size histograms.
        """
        self._options = options
        self._formatter = options.url_formatter or ContextValuesFormatter()
        self._registry = registry
        self._coercer = coercer
        self._transport = transport
        self._reservoir_size = reservoir_size
        self._request_headers: dict[str, str] = {}
        self._destinations: dict[str, DestinationMetrics] = {}
        self._destinations_lock = Lock()

    @classmethod
    def from_url(
        cls,
        url: str,
        mime_type: str = "",
        persist_on_error: bool = False,
    ) -> "HttpSender":
        """Create a sender for a URL.

        Args:
            url: Destination URL, may contain placeholders.
            mime_type: Content type, application/json when empty.
            persist_on_error: Use store-and-forward when the export fails.

        Returns:
            New HttpSender.
        """
        return cls(
            HttpSenderOptions(
                url=url, mime_type=mime_type, persist_on_error=persist_on_error
            )
        )

    @classmethod
    def with_secret_header(  # noqa: PLR0913
        cls,
        url: str,
        mime_type: str,
        persist_on_error: bool,
        header_name: str,
        secret_name: str,
        secret_value_key: str,
    ) -> "HttpSender":
        """Create a sender that passes a secret in a request header.

        Args:
            url: Destination URL, may contain placeholders.
            mime_type: Content type, application/json when empty.
            persist_on_error: Use store-and-forward when the export fails.
            header_name: Header used to pass the secret.
            secret_name: Name of the secret in the secret store.
            secret_value_key: Key of the value within the secret data.

        Returns:
            New HttpSender.
        """
        return cls(
            HttpSenderOptions(
                url=url,
                mime_type=mime_type,
                persist_on_error=persist_on_error,
                http_header_name=header_name,
                secret_name=secret_name,
                secret_value_key=secret_value_key,
            )
        )

    @property
    def options(self) -> HttpSenderOptions:
        """Get the sender options."""
        return self._options

    @property
    def request_headers(self) -> dict[str, str]:
        """Get a copy of the static request headers."""
        return dict(self._request_headers)

    def set_http_request_headers(self, headers: dict[str, str] | None) -> None:
        """Replace the static request headers.

        Static headers are applied after the secret header and Content-Type,
        so they override either when they use the same name.

        Args:
            headers: New headers; None keeps the current ones.
        """
        if headers is not None:
            self._request_headers = dict(headers)

    def http_post(self, context: PipelineContext, data: Any) -> tuple[bool, Any]:
        """Send data from the previous function via HTTP POST.

        Args:
            context: Pipeline execution context.
            data: Output of the previous function, or the triggering event.

        Returns:
            Tuple of continue flag and output (response body, input data,
            or the error).
        """
        return self.export(context, data, HTTP_METHOD_POST).as_result()

    def http_put(self, context: PipelineContext, data: Any) -> tuple[bool, Any]:
        """Send data from the previous function via HTTP PUT.

        Args:
            context: Pipeline execution context.
            data: Output of the previous function, or the triggering event.

        Returns:
            Tuple of continue flag and output (response body, input data,
            or the error).
        """
        return self.export(context, data, HTTP_METHOD_PUT).as_result()

    def export(self, context: PipelineContext, data: Any, method: str) -> ExportOutcome:
        """Run one export and return its outcome.

        Args:
            context: Pipeline execution context.
            data: Data to export.
            method: HTTP method.

        Returns:
            ExportOutcome describing how the pipeline should proceed.
        """
        log = context.logger.bind(
            component=COMPONENT_HTTP_EXPORT,
            pipeline_id=context.pipeline_id,
            correlation_id=context.correlation_id,
            method=method,
        )
        log.debug("http_export_started")
        machine = ExportStateMachine(context.pipeline_id, log=log)

        try:
            payload = self._prepare_payload(context, data, method)

            machine.transition_to(ExportState.RESOLVING_SECRETS)
            secret_header = None
            if determine_secret_usage(self._options, context.pipeline_id):
                secret_header = resolve_secret_header(self._options, context)

            machine.transition_to(ExportState.RESOLVING_URL)
            resolved = resolve_url(self._options.url, self._formatter, context, data)

            machine.transition_to(ExportState.REGISTERING_METRICS)
            metrics = self._destination_metrics(resolved.redacted)
        except ExportError as e:
            machine.transition_to(ExportState.FAILED_HALTING)
            log.error("http_export_rejected", **e.to_dict())
            return ExportOutcome(success=False, error=e, state=machine.state)

        machine.transition_to(ExportState.SENDING)
        headers = self._build_headers(secret_header)
        log = log.bind(url=resolved.redacted)
        log.debug(
            "http_export_sending",
            headers=redact_headers(
                dict(headers.items()),
                extra_sensitive=frozenset({self._options.http_header_name.lower()}),
            ),
        )

        return self._send(
            context=context,
            data=data,
            payload=payload,
            method=method,
            resolved=resolved,
            headers=headers,
            metrics=metrics,
            machine=machine,
            log=log,
        )

    def _prepare_payload(self, context: PipelineContext, data: Any, method: str) -> bytes:
        """Check the input and flags, then coerce the data to bytes.

        Raises:
            NoDataError: If no data was received.
            ConfigurationError: If the export flags contradict each other.
            DataCoercionError: If the data cannot be encoded.
        """
        pipeline_id = context.pipeline_id
        if data is None:
            msg = f"function HTTP{method} in pipeline '{pipeline_id}': No Data Received"
            raise NoDataError(msg, pipeline_id=pipeline_id)

        validate_export_flags(self._options, pipeline_id)

        try:
            return self._coercer(data)
        except (DataCoercionError, TypeError, ValueError) as e:
            msg = f"function HTTP{method} in pipeline '{pipeline_id}': {e}"
            raise DataCoercionError(msg, pipeline_id=pipeline_id) from e

    def _build_headers(self, secret_header: tuple[str, str] | None) -> httpx.Headers:
        # Later writes win, case-insensitively
        headers = httpx.Headers()
        if secret_header is not None:
            name, value = secret_header
            headers[name] = value
        headers[CONTENT_TYPE_HEADER] = self._options.mime_type
        for key, value in self._request_headers.items():
            headers[key] = value
        return headers

    def _destination_metrics(self, redacted_url: str) -> DestinationMetrics:
        """Get the instruments for a destination, registering them on first use.

        Args:
            redacted_url: Destination URL without credentials.

        Returns:
            The destination's instruments.
        """
        with self._destinations_lock:
            metrics = self._destinations.get(redacted_url)
            if metrics is None:
                registry = self._registry or ExportMetricsRegistry.get_instance()
                metrics = register_destination_metrics(
                    registry, redacted_url, self._reservoir_size
                )
                self._destinations[redacted_url] = metrics
            return metrics

    def _send(  # noqa: PLR0913
        self,
        context: PipelineContext,
        data: Any,
        payload: bytes,
        method: str,
        resolved: ResolvedUrl,
        headers: httpx.Headers,
        metrics: DestinationMetrics,
        machine: ExportStateMachine,
        log: structlog.stdlib.BoundLogger,
    ) -> ExportOutcome:
        """Execute the request and route the outcome.

        The response is streamed so its body is only read when it becomes
        the output of the stage.
        """
        pipeline_id = context.pipeline_id
        timeout = httpx.Timeout(context.timeout_seconds)

        try:
            with (
                httpx.Client(transport=self._transport, timeout=timeout) as client,
                client.stream(
                    method, resolved.url, content=payload, headers=headers
                ) as response,
            ):
                status_code = response.status_code
                if not HTTP_STATUS_OK_MIN <= status_code < HTTP_STATUS_OK_MAX:
                    msg = (
                        f"export failed with {status_code} HTTP status code "
                        f"in pipeline '{pipeline_id}'"
                    )
                    error = StatusError(
                        msg, status_code=status_code, pipeline_id=pipeline_id
                    )
                    return self._handle_send_failure(
                        context, data, payload, error, metrics, machine, log
                    )

                metrics.size_histogram.update(len(payload))
                log.debug(
                    "http_export_sent",
                    bytes=len(payload),
                    status_code=status_code,
                )

                # Chained senders need the input data, not the response
                if self._options.return_input_data:
                    machine.transition_to(ExportState.SUCCEEDED)
                    return ExportOutcome(success=True, payload=data, state=machine.state)

                try:
                    body = response.read()
                except (httpx.HTTPError, httpx.StreamError) as e:
                    msg = (
                        f"failed to read response body in pipeline "
                        f"'{pipeline_id}': {e}"
                    )
                    read_error = ResponseReadError(msg, pipeline_id=pipeline_id)
                    # continue_on_send_error implies return_input_data, so halt here
                    return self._halt(context, payload, read_error, machine, log)

                machine.transition_to(ExportState.SUCCEEDED)
                return ExportOutcome(success=True, payload=body, state=machine.state)

        except httpx.RequestError as e:
            msg = f"export failed in pipeline '{pipeline_id}': {e}"
            transport_error = TransportError(msg, pipeline_id=pipeline_id)
            return self._handle_send_failure(
                context, data, payload, transport_error, metrics, machine, log
            )

    def _handle_send_failure(  # noqa: PLR0913
        self,
        context: PipelineContext,
        data: Any,
        payload: bytes,
        error: ExportError,
        metrics: DestinationMetrics,
        machine: ExportStateMachine,
        log: structlog.stdlib.BoundLogger,
    ) -> ExportOutcome:
        """Count a failed send and decide whether the pipeline continues."""
        metrics.error_counter.inc()

        if self._options.continue_on_send_error:
            # Store-and-forward restarts at the failed function, so continuing
            # and persisting never happen together.
            machine.transition_to(ExportState.FAILED_CONTINUING)
            log.error("http_export_continuing", **error.to_dict())
            return ExportOutcome(
                success=True, payload=data, error=error, state=machine.state
            )

        return self._halt(context, payload, error, machine, log)

    def _halt(
        self,
        context: PipelineContext,
        payload: bytes,
        error: ExportError,
        machine: ExportStateMachine,
        log: structlog.stdlib.BoundLogger,
    ) -> ExportOutcome:
        """Stop the pipeline, persisting the payload when configured."""
        if self._options.persist_on_error:
            context.set_retry_data(payload)
            machine.transition_to(ExportState.FAILED_PERSISTING)
        else:
            machine.transition_to(ExportState.FAILED_HALTING)

        log.error(
            "http_export_failed",
            persisted=self._options.persist_on_error,
            **error.to_dict(),
        )
        return ExportOutcome(success=False, error=error, state=machine.state)

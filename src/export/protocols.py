"""Protocol interfaces for the collaborators of the export stage."""

from typing import Any, Protocol, runtime_checkable

import structlog


@runtime_checkable
class SecretProvider(Protocol):
    """Protocol for secret store access."""

    def get_secret(self, secret_name: str, *keys: str) -> dict[str, str]:
        """Get values for the given keys of a named secret.

        Args:
            secret_name: Name of the secret in the store.
            keys: Keys to return from the secret data.

        Returns:
            Mapping of key to secret value.
        """
        ...


@runtime_checkable
class PipelineContext(Protocol):
    """Protocol for the per-execution context handed to pipeline functions.

    The pipeline engine owns the concrete implementation. The export stage only
    reads identifiers, context values and secrets, logs through ``logger``,
    and calls ``set_retry_data`` when store-and-forward persistence is needed.
    """

    @property
    def correlation_id(self) -> str: ...

    @property
    def pipeline_id(self) -> str: ...

    @property
    def logger(self) -> structlog.stdlib.BoundLogger: ...

    @property
    def secret_provider(self) -> SecretProvider: ...

    @property
    def timeout_seconds(self) -> float | None:
        """Remaining time budget of the execution, if the engine has one."""
        ...

    def get_value(self, key: str) -> str | None:
        """Get a value from the context value store."""
        ...

    def set_retry_data(self, payload: bytes) -> None:
        """Hand a payload to the store-and-forward mechanism."""
        ...


@runtime_checkable
class StringValuesFormatter(Protocol):
    """Protocol for URL template formatters."""

    def invoke(self, template: str, context: PipelineContext, data: Any) -> str:
        """Expand placeholders in a template.

        Args:
            template: String with placeholders.
            context: Pipeline context providing values.
            data: Data passed to the pipeline function.

        Returns:
            Expanded string.
        """
        ...


@runtime_checkable
class DataCoercer(Protocol):
    """Protocol for converting pipeline data into bytes."""

    def __call__(self, data: Any) -> bytes: ...

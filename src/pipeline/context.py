"""In-process pipeline context and secret store.

Reference collaborators for running export functions outside a pipeline
engine: the CLI uses them for one-shot exports and tests use them to
observe retry data and secret lookups.
"""

import uuid
from dataclasses import dataclass, field
from threading import Lock

import structlog


logger = structlog.get_logger()


class SecretNotFoundError(Exception):
    """Raised when a secret or one of its keys does not exist."""

    def __init__(self, secret_name: str, key: str | None = None) -> None:
        """Initialize the error.

        Args:
            secret_name: Name of the secret that was requested.
            key: Missing key, if the secret itself exists.
        """
        self.secret_name = secret_name
        self.key = key
        if key is None:
            super().__init__(f"Secret not found: {secret_name}")
        else:
            super().__init__(f"Secret '{secret_name}' has no key '{key}'")


class InMemorySecretProvider:
    """Thread-safe secret store backed by a dictionary.

    Records every lookup so callers can check which secrets were read.
    """

    def __init__(self, secrets: dict[str, dict[str, str]] | None = None) -> None:
        """Initialize the store.

        Args:
            secrets: Mapping of secret name to secret data.
        """
        self._secrets = {name: dict(data) for name, data in (secrets or {}).items()}
        self._lock = Lock()
        self.lookups: list[tuple[str, tuple[str, ...]]] = []

    def store_secret(self, secret_name: str, data: dict[str, str]) -> None:
        """Add or replace a secret.

        Args:
            secret_name: Name of the secret.
            data: Secret key/value data.
        """
        with self._lock:
            self._secrets[secret_name] = dict(data)

    def get_secret(self, secret_name: str, *keys: str) -> dict[str, str]:
        """Get values for the given keys of a named secret.

        Args:
            secret_name: Name of the secret.
            keys: Keys to return; all keys when none are given.

        Returns:
            Mapping of key to secret value.

        Raises:
            SecretNotFoundError: If the secret or a requested key is missing.
        """
        with self._lock:
            self.lookups.append((secret_name, keys))
            data = self._secrets.get(secret_name)
            if data is None:
                raise SecretNotFoundError(secret_name)
            if not keys:
                return dict(data)
            result: dict[str, str] = {}
            for key in keys:
                if key not in data:
                    raise SecretNotFoundError(secret_name, key)
                result[key] = data[key]
            return result


@dataclass
class AppFunctionContext:
    """Context for one pipeline execution.

    Attributes:
        pipeline_id: Identifier of the pipeline.
        correlation_id: Identifier of the triggering event.
        secret_provider: Secret store used for secret headers.
        values: Context values used for URL placeholders.
        timeout_seconds: Deadline for outgoing requests, None for no limit.
        retry_data: Payload handed to store-and-forward, if any.
    """

    pipeline_id: str = "default-pipeline"
    correlation_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    secret_provider: InMemorySecretProvider = field(
        default_factory=InMemorySecretProvider
    )
    values: dict[str, str] = field(default_factory=dict)
    timeout_seconds: float | None = None
    retry_data: bytes | None = None

    @property
    def logger(self) -> structlog.stdlib.BoundLogger:
        """Get a logger bound to this execution."""
        bound: structlog.stdlib.BoundLogger = logger.bind(
            pipeline_id=self.pipeline_id,
            correlation_id=self.correlation_id,
        )
        return bound

    def get_value(self, key: str) -> str | None:
        """Get a context value.

        Args:
            key: Value key, case-insensitive.

        Returns:
            The value, or None if not set.
        """
        value = self.values.get(key)
        if value is None:
            value = self.values.get(key.lower())
        return value

    def add_value(self, key: str, value: str) -> None:
        """Set a context value.

        Args:
            key: Value key, stored lower-case.
            value: Value to store.
        """
        self.values[key.lower()] = value

    def set_retry_data(self, payload: bytes) -> None:
        """Keep a payload for store-and-forward.

        Args:
            payload: Bytes to replay later.
        """
        self.retry_data = payload

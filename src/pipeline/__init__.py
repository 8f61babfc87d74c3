"""In-process pipeline collaborators for running export functions."""

from src.pipeline.context import (
    AppFunctionContext,
    InMemorySecretProvider,
    SecretNotFoundError,
)


__all__ = [
    "AppFunctionContext",
    "InMemorySecretProvider",
    "SecretNotFoundError",
]

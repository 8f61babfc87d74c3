"""Configuration model for the HTTP export stage."""

from collections.abc import Callable
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from src.export.constants import DEFAULT_MIME_TYPE
from src.export.protocols import PipelineContext, StringValuesFormatter


class CallableFormatter:
    """Adapts a plain ``(template, context, data) -> str`` callable to a formatter."""

    def __init__(self, func: Callable[[str, PipelineContext, Any], str]) -> None:
        self._func = func

    def invoke(self, template: str, context: PipelineContext, data: Any) -> str:
        return self._func(template, context, data)


class HttpSenderOptions(BaseModel):
    """Options available to the HTTP sender.

    Immutable once constructed. Flag combinations are not checked here;
    they are validated on every invocation so that a misconfigured stage
    fails the pipeline run instead of the application start-up.
    """

    model_config = ConfigDict(frozen=True, extra="forbid", arbitrary_types_allowed=True)

    url: str = Field(description="Destination URL, may contain placeholders")
    mime_type: str = Field(
        default=DEFAULT_MIME_TYPE, description="Content-Type sent to the destination"
    )
    persist_on_error: bool = Field(
        default=False, description="Use store-and-forward when the export fails"
    )
    continue_on_send_error: bool = Field(
        default=False,
        description="Let chained senders run after this one fails",
    )
    return_input_data: bool = Field(
        default=False,
        description="Return the input data instead of the response body",
    )
    http_header_name: str = Field(
        default="", description="Header used to pass the configured secret"
    )
    secret_name: str = Field(default="", description="Name of the secret in the store")
    secret_value_key: str = Field(
        default="", description="Key of the value within the secret data"
    )
    url_formatter: Any = Field(
        default=None,
        description="Formatter applied to the URL; context values by default",
    )

    @field_validator("mime_type")
    @classmethod
    def default_mime_type(cls, v: str) -> str:
        """Apply the default content type when none is configured."""
        return v or DEFAULT_MIME_TYPE

    @field_validator("url_formatter")
    @classmethod
    def validate_url_formatter(cls, v: Any) -> StringValuesFormatter | None:
        """Accept formatter objects or plain callables."""
        if v is None or isinstance(v, StringValuesFormatter):
            return v
        if callable(v):
            return CallableFormatter(v)
        msg = "url_formatter must provide invoke() or be callable"
        raise ValueError(msg)

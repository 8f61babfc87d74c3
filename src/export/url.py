"""Destination URL resolution for the HTTP export stage."""

from dataclasses import dataclass
from typing import Any

import httpx

from src.export.errors import ExportError, UrlResolutionError
from src.export.protocols import PipelineContext, StringValuesFormatter
from src.export.redact import redact_url_credentials


_ALLOWED_SCHEMES = frozenset({"http", "https"})


@dataclass(frozen=True)
class ResolvedUrl:
    """A destination URL ready to send to.

    Attributes:
        url: Parsed URL, including any credentials.
        redacted: String form without credentials, used for logs and metrics.
    """

    url: httpx.URL
    redacted: str


def resolve_url(
    template: str,
    formatter: StringValuesFormatter,
    context: PipelineContext,
    data: Any,
) -> ResolvedUrl:
    """Expand a URL template and parse the result.

    Args:
        template: Configured URL, possibly with placeholders.
        formatter: Formatter that expands the placeholders.
        context: Pipeline context.
        data: Data passed to the pipeline function.

    Returns:
        ResolvedUrl with the parsed and redacted forms.

    Raises:
        UrlResolutionError: If expansion or parsing fails.
    """
    pipeline_id = context.pipeline_id
    try:
        formatted = formatter.invoke(template, context, data)
    except UrlResolutionError:
        raise
    except (ExportError, ValueError, KeyError, TypeError) as e:
        msg = f"in pipeline '{pipeline_id}', unable to format URL: {e}"
        raise UrlResolutionError(msg, pipeline_id=pipeline_id) from e

    try:
        url = httpx.URL(formatted)
    except httpx.InvalidURL as e:
        msg = f"in pipeline '{pipeline_id}', unable to parse URL: {e}"
        raise UrlResolutionError(msg, pipeline_id=pipeline_id) from e

    redacted = redact_url_credentials(str(url))
    if url.scheme not in _ALLOWED_SCHEMES or not url.host:
        msg = (
            f"in pipeline '{pipeline_id}', URL '{redacted}' must be an "
            "absolute http or https URL"
        )
        raise UrlResolutionError(msg, pipeline_id=pipeline_id)

    return ResolvedUrl(url=url, redacted=redacted)

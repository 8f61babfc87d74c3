"""Default URL formatter using pipeline context values."""

import re
from typing import Any

from src.export.errors import UrlResolutionError
from src.export.protocols import PipelineContext
from src.export.redact import redact_url_credentials


_PLACEHOLDER_PATTERN = re.compile(r"\{([^{}]+)\}")


class ContextValuesFormatter:
    """Replaces ``{key}`` placeholders with values from the context.

    Every placeholder must resolve; a missing value fails the expansion
    rather than sending to a half-formatted URL.
    """

    def invoke(self, template: str, context: PipelineContext, data: Any) -> str:  # noqa: ARG002
        """Expand placeholders in a template.

        Args:
            template: String with ``{key}`` placeholders.
            context: Pipeline context providing values.
            data: Data passed to the pipeline function (unused).

        Returns:
            Expanded string.

        Raises:
            UrlResolutionError: If a placeholder has no value in the context.
        """
        missing: list[str] = []

        def _replace(match: re.Match[str]) -> str:
            key = match.group(1).strip()
            value = context.get_value(key)
            if value is None:
                missing.append(key)
                return match.group(0)
            return value

        result = _PLACEHOLDER_PATTERN.sub(_replace, template)
        if missing:
            msg = (
                "failed to replace all context placeholders in "
                f"'{redact_url_credentials(template)}': "
                f"no value for {', '.join(missing)}"
            )
            raise UrlResolutionError(msg, pipeline_id=context.pipeline_id)
        return result

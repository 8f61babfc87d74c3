"""Result model for the HTTP export stage."""

from dataclasses import dataclass
from typing import Any

from src.export.errors import ExportError
from src.export.state_machine import ExportState


@dataclass(frozen=True)
class ExportOutcome:
    """Outcome of one export invocation.

    Attributes:
        success: Whether the pipeline should continue.
        payload: Data for the next pipeline function: the response body,
            or the original input data when chaining.
        error: Error that made the export fail, if any.
        state: Terminal state of the invocation.
    """

    success: bool
    payload: Any = None
    error: ExportError | None = None
    state: ExportState = ExportState.SUCCEEDED

    @property
    def persisted(self) -> bool:
        """Whether the payload was handed to store-and-forward."""
        return self.state is ExportState.FAILED_PERSISTING

    def as_result(self) -> tuple[bool, Any]:
        """Convert to the pipeline function return contract.

        Returns:
            Tuple of continue flag and output. The output is the error
            when the pipeline must stop.
        """
        if self.success:
            return True, self.payload
        return False, self.error

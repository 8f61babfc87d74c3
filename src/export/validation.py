"""Validation of export flag combinations."""

from src.export.config import HttpSenderOptions
from src.export.errors import ConfigurationError


def validate_export_flags(options: HttpSenderOptions, pipeline_id: str) -> None:
    """Reject contradictory export flags.

    Store-and-forward replays the pipeline starting at the failed function,
    so it cannot be combined with continuing past that function.

    Args:
        options: Sender options.
        pipeline_id: Pipeline identifier for error messages.

    Raises:
        ConfigurationError: If the flags contradict each other.
    """
    if options.persist_on_error and options.continue_on_send_error:
        msg = (
            f"in pipeline '{pipeline_id}' persistOnError & continueOnSendError "
            "can not both be set to true for HTTP Export"
        )
        raise ConfigurationError(msg, pipeline_id=pipeline_id)

    if options.continue_on_send_error and not options.return_input_data:
        msg = (
            f"in pipeline '{pipeline_id}' continueOnSendError can only be used "
            "in conjunction with returnInputData for multiple HTTP Export"
        )
        raise ConfigurationError(msg, pipeline_id=pipeline_id)

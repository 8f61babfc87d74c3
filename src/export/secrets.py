"""Secret-backed header resolution for the HTTP export stage."""

from src.export.config import HttpSenderOptions
from src.export.errors import ConfigurationError, SecretResolutionError
from src.export.protocols import PipelineContext


def determine_secret_usage(options: HttpSenderOptions, pipeline_id: str) -> bool:
    """Decide whether a secret header must be attached.

    Args:
        options: Sender options.
        pipeline_id: Pipeline identifier for error messages.

    Returns:
        True if all secret fields are provided, False if none are.

    Raises:
        ConfigurationError: If the secret fields are only partially provided.
    """
    # not using secrets if both are empty
    if not options.secret_name and not options.secret_value_key:
        if not options.http_header_name:
            return False
        msg = (
            f"in pipeline '{pipeline_id}', secretName & secretValueKey must be "
            "specified when HTTP Header Name is specified"
        )
        raise ConfigurationError(msg, pipeline_id=pipeline_id)

    if options.secret_name and not options.secret_value_key:
        msg = (
            f"in pipeline '{pipeline_id}', secretName was specified "
            "but no secretValueKey was provided"
        )
        raise ConfigurationError(msg, pipeline_id=pipeline_id)

    if options.secret_value_key and not options.secret_name:
        msg = (
            f"in pipeline '{pipeline_id}', secretValueKey was specified "
            "but no secretName was provided"
        )
        raise ConfigurationError(msg, pipeline_id=pipeline_id)

    if not options.http_header_name:
        msg = f"in pipeline '{pipeline_id}', HTTP Header Name required when using secrets"
        raise ConfigurationError(msg, pipeline_id=pipeline_id)

    return True


def resolve_secret_header(
    options: HttpSenderOptions,
    context: PipelineContext,
) -> tuple[str, str]:
    """Fetch the secret value for the configured header.

    Args:
        options: Sender options with all secret fields set.
        context: Pipeline context giving access to the secret store.

    Returns:
        Tuple of header name and secret value.

    Raises:
        SecretResolutionError: If the lookup fails or the key is missing.
    """
    pipeline_id = context.pipeline_id
    try:
        secrets = context.secret_provider.get_secret(
            options.secret_name, options.secret_value_key
        )
    except Exception as e:
        msg = (
            f"in pipeline '{pipeline_id}', unable to get secret "
            f"'{options.secret_name}': {e}"
        )
        raise SecretResolutionError(
            msg, secret_name=options.secret_name, pipeline_id=pipeline_id
        ) from e

    value = secrets.get(options.secret_value_key)
    if value is None:
        msg = (
            f"in pipeline '{pipeline_id}', secret '{options.secret_name}' "
            f"has no value for key '{options.secret_value_key}'"
        )
        raise SecretResolutionError(
            msg, secret_name=options.secret_name, pipeline_id=pipeline_id
        )

    context.logger.debug(
        "secret_header_resolved",
        header=options.http_header_name,
        secret_name=options.secret_name,
        secret_value_key=options.secret_value_key,
    )
    return options.http_header_name, value

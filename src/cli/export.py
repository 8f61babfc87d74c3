"""CLI commands for the HTTP export stage."""

import logging
import sys
import uuid
from dataclasses import dataclass
from pathlib import Path

import click
import structlog

from src.export.config import HttpSenderOptions
from src.export.constants import HTTP_METHOD_POST, HTTP_METHOD_PUT
from src.export.metrics import ExportMetricsRegistry
from src.export.redact import redact_url_credentials
from src.export.sender import HttpSender
from src.observability.logging import bind_pipeline_context, configure_logging
from src.pipeline.context import AppFunctionContext, InMemorySecretProvider
from src.settings import get_settings


logger = structlog.get_logger()


@dataclass
class SendOptions:
    """Options for the send command."""

    url: str
    method: str
    payload: bytes
    mime_type: str
    headers: dict[str, str]
    values: dict[str, str]
    secrets: dict[str, dict[str, str]]
    secret_header: str
    secret_name: str
    secret_key: str
    persist_on_error: bool
    continue_on_send_error: bool
    return_input_data: bool
    pipeline_id: str
    timeout: float | None
    show_metrics: bool


def _parse_pairs(pairs: tuple[str, ...], separator: str, option: str) -> dict[str, str]:
    """Parse repeated ``key<sep>value`` options.

    Args:
        pairs: Raw option values.
        separator: Separator between key and value.
        option: Option name for error messages.

    Returns:
        Parsed mapping.
    """
    result: dict[str, str] = {}
    for pair in pairs:
        key, sep, value = pair.partition(separator)
        if not sep or not key.strip():
            msg = f"expected KEY{separator}VALUE, got '{pair}'"
            raise click.BadParameter(msg, param_hint=option)
        result[key.strip()] = value.strip()
    return result


def _parse_secrets(pairs: tuple[str, ...]) -> dict[str, dict[str, str]]:
    """Parse repeated ``name.key=value`` secret options."""
    secrets: dict[str, dict[str, str]] = {}
    for path, value in _parse_pairs(pairs, "=", "--secret").items():
        name, sep, key = path.partition(".")
        if not sep or not name or not key:
            msg = f"expected NAME.KEY=VALUE, got '{path}={value}'"
            raise click.BadParameter(msg, param_hint="--secret")
        secrets.setdefault(name, {})[key] = value
    return secrets


def _execute_send(options: SendOptions, reservoir_size: int) -> int:
    """Run one export and report the outcome.

    Args:
        options: Send options.
        reservoir_size: Reservoir size for size histograms.

    Returns:
        Process exit code.
    """
    sender = HttpSender(
        HttpSenderOptions(
            url=options.url,
            mime_type=options.mime_type,
            persist_on_error=options.persist_on_error,
            continue_on_send_error=options.continue_on_send_error,
            return_input_data=options.return_input_data,
            http_header_name=options.secret_header,
            secret_name=options.secret_name,
            secret_value_key=options.secret_key,
        ),
        reservoir_size=reservoir_size,
    )
    sender.set_http_request_headers(options.headers)

    context = AppFunctionContext(
        pipeline_id=options.pipeline_id,
        correlation_id=str(uuid.uuid4()),
        secret_provider=InMemorySecretProvider(options.secrets),
        timeout_seconds=options.timeout,
    )
    for key, value in options.values.items():
        context.add_value(key, value)
    bind_pipeline_context(context.pipeline_id, context.correlation_id)

    outcome = sender.export(context, options.payload, options.method)

    if options.show_metrics:
        click.echo(ExportMetricsRegistry.get_instance().to_prometheus_format())

    if not outcome.success:
        click.echo(f"Export failed: {outcome.error}", err=True)
        if context.retry_data is not None:
            click.echo(
                f"Retry data stored ({len(context.retry_data)} bytes)", err=True
            )
        return 1

    if outcome.error is not None:
        click.echo(f"Export failed, continuing: {outcome.error}", err=True)
    elif options.return_input_data:
        click.echo(f"Exported {len(options.payload)} bytes")
    else:
        click.echo(outcome.payload.decode("utf-8", errors="replace"))
    return 0


@click.group()
@click.version_option(version="0.1.0")
def cli() -> None:
    """HTTP export stage CLI."""


@cli.command()
@click.argument("url")
@click.option(
    "--method",
    type=click.Choice([HTTP_METHOD_POST, HTTP_METHOD_PUT], case_sensitive=False),
    default=HTTP_METHOD_POST,
    help="HTTP method (default: POST).",
)
@click.option("--data", "data_text", type=str, help="Payload given inline.")
@click.option(
    "--file",
    "data_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Read the payload from a file.",
)
@click.option(
    "--mime-type",
    default="",
    help="Content-Type of the payload (default: application/json).",
)
@click.option(
    "--header", "-H", "headers", multiple=True, help="Static header as NAME:VALUE."
)
@click.option(
    "--value", "values", multiple=True, help="Context value for URL placeholders as KEY=VALUE."
)
@click.option(
    "--secret", "secrets", multiple=True, help="Secret value as NAME.KEY=VALUE."
)
@click.option("--secret-header", default="", help="Header that carries the secret.")
@click.option("--secret-name", default="", help="Name of the secret.")
@click.option("--secret-key", default="", help="Key of the value within the secret.")
@click.option("--persist-on-error", is_flag=True, help="Store the payload for retry on failure.")
@click.option(
    "--continue-on-send-error",
    is_flag=True,
    help="Continue the pipeline when the export fails (requires --return-input-data).",
)
@click.option(
    "--return-input-data", is_flag=True, help="Return the input instead of the response."
)
@click.option("--pipeline-id", default="cli", help="Pipeline identifier for logs.")
@click.option("--timeout", type=float, default=None, help="Request deadline in seconds.")
@click.option("--show-metrics", is_flag=True, help="Print destination metrics afterwards.")
@click.option(
    "--json-logs/--no-json-logs",
    default=None,
    help="Use JSON format for logs (default from HTTP_EXPORT_JSON_LOGS).",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging.")
def send(  # noqa: PLR0913
    url: str,
    method: str,
    data_text: str | None,
    data_file: Path | None,
    mime_type: str,
    headers: tuple[str, ...],
    values: tuple[str, ...],
    secrets: tuple[str, ...],
    secret_header: str,
    secret_name: str,
    secret_key: str,
    persist_on_error: bool,
    continue_on_send_error: bool,
    return_input_data: bool,
    pipeline_id: str,
    timeout: float | None,
    show_metrics: bool,
    json_logs: bool | None,
    verbose: bool,
) -> None:
    """Send a payload to URL once, the way a pipeline export function would.

    URL may contain {key} placeholders filled from --value options.
    """
    settings = get_settings()
    level = logging.DEBUG if verbose else settings.log_level_value
    configure_logging(
        level=level,
        json_format=settings.json_logs if json_logs is None else json_logs,
    )

    if (data_text is None) == (data_file is None):
        msg = "exactly one of --data or --file is required"
        raise click.UsageError(msg)
    payload = data_file.read_bytes() if data_file else (data_text or "").encode("utf-8")

    options = SendOptions(
        url=url,
        method=method.upper(),
        payload=payload,
        mime_type=mime_type,
        headers=_parse_pairs(headers, ":", "--header"),
        values=_parse_pairs(values, "=", "--value"),
        secrets=_parse_secrets(secrets),
        secret_header=secret_header,
        secret_name=secret_name,
        secret_key=secret_key,
        persist_on_error=persist_on_error,
        continue_on_send_error=continue_on_send_error,
        return_input_data=return_input_data,
        pipeline_id=pipeline_id,
        timeout=timeout,
        show_metrics=show_metrics,
    )
    logger.debug(
        "cli_send_started",
        url_template=redact_url_credentials(url),
        method=options.method,
    )
    sys.exit(_execute_send(options, settings.metrics_reservoir_size))


if __name__ == "__main__":
    cli()

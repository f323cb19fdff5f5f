from __future__ import annotations

import json
from dataclasses import dataclass, replace
from typing import List, Optional

import typer

from cli.render import echo_heading, render_records, render_summary, summary_payload
from logging_config import configure_logging
from services.aggregator import build_aggregator
from services.errors import BatchValidationError, ConfigurationError, FetchError
from services.transport import HttpxTransport
from settings import ClientConfig, load_client_config


@dataclass
class CLIState:
    config: ClientConfig
    transport: HttpxTransport


app = typer.Typer(
    help="Fetch and aggregate EnergyGrid fleet telemetry.",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def _get_state(ctx: typer.Context) -> CLIState:
    state = ctx.obj
    if not isinstance(state, CLIState):
        raise typer.Exit(code=1)
    return state


def _fail(message: str) -> None:
    typer.secho(message, fg=typer.colors.RED, err=True)
    raise typer.Exit(code=1)


@app.callback()
def main(
    ctx: typer.Context,
    base_url: Optional[str] = typer.Option(
        None,
        "--base-url",
        "-b",
        help="EnergyGrid API base URL (defaults to ENERGYGRID_BASE_URL env or http://localhost:3000).",
    ),
    token: Optional[str] = typer.Option(
        None,
        "--token",
        help="Shared secret used to sign requests (defaults to ENERGYGRID_TOKEN env).",
    ),
    timeout: Optional[float] = typer.Option(
        None,
        "--timeout",
        help="Per-request timeout in seconds.",
    ),
    log_level: Optional[str] = typer.Option(
        None,
        "--log-level",
        help="Logging level (defaults to LOG_LEVEL env or INFO).",
    ),
) -> None:
    """Entry point for the CLI."""
    configure_logging(log_level.upper() if log_level else None)
    config = load_client_config(base_url=base_url, token=token, timeout=timeout)
    transport = HttpxTransport(base_url=config.base_url, timeout=config.timeout)
    ctx.obj = CLIState(config=config, transport=transport)
    ctx.call_on_close(transport.close)


@app.command("aggregate")
def aggregate_command(
    ctx: typer.Context,
    total_devices: Optional[int] = typer.Option(None, "--total-devices", "-n", help="Number of devices to query."),
    batch_size: Optional[int] = typer.Option(None, "--batch-size", help="Devices per request."),
    max_retries: Optional[int] = typer.Option(None, "--max-retries", help="Attempts per batch."),
    retry_delay_ms: Optional[int] = typer.Option(None, "--retry-delay-ms", help="Base backoff delay."),
    min_interval_ms: Optional[int] = typer.Option(
        None, "--min-interval-ms", help="Minimum spacing between requests."
    ),
    as_json: bool = typer.Option(False, "--json", help="Print the report as JSON."),
) -> None:
    """Fetch telemetry for the whole fleet and print the aggregate report."""
    state = _get_state(ctx)
    overrides = {
        "total_devices": total_devices,
        "batch_size": batch_size,
        "max_retries": max_retries,
        "retry_delay_ms": retry_delay_ms,
        "min_request_interval_ms": min_interval_ms,
    }
    config = replace(state.config, **{key: value for key, value in overrides.items() if value is not None})

    try:
        aggregator = build_aggregator(config, transport=state.transport)
        summary = aggregator.run(config.total_devices, config.batch_size)
    except ConfigurationError as exc:
        _fail(f"Invalid configuration: {exc}")

    stats = aggregator.requester.stats
    if as_json:
        typer.echo(json.dumps(summary_payload(summary, stats), indent=2, default=str))
        return
    render_summary(summary, stats, expected_total=config.total_devices)


@app.command("fetch")
def fetch_command(
    ctx: typer.Context,
    serial_numbers: List[str] = typer.Argument(..., help="Serial numbers to query in one batch."),
) -> None:
    """Fetch a single batch, e.g. to follow up on a failed one."""
    state = _get_state(ctx)
    try:
        requester = build_aggregator(state.config, transport=state.transport).requester
        records = requester.fetch(serial_numbers)
    except (ConfigurationError, BatchValidationError, FetchError) as exc:
        _fail(str(exc))

    echo_heading(f"Devices ({len(records)})")
    render_records(records)

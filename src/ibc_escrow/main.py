"""CLI entrypoint for the IBC escrow monitor."""

from __future__ import annotations

import asyncio
import json
import os
from pathlib import Path
from typing import Annotated, Any

import typer
from rich.console import Console

from .domain import AggregationSnapshot
from .logger import setup_logging
from .report import render_snapshot, snapshot_to_dict
from .settings import CONFIG_ENV_VAR, MonitorSettings
from .state import AppState

app = typer.Typer(
    add_completion=False,
    no_args_is_help=False,
    add_help_option=True,
    pretty_exceptions_enable=True,
    pretty_exceptions_short=True,
    pretty_exceptions_show_locals=False,
    rich_markup_mode="rich",
    help="Inventory tokens held in IBC transfer escrow accounts.",
)


def _emit(
    snapshot: AggregationSnapshot | None,
    *,
    as_json: bool,
    query: str,
    error: str | None,
    console: Console,
) -> None:
    """Print a snapshot (or only the error when there is none yet)."""
    if as_json:
        payload: dict[str, Any] = snapshot_to_dict(snapshot) if snapshot else {}
        if error:
            payload["error"] = error
        typer.echo(json.dumps(payload, indent=2))
        return
    render_snapshot(snapshot, console, query=query, error=error)


@app.callback(invoke_without_command=True)
def monitor(
    config_path: Annotated[
        Path | None,
        typer.Option(
            "--config",
            "-c",
            help="Path to a TOML config file (can include [ibc_escrow] table).",
        ),
    ] = None,
    lcd_url: Annotated[
        str | None,
        typer.Option("--lcd-url", help="Base URL of the chain's LCD/REST endpoint."),
    ] = None,
    page_limit: Annotated[
        int | None,
        typer.Option("--page-limit", help="pagination.limit used for list queries."),
    ] = None,
    concurrency: Annotated[
        int | None,
        typer.Option(
            "--concurrency", help="Maximum channels resolved at the same time."
        ),
    ] = None,
    counterparty: Annotated[
        bool | None,
        typer.Option(
            "--counterparty/--no-counterparty",
            help="Resolve the counterparty chain id of each channel.",
        ),
    ] = None,
    watch_mode: Annotated[
        bool,
        typer.Option(
            "--watch/--once",
            help="Keep refreshing every --interval seconds instead of running once.",
        ),
    ] = False,
    interval: Annotated[
        float | None,
        typer.Option("--interval", help="Seconds between refreshes in --watch mode."),
    ] = None,
    query: Annotated[
        str,
        typer.Option(
            "--filter", help="Only show channels whose id or chain id contains TEXT."
        ),
    ] = "",
    as_json: Annotated[
        bool,
        typer.Option("--json", help="Print the snapshot as JSON."),
    ] = False,
    log_level: Annotated[
        str | None,
        typer.Option(
            "--log-level",
            help="Override logging verbosity (TRACE, DEBUG, INFO, WARNING, ERROR, CRITICAL).",
        ),
    ] = None,
    show_config: Annotated[
        bool,
        typer.Option(
            "--show-config",
            help="Print effective config and exit.",
        ),
    ] = False,
):
    """Aggregate escrowed balances for every open transfer channel.

    Loads configuration, runs one aggregation pass (or keeps refreshing with
    --watch) and prints the result as a table or JSON.
    """
    if config_path:
        os.environ[CONFIG_ENV_VAR] = str(config_path)

    init_kwargs: dict[str, Any] = {}
    if lcd_url is not None:
        init_kwargs["lcd_url"] = lcd_url
    if page_limit is not None:
        init_kwargs["page_limit"] = page_limit
    if concurrency is not None:
        init_kwargs["concurrency_limit"] = concurrency
    if counterparty is not None:
        init_kwargs["enable_counterparty_resolution"] = counterparty
    if interval is not None:
        init_kwargs["auto_refresh_seconds"] = interval
    if log_level is not None:
        init_kwargs["log_level"] = log_level.upper()

    settings = MonitorSettings(**init_kwargs)

    setup_logging(settings.log_level)
    state = AppState.from_settings(settings)

    if show_config:
        typer.echo(json.dumps(settings.as_safe_dict(), indent=2))
        raise typer.Exit(code=0)

    if watch_mode and not settings.watch_enabled:
        raise typer.BadParameter(
            "--watch requires a positive refresh interval.",
            param_hint=["--interval", "IBC_ESCROW_AUTO_REFRESH_SECONDS"],
        )

    from .pipeline.aggregator import AggregationError
    from .pipeline.run import build_aggregator, run_pass, watch

    aggregator = build_aggregator(settings)
    console = Console()

    if watch_mode:

        def _on_snapshot(snapshot: AggregationSnapshot) -> None:
            _emit(snapshot, as_json=as_json, query=query, error=None, console=console)

        def _on_error(exc: Exception, last_good: AggregationSnapshot | None) -> None:
            _emit(
                last_good,
                as_json=as_json,
                query=query,
                error=str(exc),
                console=console,
            )

        try:
            asyncio.run(watch(state, aggregator, _on_snapshot, _on_error))
        except KeyboardInterrupt:
            raise typer.Exit(code=0)
        return

    try:
        snapshot = asyncio.run(run_pass(state, aggregator))
    except (AggregationError, asyncio.TimeoutError) as e:
        _emit(None, as_json=as_json, query=query, error=str(e), console=console)
        raise typer.Exit(code=1)

    _emit(snapshot, as_json=as_json, query=query, error=None, console=console)


def run() -> None:
    """Entrypoint used by the console script."""
    app()


if __name__ == "__main__":
    run()

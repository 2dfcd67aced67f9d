"""High-level pipeline orchestration."""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable

from ..clients.lcd import LcdClient
from ..denoms import DenomResolver
from ..domain import AggregationSnapshot
from ..settings import MonitorSettings
from ..state import AppState
from .aggregator import AggregationError, ChannelAggregator

SnapshotHandler = Callable[[AggregationSnapshot], Awaitable[None] | None]
ErrorHandler = Callable[[Exception, AggregationSnapshot | None], Awaitable[None] | None]


def build_aggregator(settings: MonitorSettings) -> ChannelAggregator:
    """Wire client, resolver and aggregator from settings.

    The resolver, and with it both denom caches, lives as long as the
    returned aggregator.
    """
    client = LcdClient(
        settings.lcd_url,
        page_limit=settings.page_limit,
        request_timeout=settings.request_timeout,
        request_attempts=settings.request_attempts,
        max_pages=settings.max_pages,
    )
    resolver = DenomResolver(client)
    return ChannelAggregator(
        client,
        resolver,
        concurrency_limit=settings.concurrency_limit,
        resolve_counterparty=settings.enable_counterparty_resolution,
        transfer_port=settings.transfer_port,
    )


async def run_pass(
    state: AppState, aggregator: ChannelAggregator
) -> AggregationSnapshot:
    """Execute one aggregation pass under the optional global timeout.

    Args:
        state: Application state containing settings and logger
        aggregator: Aggregator to run

    Raises:
        AggregationError: If the channel listing or metadata priming fails
        asyncio.TimeoutError: If the pass exceeds ``global_timeout_seconds``
    """
    s = state.settings
    log = state.logger

    log.info("Starting aggregation pass", extra={"lcd_url": s.lcd_url})

    timeout_s = s.global_timeout_seconds
    try:
        if timeout_s is None or timeout_s <= 0:
            return await aggregator.run()
        async with asyncio.timeout(timeout_s):
            return await aggregator.run()
    except asyncio.TimeoutError as exc:
        log.error(
            "Aggregation pass timed out",
            extra={"timeout_seconds": timeout_s},
        )
        raise asyncio.TimeoutError(
            f"Aggregation exceeded global timeout {timeout_s}s\n"
            " N.B. This can be changed via `global_timeout_seconds`."
        ) from exc


async def _call(handler: Callable[..., Awaitable[None] | None], *args: object) -> None:
    result = handler(*args)
    if asyncio.iscoroutine(result):
        await result


async def watch(
    state: AppState,
    aggregator: ChannelAggregator,
    on_snapshot: SnapshotHandler,
    on_error: ErrorHandler,
    *,
    iterations: int | None = None,
) -> AggregationSnapshot | None:
    """Run passes back to back, ``auto_refresh_seconds`` apart.

    A run-level failure is handed to ``on_error`` together with the last
    good snapshot and the loop carries on. Each pass completes before the
    next one is scheduled.

    Args:
        iterations: Stop after this many passes; ``None`` runs until cancelled

    Returns:
        The last good snapshot, if any
    """
    interval = state.settings.auto_refresh_seconds
    last_good: AggregationSnapshot | None = None
    completed = 0

    while iterations is None or completed < iterations:
        try:
            last_good = await run_pass(state, aggregator)
        except (AggregationError, asyncio.TimeoutError) as e:
            state.logger.error("Aggregation pass failed: %s", e)
            await _call(on_error, e, last_good)
        else:
            await _call(on_snapshot, last_good)

        completed += 1
        if iterations is not None and completed >= iterations:
            break
        await asyncio.sleep(interval)

    return last_good

"""Channel escrow aggregation."""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone

from ..clients.lcd import LcdClient
from ..constants import DEFAULT_CONCURRENCY_LIMIT, TRANSFER_PORT
from ..denoms import DenomResolver, format_amount
from ..domain import (
    AggregationSnapshot,
    Channel,
    ChannelOutcome,
    LookupStatus,
    ResolvedBalance,
)
from ..logger import get_logger

logger = get_logger(__name__)


class AggregationError(RuntimeError):
    """Run-level failure: metadata priming or the channel listing failed."""

    pass


def _error_message(exc: BaseException) -> str:
    return str(exc) or type(exc).__name__


class ChannelAggregator:
    """Builds a per-channel view of everything held in IBC transfer escrow.

    Every open channel on the transfer port is resolved independently on a
    bounded worker pool; a failure in one channel becomes that channel's
    error outcome and never affects its siblings.
    """

    def __init__(
        self,
        client: LcdClient,
        resolver: DenomResolver,
        *,
        concurrency_limit: int = DEFAULT_CONCURRENCY_LIMIT,
        resolve_counterparty: bool = True,
        transfer_port: str = TRANSFER_PORT,
    ):
        if concurrency_limit < 1:
            raise ValueError("concurrency_limit must be at least 1")
        self._client = client
        self._resolver = resolver
        self._concurrency_limit = concurrency_limit
        self._counterparty_enabled = resolve_counterparty
        self._transfer_port = transfer_port
        self._run_lock = asyncio.Lock()

    @property
    def resolver(self) -> DenomResolver:
        return self._resolver

    async def run(self) -> AggregationSnapshot:
        """Execute one aggregation pass.

        Calls are serialized: a second caller waits for the pass in flight.

        Returns:
            Snapshot with exactly one outcome per open transfer channel, in
            channel listing order, and the UTC completion time.

        Raises:
            AggregationError: If metadata priming or channel listing fails
        """
        async with self._run_lock:
            try:
                await self._resolver.prime_metadata_cache()
                channels = await self.list_transfer_channels()
            except Exception as e:
                raise AggregationError(
                    f"Aggregation pass failed: {_error_message(e)}"
                ) from e

            logger.info(
                "Resolving %d open %s channels (concurrency=%d)",
                len(channels),
                self._transfer_port,
                self._concurrency_limit,
            )
            outcomes = await self._resolve_all(channels)

        snapshot = AggregationSnapshot(
            outcomes=tuple(outcomes), updated_at=datetime.now(timezone.utc)
        )
        logger.info(
            "Aggregation finished: %d channels, %d failed",
            len(snapshot.outcomes),
            snapshot.failed_channels,
        )
        return snapshot

    async def list_transfer_channels(self) -> list[Channel]:
        channels = await self._client.get_all_channels()
        selected = [
            channel
            for channel in channels
            if channel.is_open and channel.port_id == self._transfer_port
        ]
        logger.debug(
            "Listed %d channels, %d open on port %s",
            len(channels),
            len(selected),
            self._transfer_port,
        )
        return selected

    async def _resolve_all(self, channels: list[Channel]) -> list[ChannelOutcome]:
        """Resolve channels on a FIFO worker pool of ``concurrency_limit`` workers.

        Each result lands in the slot of its input index, so output order
        matches input order whatever the completion order.
        """
        slots: list[ChannelOutcome | None] = [None] * len(channels)
        queue: asyncio.Queue[tuple[int, Channel]] = asyncio.Queue()
        for item in enumerate(channels):
            queue.put_nowait(item)

        async def worker() -> None:
            while True:
                try:
                    index, channel = queue.get_nowait()
                except asyncio.QueueEmpty:
                    return
                slots[index] = await self.resolve_channel(channel)

        workers = min(self._concurrency_limit, len(channels))
        await asyncio.gather(*(worker() for _ in range(workers)))

        return [outcome for outcome in slots if outcome is not None]

    async def resolve_channel(self, channel: Channel) -> ChannelOutcome:
        """Resolve escrow, balances and counterparty for one channel; never raises."""
        try:
            escrow_address = await self._client.get_escrow_address(
                channel.channel_id, channel.port_id
            )
            balances = await self._resolve_balances(escrow_address)
            counterparty_chain_id = (
                await self._resolve_counterparty(channel)
                if self._counterparty_enabled
                else None
            )
        except Exception as e:
            logger.warning(
                "Channel %s/%s failed: %s",
                channel.port_id,
                channel.channel_id,
                _error_message(e),
            )
            return ChannelOutcome.failure(channel, _error_message(e))

        logger.debug(
            "Channel %s: escrow %s holds %d denoms",
            channel.channel_id,
            escrow_address,
            len(balances),
        )
        return ChannelOutcome.success(
            channel,
            escrow_address,
            balances,
            counterparty_chain_id=counterparty_chain_id,
        )

    async def _resolve_balances(self, address: str) -> list[ResolvedBalance]:
        coins = await self._client.get_all_balances(address)
        resolved: list[ResolvedBalance] = []
        for coin in coins:
            if coin.is_zero:
                continue
            info = await self._resolver.resolve(coin.denom)
            resolved.append(
                ResolvedBalance(
                    amount=coin.amount,
                    raw_denom=coin.denom,
                    display_amount=format_amount(coin.amount, info.decimals),
                    display_denom=info.display_denom,
                )
            )
        return resolved

    async def _resolve_counterparty(self, channel: Channel) -> str | None:
        connection_id = channel.first_connection
        if connection_id is None:
            return None
        result = await self._client.get_counterparty_chain_id(connection_id)
        if result.status is LookupStatus.FAILED:
            logger.warning(
                "Counterparty chain for %s (%s) unavailable: %s",
                channel.channel_id,
                connection_id,
                result.error,
            )
        return result.value if result.found else None

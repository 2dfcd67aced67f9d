from __future__ import annotations

import asyncio
from collections import Counter
from typing import Any

import pytest

from ibc_escrow.domain import (
    Channel,
    ChannelState,
    Coin,
    Counterparty,
    DenomMetadata,
    DenomTrace,
    DenomUnit,
    LookupResult,
)


class FakeLcdClient:
    """In-memory stand-in for LcdClient that counts calls per method.

    Values that are Exception instances are raised instead of returned.
    """

    def __init__(
        self,
        *,
        channels: list[Channel] | Exception | None = None,
        escrow: dict[str, str | Exception] | None = None,
        balances: dict[str, list[Coin] | Exception] | None = None,
        traces: dict[str, LookupResult[DenomTrace]] | None = None,
        metadatas: list[DenomMetadata] | Exception | None = None,
        counterparties: dict[str, LookupResult[str]] | None = None,
        delay: float = 0,
    ):
        self.channels = channels if channels is not None else []
        self.escrow = escrow or {}
        self.balances = balances or {}
        self.traces = traces or {}
        self.metadatas = metadatas if metadatas is not None else []
        self.counterparties = counterparties or {}
        self.delay = delay
        self.calls: Counter[str] = Counter()
        self.trace_calls: Counter[str] = Counter()
        self.in_flight = 0
        self.max_in_flight = 0

    @staticmethod
    def _unwrap(value: Any) -> Any:
        if isinstance(value, Exception):
            raise value
        return value

    async def get_all_channels(self) -> list[Channel]:
        self.calls["channels"] += 1
        await asyncio.sleep(0)
        return self._unwrap(self.channels)

    async def get_escrow_address(
        self, channel_id: str, port_id: str = "transfer"
    ) -> str:
        self.calls["escrow"] += 1
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delay)
            address = self.escrow.get(channel_id, f"cosmos1escrow{channel_id}")
            return self._unwrap(address)
        finally:
            self.in_flight -= 1

    async def get_all_balances(self, address: str) -> list[Coin]:
        self.calls["balances"] += 1
        await asyncio.sleep(0)
        return self._unwrap(self.balances.get(address, []))

    async def get_denom_trace(self, denom_hash: str) -> LookupResult[DenomTrace]:
        self.calls["trace"] += 1
        self.trace_calls[denom_hash] += 1
        await asyncio.sleep(0.01)
        return self.traces.get(denom_hash, LookupResult.not_found())

    async def get_all_denoms_metadata(self) -> list[DenomMetadata]:
        self.calls["metadata"] += 1
        await asyncio.sleep(0.01)
        return self._unwrap(self.metadatas)

    async def get_counterparty_chain_id(self, connection_id: str) -> LookupResult[str]:
        self.calls["counterparty"] += 1
        await asyncio.sleep(0)
        return self.counterparties.get(connection_id, LookupResult.not_found())


def build_channel(
    channel_id: str,
    *,
    port_id: str = "transfer",
    state: ChannelState = ChannelState.OPEN,
    connection: str | None = "connection-0",
) -> Channel:
    return Channel(
        channel_id=channel_id,
        port_id=port_id,
        state=state,
        ordering="ORDER_UNORDERED",
        counterparty=Counterparty(port_id="transfer", channel_id="channel-99"),
        connection_hops=(connection,) if connection else (),
        version="ics20-1",
    )


@pytest.fixture
def fake_lcd():
    return FakeLcdClient


@pytest.fixture
def make_channel():
    return build_channel


@pytest.fixture
def osmo_metadata() -> DenomMetadata:
    return DenomMetadata(
        base="uosmo",
        display="osmo",
        symbol="OSMO",
        denom_units=(
            DenomUnit(denom="uosmo", exponent=0),
            DenomUnit(denom="osmo", exponent=6),
        ),
    )

"""Domain models for the escrow monitor."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Generic, Optional, TypeVar

T = TypeVar("T")


class ChannelState(str, Enum):
    """IBC channel lifecycle states as reported by the LCD."""

    UNINITIALIZED = "STATE_UNINITIALIZED_UNSPECIFIED"
    INIT = "STATE_INIT"
    TRYOPEN = "STATE_TRYOPEN"
    OPEN = "STATE_OPEN"
    CLOSED = "STATE_CLOSED"
    FLUSHING = "STATE_FLUSHING"
    FLUSHCOMPLETE = "STATE_FLUSHCOMPLETE"

    @classmethod
    def parse(cls, raw: Any) -> "ChannelState":
        """Unknown or missing states map to UNINITIALIZED, never to OPEN."""
        try:
            return cls(raw)
        except ValueError:
            return cls.UNINITIALIZED


@dataclass(frozen=True)
class Counterparty:
    port_id: str | None = None
    channel_id: str | None = None


@dataclass(frozen=True)
class Channel:
    """An IBC channel end as listed by /ibc/core/channel/v1/channels."""

    channel_id: str
    port_id: str
    state: ChannelState
    ordering: str | None = None
    counterparty: Counterparty = field(default_factory=Counterparty)
    connection_hops: tuple[str, ...] = ()
    version: str | None = None

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "Channel":
        counterparty = data.get("counterparty")
        if not isinstance(counterparty, dict):
            counterparty = {}
        return cls(
            channel_id=str(data.get("channel_id", "")),
            port_id=str(data.get("port_id", "")),
            state=ChannelState.parse(data.get("state")),
            ordering=data.get("ordering"),
            counterparty=Counterparty(
                port_id=counterparty.get("port_id"),
                channel_id=counterparty.get("channel_id"),
            ),
            connection_hops=tuple(data.get("connection_hops") or ()),
            version=data.get("version"),
        )

    @property
    def is_open(self) -> bool:
        return self.state is ChannelState.OPEN

    @property
    def first_connection(self) -> str | None:
        return self.connection_hops[0] if self.connection_hops else None


@dataclass(frozen=True)
class Coin:
    """Raw bank balance: denom identifier and integer amount as text."""

    denom: str
    amount: str

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> Optional["Coin"]:
        denom = data.get("denom")
        amount = data.get("amount")
        if not denom or amount is None or amount == "":
            return None
        return cls(denom=str(denom), amount=str(amount))

    @property
    def is_zero(self) -> bool:
        try:
            return int(self.amount) == 0
        except ValueError:
            return False


@dataclass(frozen=True)
class DenomTrace:
    path: str
    base_denom: str

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "DenomTrace":
        return cls(
            path=str(data.get("path", "")),
            base_denom=str(data.get("base_denom", "")),
        )


@dataclass(frozen=True)
class DenomUnit:
    denom: str
    exponent: int


@dataclass(frozen=True)
class DenomMetadata:
    """Bank metadata for one base denomination."""

    base: str
    display: str | None = None
    symbol: str | None = None
    name: str | None = None
    description: str | None = None
    denom_units: tuple[DenomUnit, ...] = ()

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "DenomMetadata":
        units = []
        for unit in data.get("denom_units") or ():
            if not isinstance(unit, dict):
                continue
            try:
                exponent = int(unit.get("exponent", 0))
            except (TypeError, ValueError):
                continue
            if exponent < 0 or not unit.get("denom"):
                continue
            units.append(DenomUnit(denom=str(unit["denom"]), exponent=exponent))
        return cls(
            base=str(data.get("base") or ""),
            display=data.get("display") or None,
            symbol=data.get("symbol") or None,
            name=data.get("name") or None,
            description=data.get("description") or None,
            denom_units=tuple(units),
        )

    def exponent_for(self, unit_denom: str | None) -> int | None:
        """Exponent of the unit named ``unit_denom``, if listed."""
        if unit_denom is None:
            return None
        for unit in self.denom_units:
            if unit.denom == unit_denom:
                return unit.exponent
        return None


class LookupStatus(str, Enum):
    RESOLVED = "resolved"
    NOT_FOUND = "not_found"
    FAILED = "failed"


@dataclass(frozen=True)
class LookupResult(Generic[T]):
    """Outcome of a best-effort single-item lookup.

    Distinguishes a genuine absence (NOT_FOUND) from a transport or
    decoding failure (FAILED) so callers can report them differently.
    """

    status: LookupStatus
    value: T | None = None
    error: str | None = None

    @classmethod
    def resolved(cls, value: T) -> "LookupResult[T]":
        return cls(status=LookupStatus.RESOLVED, value=value)

    @classmethod
    def not_found(cls) -> "LookupResult[T]":
        return cls(status=LookupStatus.NOT_FOUND)

    @classmethod
    def failed(cls, error: str) -> "LookupResult[T]":
        return cls(status=LookupStatus.FAILED, error=error)

    @property
    def found(self) -> bool:
        return self.status is LookupStatus.RESOLVED


@dataclass(frozen=True)
class ResolvedDenomInfo:
    base_denom: str
    display_denom: str
    decimals: int
    raw_denom: str
    symbol: str | None = None


@dataclass(frozen=True)
class ResolvedBalance:
    amount: str
    raw_denom: str
    display_amount: str
    display_denom: str


@dataclass(frozen=True)
class ChannelOutcome:
    """Result of resolving one channel: either balances or an error, never both."""

    channel: Channel
    escrow_address: str | None = None
    counterparty_chain_id: str | None = None
    balances: tuple[ResolvedBalance, ...] = ()
    error: str | None = None

    @classmethod
    def success(
        cls,
        channel: Channel,
        escrow_address: str,
        balances: list[ResolvedBalance],
        counterparty_chain_id: str | None = None,
    ) -> "ChannelOutcome":
        return cls(
            channel=channel,
            escrow_address=escrow_address,
            counterparty_chain_id=counterparty_chain_id,
            balances=tuple(balances),
        )

    @classmethod
    def failure(cls, channel: Channel, error: str) -> "ChannelOutcome":
        return cls(channel=channel, error=error)

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class AggregationSnapshot:
    """Full result of one aggregation pass."""

    outcomes: tuple[ChannelOutcome, ...]
    updated_at: datetime

    @property
    def failed_channels(self) -> int:
        return sum(1 for outcome in self.outcomes if not outcome.ok)

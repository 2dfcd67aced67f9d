"""Rich console and JSON output for aggregation snapshots."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Iterable

from rich.console import Console, Group
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from ..denoms import shorten_address
from ..domain import AggregationSnapshot, ChannelOutcome


@dataclass(frozen=True)
class FlatRow:
    """One table row: a single escrowed balance, or a failed channel."""

    channel_id: str
    escrow_address: str
    counterparty_chain_id: str | None = None
    display_amount: str | None = None
    display_denom: str | None = None
    raw_denom: str | None = None
    error: str | None = None


def _matches(outcome: ChannelOutcome, query: str) -> bool:
    return query in outcome.channel.channel_id.lower() or query in (
        (outcome.counterparty_chain_id or "").lower()
    )


def flatten_outcomes(
    outcomes: Iterable[ChannelOutcome], query: str = ""
) -> list[FlatRow]:
    """Flatten outcomes into rows, keeping channels matching ``query``.

    The query is matched case-insensitively against the channel id and the
    counterparty chain id. An empty query keeps everything.
    """
    q = query.strip().lower()
    rows: list[FlatRow] = []
    for outcome in outcomes:
        if q and not _matches(outcome, q):
            continue
        if not outcome.ok:
            rows.append(
                FlatRow(
                    channel_id=outcome.channel.channel_id,
                    escrow_address=outcome.escrow_address or "",
                    counterparty_chain_id=outcome.counterparty_chain_id,
                    error=outcome.error,
                )
            )
            continue
        for balance in outcome.balances:
            rows.append(
                FlatRow(
                    channel_id=outcome.channel.channel_id,
                    escrow_address=outcome.escrow_address or "",
                    counterparty_chain_id=outcome.counterparty_chain_id,
                    display_amount=balance.display_amount,
                    display_denom=balance.display_denom,
                    raw_denom=balance.raw_denom,
                )
            )
    return rows


def snapshot_to_dict(snapshot: AggregationSnapshot) -> dict[str, Any]:
    """Convert a snapshot to a JSON-serialisable dict."""
    channels = []
    for outcome in snapshot.outcomes:
        entry: dict[str, Any] = {
            "channel_id": outcome.channel.channel_id,
            "port_id": outcome.channel.port_id,
            "counterparty": asdict(outcome.channel.counterparty),
            "connection_hops": list(outcome.channel.connection_hops),
        }
        if outcome.ok:
            entry["escrow_address"] = outcome.escrow_address
            entry["counterparty_chain_id"] = outcome.counterparty_chain_id
            entry["balances"] = [asdict(balance) for balance in outcome.balances]
        else:
            entry["error"] = outcome.error
        channels.append(entry)

    return {
        "updated_at": snapshot.updated_at.isoformat(),
        "channels": channels,
    }


def render_snapshot(
    snapshot: AggregationSnapshot | None,
    console: Console | None = None,
    *,
    query: str = "",
    error: str | None = None,
) -> None:
    """Print the escrow table, with an error banner above it when given.

    ``snapshot`` may be None when no pass has succeeded yet.
    """
    console = console or Console()

    table = Table(expand=True, show_lines=False)
    table.add_column("Channel", style="cyan", no_wrap=True)
    table.add_column("Counterparty", style="magenta")
    table.add_column("Escrow", style="dim")
    table.add_column("Amount", justify="right", style="green")
    table.add_column("Denom")
    table.add_column("Raw denom", style="dim")

    rows = flatten_outcomes(snapshot.outcomes, query) if snapshot else []
    for row in rows:
        escrow = shorten_address(row.escrow_address) if row.escrow_address else ""
        if row.error is not None:
            table.add_row(
                row.channel_id,
                row.counterparty_chain_id or "",
                escrow,
                "",
                Text(row.error, style="red"),
                "",
            )
            continue
        table.add_row(
            row.channel_id,
            row.counterparty_chain_id or "",
            escrow,
            row.display_amount or "",
            row.display_denom or "",
            row.raw_denom or "",
        )

    if snapshot is not None:
        subtitle = (
            f"{len(snapshot.outcomes)} channels, "
            f"updated {snapshot.updated_at:%Y-%m-%d %H:%M:%S} UTC"
        )
    else:
        subtitle = "no data yet"

    parts: list[Any] = []
    if error:
        parts.append(Text(f"Error: {error}", style="bold red"))
        parts.append("")
    parts.append(table)

    console.print(
        Panel(
            Group(*parts),
            title="[bold]IBC Escrow Balances[/]",
            subtitle=subtitle,
            border_style="blue",
        )
    )

from __future__ import annotations

import json
from datetime import datetime, timezone

import pytest
from rich.console import Console

from ibc_escrow.domain import AggregationSnapshot, ChannelOutcome, ResolvedBalance
from ibc_escrow.report import flatten_outcomes, render_snapshot, snapshot_to_dict

ESCROW = "cosmos1a53udazy8ayufvy0s434pfwjcedzqv34kvz9tw"


@pytest.fixture
def snapshot(make_channel) -> AggregationSnapshot:
    ok = ChannelOutcome.success(
        make_channel("channel-141"),
        ESCROW,
        [
            ResolvedBalance("1234567", "ibc/ABCDEF", "1.234567", "OSMO"),
            ResolvedBalance("5", "uatom", "0.000005", "ATOM"),
        ],
        counterparty_chain_id="osmosis-1",
    )
    failed = ChannelOutcome.failure(make_channel("channel-7"), "escrow lookup timed out")
    return AggregationSnapshot(
        outcomes=(ok, failed),
        updated_at=datetime(2024, 5, 1, 12, 30, tzinfo=timezone.utc),
    )


def test_flatten_outcomes_one_row_per_balance_and_failure(snapshot):
    rows = flatten_outcomes(snapshot.outcomes)

    assert [(r.channel_id, r.display_denom, r.error) for r in rows] == [
        ("channel-141", "OSMO", None),
        ("channel-141", "ATOM", None),
        ("channel-7", None, "escrow lookup timed out"),
    ]
    assert rows[0].counterparty_chain_id == "osmosis-1"
    assert rows[0].escrow_address == ESCROW
    assert rows[2].escrow_address == ""


def test_flatten_outcomes_filters_by_channel_or_chain_id(snapshot):
    assert {r.channel_id for r in flatten_outcomes(snapshot.outcomes, "OSMOSIS")} == {
        "channel-141"
    }
    assert {r.channel_id for r in flatten_outcomes(snapshot.outcomes, " channel-7 ")} == {
        "channel-7"
    }
    assert flatten_outcomes(snapshot.outcomes, "juno") == []


def test_snapshot_to_dict_is_json_serialisable(snapshot):
    data = json.loads(json.dumps(snapshot_to_dict(snapshot)))

    assert data["updated_at"] == "2024-05-01T12:30:00+00:00"
    ok, failed = data["channels"]
    assert ok["escrow_address"] == ESCROW
    assert ok["counterparty_chain_id"] == "osmosis-1"
    assert ok["balances"][0] == {
        "amount": "1234567",
        "raw_denom": "ibc/ABCDEF",
        "display_amount": "1.234567",
        "display_denom": "OSMO",
    }
    assert failed["error"] == "escrow lookup timed out"
    assert "balances" not in failed


def test_render_snapshot_prints_rows_and_banner(snapshot):
    console = Console(record=True, width=200)

    render_snapshot(snapshot, console, error="[lcd] down")

    output = console.export_text()
    assert "Error: [lcd] down" in output
    assert "channel-141" in output
    assert "1.234567" in output
    assert "cosmos1a...kvz9tw" in output
    assert "escrow lookup timed out" in output
    assert "2 channels, updated 2024-05-01 12:30:00 UTC" in output


def test_render_without_snapshot_shows_error_only():
    console = Console(record=True, width=120)

    render_snapshot(None, console, error="lcd down")

    output = console.export_text()
    assert "Error: lcd down" in output
    assert "no data yet" in output

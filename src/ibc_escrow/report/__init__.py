from __future__ import annotations

from .formatter import FlatRow, flatten_outcomes, render_snapshot, snapshot_to_dict

__all__ = [
    "FlatRow",
    "flatten_outcomes",
    "render_snapshot",
    "snapshot_to_dict",
]

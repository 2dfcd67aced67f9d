"""Per-invocation state shared by the CLI and the run loop."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from .settings import MonitorSettings


@dataclass(frozen=True)
class AppState:
    """Resolved settings plus the logger that run-level events go to.

    Built once per CLI invocation; ``run_pass`` and ``watch`` read the global
    timeout and refresh interval from here instead of from module globals.
    """

    settings: MonitorSettings
    logger: logging.Logger

    @classmethod
    def from_settings(
        cls, settings: MonitorSettings, logger_name: str = "ibc_escrow"
    ) -> "AppState":
        return cls(settings=settings, logger=logging.getLogger(logger_name))

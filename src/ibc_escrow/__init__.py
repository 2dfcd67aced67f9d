"""IBC transfer escrow monitor."""

__version__ = "0.1.0"

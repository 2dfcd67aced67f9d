from .amounts import format_amount, shorten_address
from .resolver import DenomResolver

__all__ = ["DenomResolver", "format_amount", "shorten_address"]

from __future__ import annotations

import re

_INTEGER_RE = re.compile(r"-?[0-9]+")


def format_amount(amount: str, decimals: int) -> str:
    """Format a raw integer amount string as a fixed-point display string.

    Args:
        amount: Arbitrary-precision integer in decimal text, optionally negative.
        decimals: Number of decimal places the raw amount carries.

    Returns:
        ``amount / 10**decimals`` with trailing fractional zeros removed and no
        decimal point when the fraction is zero. The input is returned
        unchanged if it is not an integer string or ``decimals`` is negative;
        an empty amount reads as zero.

    Notes:
        - Uses exact integer arithmetic; large supplies never pass through float.
        - The sign is attached to the whole part only, so ``-0.5`` renders as such.
    """
    if decimals < 0:
        return amount
    if amount == "":
        return "0"
    if not _INTEGER_RE.fullmatch(amount):
        return amount

    negative = amount.startswith("-")
    digits = amount[1:] if negative else amount

    whole, frac = divmod(int(digits), 10**decimals)
    frac_str = str(frac).zfill(decimals).rstrip("0") if decimals else ""

    sign = "-" if negative else ""
    return f"{sign}{whole}.{frac_str}" if frac_str else f"{sign}{whole}"


def shorten_address(address: str, left: int = 8, right: int = 6) -> str:
    """Truncate a bech32 address for display, e.g. ``cosmos1a...q9x2lz``."""
    if len(address) <= left + right + 3:
        return address
    return f"{address[:left]}...{address[-right:]}"

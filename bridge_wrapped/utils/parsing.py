"""
Parsing and formatting helpers shared by the provider adapters and the
aggregation engine.
"""

import math
import re
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

# Unix timestamps above this are milliseconds (10^11 s is year 5138)
MILLISECONDS_THRESHOLD = 10**11

# Largest decimals an ERC-20 amount can meaningfully use (uint256 has 78 digits)
MAX_DECIMALS = 77

_INTEGER_RE = re.compile(r"^\d+$")


class NormalizationError(ValueError):
    """Raised when a raw provider record cannot be normalized."""
    pass


def parse_token_amount(amount: Any, decimals: int) -> Decimal:
    """
    Convert a raw integer amount (smallest unit) into a human-scale Decimal.

    Integer and fractional parts are split with integer arithmetic so large
    wei amounts keep full precision.
    """
    raw = str(amount).strip() if amount is not None else ""
    if not _INTEGER_RE.match(raw):
        raise NormalizationError(f"Unparseable token amount: {amount!r}")
    if decimals < 0:
        raise NormalizationError(f"Negative decimals: {decimals}")
    if decimals > MAX_DECIMALS:
        raise NormalizationError(f"Decimals out of range: {decimals}")

    value = int(raw)
    if decimals == 0:
        return Decimal(value)

    integer_part, fractional_part = divmod(value, 10**decimals)
    fractional = str(fractional_part).rjust(decimals, "0").rstrip("0") or "0"
    return Decimal(f"{integer_part}.{fractional}")


def to_decimal(value: Any) -> Optional[Decimal]:
    """Parse an optional numeric field (string or number) into a Decimal."""
    if value is None or value == "":
        return None
    try:
        result = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return None
    if not result.is_finite():
        return None
    return result


def to_int(value: Any) -> Optional[int]:
    """Parse an optional integer field that may arrive as a string."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    text = str(value).strip()
    if not _INTEGER_RE.match(text):
        return None
    return int(text)


def parse_timestamp(value: Any) -> int:
    """
    Convert a provider timestamp into Unix seconds (UTC).

    Accepts Unix seconds, Unix milliseconds (numeric or numeric string) and
    ISO-8601 strings. Naive ISO strings are read as UTC.
    """
    if value is None or isinstance(value, bool):
        raise NormalizationError("Missing timestamp")

    if isinstance(value, (int, float)):
        numeric = float(value)
    else:
        text = str(value).strip()
        if not text:
            raise NormalizationError("Empty timestamp")
        try:
            numeric = float(text)
        except ValueError:
            return _parse_iso_timestamp(text)

    if not math.isfinite(numeric) or numeric <= 0:
        raise NormalizationError(f"Invalid timestamp: {value!r}")
    if numeric > MILLISECONDS_THRESHOLD:
        numeric = numeric / 1000
    return int(numeric)


def _parse_iso_timestamp(text: str) -> int:
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        raise NormalizationError(f"Unparseable timestamp: {text!r}")
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return int(parsed.timestamp())


def is_within_range(timestamp: int, start: int, end: int) -> bool:
    """Check if timestamp falls within [start, end] inclusive."""
    return start <= timestamp <= end


def year_bounds(year: int) -> tuple[int, int]:
    """UTC Unix-second bounds of Jan 1 00:00:00 through Dec 31 23:59:59."""
    start = datetime(year, 1, 1, tzinfo=timezone.utc)
    end = datetime(year, 12, 31, 23, 59, 59, tzinfo=timezone.utc)
    return int(start.timestamp()), int(end.timestamp())


def format_date_iso(timestamp: int) -> str:
    """Format a Unix timestamp as a UTC YYYY-MM-DD date."""
    return datetime.fromtimestamp(timestamp, tz=timezone.utc).strftime("%Y-%m-%d")


def generate_tx_id(provider: str, tx_hash: str, source_chain_id: int, destination_chain_id: int) -> str:
    """Build the display/composite id of a normalized transaction."""
    return f"{provider}-{tx_hash}-{source_chain_id}-{destination_chain_id}"


def calculate_percentage(value: float, total: float) -> float:
    """Percentage of total with one decimal place, rounding half up."""
    if not total:
        return 0.0
    return math.floor(float(value) / float(total) * 1000 + 0.5) / 10

"""
Tests for parsing helpers, chain registry and retry wrapper.
"""

from decimal import Decimal

import pytest

from bridge_wrapped.utils.parsing import (
    NormalizationError,
    calculate_percentage,
    format_date_iso,
    generate_tx_id,
    parse_timestamp,
    parse_token_amount,
    to_decimal,
    to_int,
    year_bounds,
)


class TestTokenAmount:
    """Test raw amount to decimal conversion."""

    def test_usdc_amount(self):
        """Test six-decimal amount."""
        assert parse_token_amount("1500000", 6) == Decimal("1.5")

    def test_large_wei_amount_keeps_precision(self):
        """Amounts far beyond float precision survive the decimal shift."""
        raw = "123456789012345678901234567890123"
        result = parse_token_amount(raw, 18)
        assert result == Decimal("123456789012345.678901234567890123")

    def test_fraction_only(self):
        """Test amount smaller than one unit."""
        assert parse_token_amount("1", 18) == Decimal("0.000000000000000001")

    def test_zero_decimals(self):
        """Test zero decimals."""
        assert parse_token_amount("42", 0) == Decimal(42)

    def test_integer_input(self):
        """Test integer input."""
        assert parse_token_amount(2 * 10**18, 18) == Decimal("2")

    @pytest.mark.parametrize("decimals", [-1, 78, 1_000_000_000])
    def test_out_of_range_decimals_raise(self, decimals):
        """Negative or absurd decimals are rejected before any big-int work."""
        with pytest.raises(NormalizationError):
            parse_token_amount("1", decimals)

    def test_max_decimals_accepted(self):
        """77 decimals is the largest accepted scale."""
        assert parse_token_amount("1", 77) == Decimal("1e-77")

    @pytest.mark.parametrize("raw", ["", "abc", "1.5", "-100", None])
    def test_unparseable_amount_raises(self, raw):
        """Test non-integer amounts are rejected."""
        with pytest.raises(NormalizationError):
            parse_token_amount(raw, 6)


class TestTimestamp:
    """Test timestamp normalization to Unix seconds."""

    def test_seconds(self):
        """Test Unix seconds."""
        assert parse_timestamp(1700000000) == 1700000000

    def test_milliseconds(self):
        """Test Unix milliseconds."""
        assert parse_timestamp(1700000000123) == 1700000000

    def test_numeric_string(self):
        """Test numeric string."""
        assert parse_timestamp("1700000000") == 1700000000
        assert parse_timestamp("1700000000000") == 1700000000

    def test_iso_with_z(self):
        """Test ISO string with Z suffix."""
        assert parse_timestamp("2025-01-01T00:00:00Z") == 1735689600

    def test_iso_with_offset(self):
        """Test ISO string with offset."""
        assert parse_timestamp("2025-01-01T02:00:00+02:00") == 1735689600

    def test_naive_iso_is_utc(self):
        """Test naive ISO string is read as UTC."""
        assert parse_timestamp("2025-01-01T00:00:00") == 1735689600

    @pytest.mark.parametrize("raw", [None, "", "yesterday", -5, 0])
    def test_invalid_timestamp_raises(self, raw):
        """Test garbage timestamps are rejected."""
        with pytest.raises(NormalizationError):
            parse_timestamp(raw)


class TestYearBounds:
    """Test calendar year boundaries."""

    def test_bounds_2025(self):
        """Test 2025 bounds."""
        start, end = year_bounds(2025)
        assert start == 1735689600
        assert end == 1767225599
        assert format_date_iso(start) == "2025-01-01"
        assert format_date_iso(end) == "2025-12-31"

    def test_leap_year(self):
        """Test leap year length."""
        start, end = year_bounds(2024)
        assert end - start + 1 == 366 * 86400


class TestHelpers:
    """Test small conversion helpers."""

    def test_to_decimal(self):
        """Test optional decimal parsing."""
        assert to_decimal("12.5") == Decimal("12.5")
        assert to_decimal(3) == Decimal(3)
        assert to_decimal(None) is None
        assert to_decimal("n/a") is None
        assert to_decimal("NaN") is None

    def test_to_int(self):
        """Test optional integer parsing."""
        assert to_int("8453") == 8453
        assert to_int(10) == 10
        assert to_int(None) is None
        assert to_int("0x1") is None
        assert to_int(True) is None

    def test_tx_id_is_deterministic(self):
        """Test transaction id format."""
        first = generate_tx_id("across", "0xAbC", 1, 10)
        second = generate_tx_id("across", "0xAbC", 1, 10)
        assert first == second == "across-0xAbC-1-10"


class TestPercentage:
    """Test one-decimal percentages."""

    def test_zero_total(self):
        """Test zero total."""
        assert calculate_percentage(5, 0) == 0

    def test_half(self):
        """Test half."""
        assert calculate_percentage(1, 2) == 50.0

    def test_one_decimal(self):
        """Test one decimal place."""
        assert calculate_percentage(1, 3) == 33.3
        assert calculate_percentage(2, 3) == 66.7

    def test_rounds_half_up(self):
        """Test half-up rounding."""
        # 1/8 = 12.5%, 1/16 = 6.25% -> 6.3
        assert calculate_percentage(1, 8) == 12.5
        assert calculate_percentage(1, 16) == 6.3

    def test_full(self):
        """Test full share."""
        assert calculate_percentage(7, 7) == 100.0


class TestChainRegistry:
    """Test chain lookups."""

    def test_known_chain(self):
        """Test known chain lookups."""
        from bridge_wrapped.services.chains import get_chain_color, get_chain_name

        assert get_chain_name(8453) == "Base"
        assert get_chain_color(8453) == "#0052FF"

    def test_unknown_chain_fallback(self):
        """Test unknown chain fallbacks."""
        from bridge_wrapped.services.chains import (
            DEFAULT_CHAIN_COLOR,
            get_chain_color,
            get_chain_info,
            get_chain_logo,
            get_chain_name,
        )

        assert get_chain_name(999999) == "Chain 999999"
        assert get_chain_color(999999) == DEFAULT_CHAIN_COLOR
        assert get_chain_logo(999999) is None
        assert get_chain_info(999999).name == "Chain 999999"

    def test_explorer_url(self):
        """Test explorer links."""
        from bridge_wrapped.services.chains import get_explorer_tx_url

        assert get_explorer_tx_url(42161, "0xabc") == "https://arbiscan.io/tx/0xabc"
        assert get_explorer_tx_url(999999, "0xabc") == ""


class TestRetry:
    """Test retry with backoff."""

    async def test_succeeds_after_failures(self):
        """Test success after transient failures."""
        from bridge_wrapped.utils.retry import retry_with_backoff

        calls = []

        async def flaky():
            calls.append(1)
            if len(calls) < 3:
                raise ConnectionError("boom")
            return "ok"

        result = await retry_with_backoff(flaky, max_attempts=3, base_delay=0, max_delay=0)
        assert result == "ok"
        assert len(calls) == 3

    async def test_reraises_last_error(self):
        """Test last error is re-raised."""
        from bridge_wrapped.utils.retry import retry_with_backoff

        calls = []

        async def always_fails():
            calls.append(1)
            raise ConnectionError(f"attempt {len(calls)}")

        with pytest.raises(ConnectionError, match="attempt 3"):
            await retry_with_backoff(always_fails, max_attempts=3, base_delay=0, max_delay=0)
        assert len(calls) == 3

    async def test_plain_callable_returning_coroutine(self):
        """A lambda wrapping a coroutine call is awaited, not returned."""
        from bridge_wrapped.utils.retry import retry_with_backoff

        calls = []

        async def fetch(value):
            calls.append(value)
            if len(calls) < 2:
                raise ConnectionError("boom")
            return value

        result = await retry_with_backoff(lambda: fetch(42), max_attempts=3, base_delay=0, max_delay=0)
        assert result == 42
        assert calls == [42, 42]

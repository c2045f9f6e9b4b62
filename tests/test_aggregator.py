"""
Tests for deduplication, statistics and the concurrent aggregator.
"""

import asyncio
from decimal import Decimal
from typing import Optional

import pytest

from bridge_wrapped.providers.base import BridgeProvider
from bridge_wrapped.services.aggregator import (
    MONTH_NAMES,
    BridgeAggregator,
    build_provider_breakdown,
    calculate_stats,
    deduplicate_transactions,
)
from bridge_wrapped.utils.parsing import year_bounds

WALLET = "0x1234567890abcdef1234567890abcdef12345678"
DAY = 86400

# 2025-03-14 12:00:00 UTC
DAY1 = 1741953600
DAY2 = DAY1 + DAY


class StubProvider:
    """Provider double that returns canned transactions."""

    def __init__(
        self,
        provider: BridgeProvider,
        transactions: Optional[list] = None,
        error: Optional[Exception] = None,
        hang: bool = False,
    ):
        self.provider = provider
        self.transactions = transactions or []
        self.error = error
        self.hang = hang
        self.calls = []

    async def fetch_transactions(self, address, start_timestamp, end_timestamp, collected=None):
        self.calls.append((address, start_timestamp, end_timestamp))
        results = collected if collected is not None else []
        results.extend(self.transactions)
        if self.error:
            raise self.error
        if self.hang:
            await asyncio.sleep(10)
        return results


class TestDeduplication:
    """Test duplicate transfer collapsing."""

    def test_collapses_case_insensitive_hash_across_providers(self, make_tx):
        """Test same hash in different case from two providers collapses."""
        txs = [
            make_tx("0xAA", provider=BridgeProvider.ACROSS),
            make_tx("0xaa", provider=BridgeProvider.RELAY),
            make_tx("0xAa", provider=BridgeProvider.LIFI),
        ]
        assert len(deduplicate_transactions(txs)) == 1

    def test_chain_pair_is_part_of_identity(self, make_tx):
        """Test same hash on another chain pair is a separate transfer."""
        txs = [
            make_tx("0xaa", source_chain_id=1, destination_chain_id=10),
            make_tx("0xaa", source_chain_id=1, destination_chain_id=8453),
        ]
        assert len(deduplicate_transactions(txs)) == 2

    def test_prefers_record_with_usd_regardless_of_order(self, make_tx):
        """Test a priced record replaces an unpriced duplicate."""
        priced = make_tx("0xaa", provider=BridgeProvider.RELAY, amount_usd="100")
        unpriced = make_tx("0xAA", provider=BridgeProvider.ACROSS, amount_usd="0")

        for order in ([priced, unpriced], [unpriced, priced]):
            [kept] = deduplicate_transactions(order)
            assert kept is priced

    def test_first_seen_wins_when_both_priced(self, make_tx):
        """Test first record kept when both duplicates carry USD."""
        first = make_tx("0xaa", provider=BridgeProvider.ACROSS, amount_usd="100")
        second = make_tx("0xaa", provider=BridgeProvider.LIFI, amount_usd="99")
        assert deduplicate_transactions([first, second]) == [first]
        assert deduplicate_transactions([second, first]) == [second]

    def test_first_seen_wins_when_neither_priced(self, make_tx):
        """Test first record kept when neither duplicate carries USD."""
        first = make_tx("0xaa", provider=BridgeProvider.ACROSS, amount_usd="0")
        second = make_tx("0xaa", provider=BridgeProvider.RELAY, amount_usd="0")
        assert deduplicate_transactions([first, second]) == [first]

    def test_idempotent(self, make_tx):
        """Test deduplicating twice changes nothing."""
        txs = [
            make_tx("0x01", amount_usd="0"),
            make_tx("0x01", provider=BridgeProvider.RELAY, amount_usd="5"),
            make_tx("0x02"),
            make_tx("0x03", source_chain_id=8453),
            make_tx("0x02", provider=BridgeProvider.LIFI),
        ]
        once = deduplicate_transactions(txs)
        assert deduplicate_transactions(once) == once

    def test_replacement_keeps_first_position(self, make_tx):
        """Test a replaced record keeps its key's place in the list."""
        unpriced = make_tx("0x01", amount_usd="0")
        other = make_tx("0x02")
        priced = make_tx("0x01", provider=BridgeProvider.LIFI, amount_usd="7")
        assert deduplicate_transactions([unpriced, other, priced]) == [priced, other]


class TestCalculateStats:
    """Test derived statistics."""

    def test_zero_activity(self):
        """Test empty input gives zero totals and no winners."""
        stats = calculate_stats(WALLET, 2025, [])

        assert stats.total_bridging_actions == 0
        assert stats.total_volume_usd == 0
        assert stats.most_used_source_chain is None
        assert stats.most_used_destination_chain is None
        assert stats.highest_volume_destination is None
        assert stats.most_bridged_token is None
        assert stats.busiest_day is None
        assert stats.top_source_chains == []
        assert stats.top_tokens == []
        assert len(stats.monthly_activity) == 12
        assert all(m.count == 0 and m.volume_usd == 0 for m in stats.monthly_activity)
        assert all(p.count == 0 for p in stats.provider_breakdown.values())

    def test_monthly_activity_is_complete_and_ordered(self, make_tx):
        """Test all twelve months are present in order."""
        txs = [
            make_tx("0x01", timestamp=1736942400, amount_usd="10"),  # 2025-01-15
            make_tx("0x02", timestamp=1736942400 + 3600, amount_usd="5"),
            make_tx("0x03", timestamp=1765800000, amount_usd="1"),  # 2025-12-15
        ]
        stats = calculate_stats(WALLET, 2025, txs)

        assert [m.month for m in stats.monthly_activity] == [f"2025-{m:02d}" for m in range(1, 13)]
        assert [m.month_name for m in stats.monthly_activity] == MONTH_NAMES
        assert stats.monthly_activity[0].count == 2
        assert stats.monthly_activity[0].volume_usd == Decimal("15")
        assert stats.monthly_activity[11].count == 1
        assert sum(m.count for m in stats.monthly_activity) == 3

    def test_transactions_sorted_ascending(self, make_tx):
        """Test transactions come back oldest first."""
        txs = [
            make_tx("0x03", timestamp=DAY1 + 2 * DAY),
            make_tx("0x01", timestamp=DAY1),
            make_tx("0x02", timestamp=DAY1 + DAY),
        ]
        stats = calculate_stats(WALLET, 2025, txs)
        assert [tx.tx_hash for tx in stats.transactions] == ["0x01", "0x02", "0x03"]

    def test_volume_conservation(self, make_tx):
        """Test monthly volumes sum to the total."""
        txs = [
            make_tx("0x01", amount_usd="10.25"),
            make_tx("0x02", amount_usd="0"),
            make_tx("0x03", amount_usd="1234.5678"),
        ]
        stats = calculate_stats(WALLET, 2025, txs)
        assert stats.total_volume_usd == sum(tx.amount_usd for tx in stats.transactions)
        assert stats.total_volume_usd == Decimal("1244.8178")

    def test_winners(self, make_tx):
        """Test most used chains and token."""
        txs = [
            make_tx("0x01", source_chain_id=1, destination_chain_id=10, amount_usd="10"),
            make_tx("0x02", source_chain_id=1, destination_chain_id=10, amount_usd="10"),
            make_tx("0x03", source_chain_id=8453, destination_chain_id=42161, amount_usd="500"),
            make_tx("0x04", source_chain_id=1, destination_chain_id=8453, amount_usd="1",
                    token_symbol="ETH"),
        ]
        stats = calculate_stats(WALLET, 2025, txs)

        assert stats.most_used_source_chain.chain_id == 1
        assert stats.most_used_source_chain.count == 3
        assert stats.most_used_source_chain.percentage == 75.0
        assert stats.most_used_source_chain.chain_name == "Ethereum"
        assert stats.most_used_destination_chain.chain_id == 10
        assert stats.most_used_destination_chain.count == 2
        assert stats.highest_volume_destination.chain_id == 42161
        assert stats.highest_volume_destination.volume_usd == Decimal("500")
        assert stats.highest_volume_destination.count == 1
        assert stats.highest_volume_destination.percentage == 25.0
        assert stats.most_bridged_token.symbol == "USDC"
        assert stats.most_bridged_token.count == 3
        assert stats.most_bridged_token.total_volume_usd == Decimal("520")

    def test_ties_go_to_first_in_timestamp_order(self, make_tx):
        """Test ties resolve to the earliest seen key."""
        txs = [
            make_tx("0x02", source_chain_id=10, destination_chain_id=1, timestamp=DAY2),
            make_tx("0x01", source_chain_id=1, destination_chain_id=10, timestamp=DAY1),
        ]
        stats = calculate_stats(WALLET, 2025, txs)

        assert stats.most_used_source_chain.chain_id == 1
        assert stats.most_used_destination_chain.chain_id == 10
        assert stats.busiest_day.date == "2025-03-14"
        assert [c.chain_id for c in stats.top_source_chains] == [1, 10]

    def test_highest_volume_with_all_zero_volume(self, make_tx):
        """Test first destination wins when no volume is known."""
        txs = [
            make_tx("0x01", destination_chain_id=8453, amount_usd="0", timestamp=DAY1),
            make_tx("0x02", destination_chain_id=10, amount_usd="0", timestamp=DAY2),
        ]
        stats = calculate_stats(WALLET, 2025, txs)

        assert stats.highest_volume_destination.chain_id == 8453
        assert stats.highest_volume_destination.volume_usd == 0

    def test_token_key_is_uppercased_symbol(self, make_tx):
        """Test token counts group by uppercased symbol."""
        txs = [
            make_tx("0x01", token_symbol="usdc", token_address="0xfirst", timestamp=DAY1),
            make_tx("0x02", token_symbol="USDC", token_address="0xsecond", timestamp=DAY2),
        ]
        stats = calculate_stats(WALLET, 2025, txs)

        assert len(stats.top_tokens) == 1
        assert stats.most_bridged_token.symbol == "USDC"
        assert stats.most_bridged_token.address == "0xfirst"
        assert stats.most_bridged_token.count == 2

    def test_busiest_day_primary_destination(self, make_tx):
        """Test busiest day and its main destination."""
        txs = [
            make_tx("0x01", destination_chain_id=10, timestamp=DAY1),
            make_tx("0x02", destination_chain_id=8453, timestamp=DAY2),
            make_tx("0x03", destination_chain_id=42161, timestamp=DAY2 + 60),
            make_tx("0x04", destination_chain_id=8453, timestamp=DAY2 + 120),
            # 23:00 UTC, still 2025-03-15
            make_tx("0x05", destination_chain_id=10, timestamp=DAY2 + 11 * 3600),
        ]
        stats = calculate_stats(WALLET, 2025, txs)

        assert stats.busiest_day.date == "2025-03-15"
        assert stats.busiest_day.count == 4
        assert stats.busiest_day.primary_destination.chain_id == 8453
        assert stats.busiest_day.primary_destination.chain_name == "Base"
        assert stats.busiest_day.primary_destination.count == 2

    def test_top_lists_are_capped_and_ranked(self, make_tx):
        """Test top lists hold at most five entries by count."""
        chains = [1, 10, 56, 137, 8453, 42161]
        txs = []
        for i, chain_id in enumerate(chains):
            # Chain at index i gets i + 1 transactions
            for n in range(i + 1):
                txs.append(
                    make_tx(
                        f"0x{chain_id}-{n}",
                        source_chain_id=chain_id,
                        token_symbol=f"TKN{i}",
                        timestamp=DAY1 + n,
                    )
                )
        stats = calculate_stats(WALLET, 2025, txs)

        assert [c.chain_id for c in stats.top_source_chains] == [42161, 8453, 137, 56, 10]
        assert [t.symbol for t in stats.top_tokens] == ["TKN5", "TKN4", "TKN3", "TKN2", "TKN1"]
        assert all(c.volume_usd == 0 for c in stats.top_source_chains)

    def test_percentage_bounds(self, make_tx):
        """Test percentages stay within 0 and 100."""
        txs = [
            make_tx(f"0x{i}", source_chain_id=chain_id, destination_chain_id=10 + i % 3)
            for i, chain_id in enumerate([1, 1, 1, 10, 10, 56, 137, 8453, 42161, 324, 59144])
        ]
        stats = calculate_stats(WALLET, 2025, txs)

        percentages = [c.percentage for c in stats.top_source_chains + stats.top_destination_chains]
        percentages += [t.percentage for t in stats.top_tokens]
        assert all(0 <= p <= 100 for p in percentages)
        assert sum(c.percentage for c in stats.top_source_chains) <= 100
        assert sum(c.percentage for c in stats.top_destination_chains) <= 100

    def test_provider_breakdown_defaults_to_given_transactions(self, make_tx):
        """Test breakdown falls back to the transactions passed in."""
        txs = [
            make_tx("0x01", provider=BridgeProvider.ACROSS, amount_usd="3"),
            make_tx("0x02", provider=BridgeProvider.LIFI, amount_usd="4"),
        ]
        stats = calculate_stats(WALLET, 2025, txs)

        assert stats.provider_breakdown[BridgeProvider.ACROSS].count == 1
        assert stats.provider_breakdown[BridgeProvider.RELAY].count == 0
        assert stats.provider_breakdown[BridgeProvider.LIFI].volume_usd == Decimal("4")


class TestBridgeAggregator:
    """Test the concurrent fetch and merge."""

    async def test_example_scenario(self, make_tx):
        """Test a three-provider year end to end."""
        across = StubProvider(
            BridgeProvider.ACROSS,
            [make_tx("0xAA", BridgeProvider.ACROSS, 1, 10, amount_usd="100", timestamp=DAY1)],
        )
        relay = StubProvider(
            BridgeProvider.RELAY,
            [make_tx("0xaa", BridgeProvider.RELAY, 1, 10, amount_usd="0", timestamp=DAY1)],
        )
        lifi = StubProvider(
            BridgeProvider.LIFI,
            [make_tx("0xBB", BridgeProvider.LIFI, 10, 1, amount_usd="50", timestamp=DAY2)],
        )

        aggregator = BridgeAggregator([across, relay, lifi])
        stats = await aggregator.get_wrapped_stats(WALLET, 2025)

        assert stats.total_bridging_actions == 2
        assert stats.total_volume_usd == Decimal("150")
        assert [tx.amount_usd for tx in stats.transactions] == [Decimal("100"), Decimal("50")]
        assert stats.transactions[0].provider == BridgeProvider.ACROSS

        # Tie between chain 1 and chain 10: first in timestamp order wins
        assert stats.most_used_source_chain.chain_id == 1
        assert stats.most_used_source_chain.count == 1
        assert stats.most_used_source_chain.percentage == 50.0
        assert stats.busiest_day.date == "2025-03-14"
        assert stats.busiest_day.count == 1

        # Pre-dedup
        assert stats.provider_breakdown[BridgeProvider.ACROSS].count == 1
        assert stats.provider_breakdown[BridgeProvider.RELAY].count == 1
        assert stats.provider_breakdown[BridgeProvider.LIFI].count == 1
        assert stats.provider_breakdown[BridgeProvider.ACROSS].volume_usd == Decimal("100")

    async def test_passes_year_bounds(self):
        """Test providers receive the calendar year range."""
        stub = StubProvider(BridgeProvider.ACROSS)
        aggregator = BridgeAggregator([stub])
        await aggregator.get_wrapped_stats(WALLET, 2024)

        assert stub.calls == [(WALLET, *year_bounds(2024))]

    async def test_provider_failure_is_isolated(self, make_tx):
        """Test one raising provider does not sink the others."""
        broken = StubProvider(
            BridgeProvider.ACROSS,
            [make_tx("0xpartial", BridgeProvider.ACROSS)],
            error=RuntimeError("indexer exploded"),
        )
        healthy = StubProvider(BridgeProvider.RELAY, [make_tx("0x01", BridgeProvider.RELAY)])

        aggregator = BridgeAggregator([broken, healthy])
        stats = await aggregator.get_wrapped_stats(WALLET, 2025)

        assert [tx.tx_hash for tx in stats.transactions] == ["0x01"]
        assert stats.provider_breakdown[BridgeProvider.ACROSS].count == 0

    async def test_all_providers_failing_yields_empty_result(self):
        """Test total failure still produces empty stats."""
        aggregator = BridgeAggregator(
            [StubProvider(p, error=ConnectionError("down")) for p in BridgeProvider]
        )
        stats = await aggregator.get_wrapped_stats(WALLET, 2025)

        assert stats.total_bridging_actions == 0
        assert len(stats.monthly_activity) == 12

    async def test_timeout_keeps_partial_results(self, make_tx):
        """Test a slow provider keeps what it collected."""
        slow = StubProvider(
            BridgeProvider.LIFI,
            [make_tx("0xslow", BridgeProvider.LIFI)],
            hang=True,
        )
        fast = StubProvider(BridgeProvider.ACROSS, [make_tx("0xfast", BridgeProvider.ACROSS)])

        aggregator = BridgeAggregator([slow, fast], timeout=0.05)
        stats = await aggregator.get_wrapped_stats(WALLET, 2025)

        assert sorted(tx.tx_hash for tx in stats.transactions) == ["0xfast", "0xslow"]
        assert stats.provider_breakdown[BridgeProvider.LIFI].count == 1

    async def test_dedup_across_providers(self, make_tx):
        """Test duplicates across providers counted once."""
        providers = [
            StubProvider(p, [make_tx("0xSAME", p, amount_usd="0")]) for p in BridgeProvider
        ]
        aggregator = BridgeAggregator(providers)
        stats = await aggregator.get_wrapped_stats(WALLET, 2025)

        assert stats.total_bridging_actions == 1
        assert sum(p.count for p in stats.provider_breakdown.values()) == 3


def test_build_provider_breakdown_lists_every_provider(make_tx):
    breakdown = build_provider_breakdown([make_tx(provider=BridgeProvider.RELAY, amount_usd="2")])
    assert set(breakdown) == set(BridgeProvider)
    assert breakdown[BridgeProvider.RELAY].volume_usd == Decimal("2")


@pytest.mark.parametrize("count", [0, 1, 5])
def test_monthly_activity_always_twelve(make_tx, count):
    txs = [make_tx(f"0x{i}", timestamp=DAY1 + i) for i in range(count)]
    assert len(calculate_stats(WALLET, 2025, txs).monthly_activity) == 12

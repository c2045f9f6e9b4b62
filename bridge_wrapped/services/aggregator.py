"""
Bridge statistics aggregation.
Merges every provider's transactions, removes duplicates and computes the
yearly "wrapped" statistics for a wallet.
"""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Iterable, Optional

from bridge_wrapped.config import settings
from bridge_wrapped.providers.base import (
    BaseBridgeProvider,
    BridgeProvider,
    NormalizedTransaction,
)
from bridge_wrapped.services.chains import get_chain_logo, get_chain_name
from bridge_wrapped.utils.logging import get_logger, log_context
from bridge_wrapped.utils.parsing import calculate_percentage, format_date_iso, year_bounds

logger = get_logger(__name__)


MONTH_NAMES = [
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
]

TOP_N = 5


@dataclass(frozen=True)
class ChainStats:
    """Usage of one chain. ``volume_usd`` is only tracked for destinations."""
    chain_id: int
    chain_name: str
    count: int
    percentage: float
    volume_usd: Decimal = Decimal(0)
    logo: Optional[str] = None


@dataclass(frozen=True)
class TokenStats:
    symbol: str
    address: str
    count: int
    total_volume_usd: Decimal
    percentage: float


@dataclass(frozen=True)
class PrimaryDestination:
    chain_id: int
    chain_name: str
    count: int


@dataclass(frozen=True)
class BusiestDayStats:
    date: str  # YYYY-MM-DD, UTC
    count: int
    primary_destination: PrimaryDestination


@dataclass(frozen=True)
class MonthlyActivity:
    month: str  # YYYY-MM
    month_name: str
    count: int
    volume_usd: Decimal


@dataclass(frozen=True)
class ProviderStats:
    count: int = 0
    volume_usd: Decimal = Decimal(0)


@dataclass(frozen=True)
class BridgeWrappedStats:
    """Yearly bridging statistics for one wallet."""
    wallet_address: str
    year: int
    generated_at: str

    # Core stats (post-dedup)
    total_bridging_actions: int
    total_volume_usd: Decimal

    # Winners
    most_used_source_chain: Optional[ChainStats]
    most_used_destination_chain: Optional[ChainStats]
    highest_volume_destination: Optional[ChainStats]
    most_bridged_token: Optional[TokenStats]
    busiest_day: Optional[BusiestDayStats]

    # Raw per-provider contribution (pre-dedup)
    provider_breakdown: dict[BridgeProvider, ProviderStats]

    monthly_activity: list[MonthlyActivity]
    top_source_chains: list[ChainStats] = field(default_factory=list)
    top_destination_chains: list[ChainStats] = field(default_factory=list)
    top_tokens: list[TokenStats] = field(default_factory=list)

    # Post-dedup, ascending by timestamp
    transactions: list[NormalizedTransaction] = field(default_factory=list)


# ===================
# Deduplication
# ===================

def deduplicate_transactions(
    transactions: Iterable[NormalizedTransaction],
) -> list[NormalizedTransaction]:
    """
    Collapse records describing the same transfer.

    Records share a key when the tx hash (case-insensitive) and chain pair
    match, whichever provider reported them. The first record seen is kept
    unless a later one carries a USD value the kept one lacks.
    """
    seen: dict[str, NormalizedTransaction] = {}

    for tx in transactions:
        key = tx.dedup_key
        existing = seen.get(key)
        if existing is None:
            seen[key] = tx
        elif tx.amount_usd > 0 and existing.amount_usd == 0:
            # Replacing keeps the key's first position
            seen[key] = tx

    return list(seen.values())


def build_provider_breakdown(
    transactions: Iterable[NormalizedTransaction],
) -> dict[BridgeProvider, ProviderStats]:
    """Per-provider count and volume, always listing every provider."""
    counts = {p: 0 for p in BridgeProvider}
    volumes = {p: Decimal(0) for p in BridgeProvider}
    for tx in transactions:
        counts[tx.provider] += 1
        volumes[tx.provider] += tx.amount_usd
    return {p: ProviderStats(count=counts[p], volume_usd=volumes[p]) for p in BridgeProvider}


# ===================
# Statistics
# ===================

@dataclass
class _TokenAccumulator:
    address: str
    count: int = 0
    volume_usd: Decimal = Decimal(0)


@dataclass
class _DayAccumulator:
    count: int = 0
    volume_usd: Decimal = Decimal(0)
    destinations: dict[int, int] = field(default_factory=dict)


def _first_max(items: Iterable[tuple]) -> Optional[tuple]:
    """First (key, value) pair holding the maximum value, in iteration order."""
    best = None
    for item in items:
        if best is None or item[1] > best[1]:
            best = item
    return best


def _chain_stats(chain_id: int, count: int, total: int, volume_usd: Decimal = Decimal(0)) -> ChainStats:
    return ChainStats(
        chain_id=chain_id,
        chain_name=get_chain_name(chain_id),
        count=count,
        percentage=calculate_percentage(count, total),
        volume_usd=volume_usd,
        logo=get_chain_logo(chain_id),
    )


def _token_stats(symbol: str, data: _TokenAccumulator, total: int) -> TokenStats:
    return TokenStats(
        symbol=symbol,
        address=data.address,
        count=data.count,
        total_volume_usd=data.volume_usd,
        percentage=calculate_percentage(data.count, total),
    )


def _top_chains(chain_counts: dict[int, int], total: int, n: int = TOP_N) -> list[ChainStats]:
    # sorted() is stable, so equal counts keep insertion order
    ranked = sorted(chain_counts.items(), key=lambda item: item[1], reverse=True)[:n]
    return [_chain_stats(chain_id, count, total) for chain_id, count in ranked]


def _top_tokens(tokens: dict[str, _TokenAccumulator], total: int, n: int = TOP_N) -> list[TokenStats]:
    ranked = sorted(tokens.items(), key=lambda item: item[1].count, reverse=True)[:n]
    return [_token_stats(symbol, data, total) for symbol, data in ranked]


def _busiest_day(daily: dict[str, _DayAccumulator]) -> Optional[BusiestDayStats]:
    best = _first_max((date, data.count) for date, data in daily.items())
    if best is None:
        return None

    date, count = best
    chain_id, chain_count = _first_max(daily[date].destinations.items())
    return BusiestDayStats(
        date=date,
        count=count,
        primary_destination=PrimaryDestination(
            chain_id=chain_id,
            chain_name=get_chain_name(chain_id),
            count=chain_count,
        ),
    )


def _monthly_activity(monthly: dict[str, _DayAccumulator], year: int) -> list[MonthlyActivity]:
    result = []
    for month in range(1, 13):
        month_key = f"{year}-{month:02d}"
        data = monthly.get(month_key) or _DayAccumulator()
        result.append(
            MonthlyActivity(
                month=month_key,
                month_name=MONTH_NAMES[month - 1],
                count=data.count,
                volume_usd=data.volume_usd,
            )
        )
    return result


def calculate_stats(
    address: str,
    year: int,
    transactions: list[NormalizedTransaction],
    provider_breakdown: Optional[dict[BridgeProvider, ProviderStats]] = None,
) -> BridgeWrappedStats:
    """
    Compute every statistic from an already-deduplicated transaction list.

    All ties resolve to the first maximum met while iterating the
    timestamp-sorted list.

    Args:
        address: Wallet address the stats belong to
        year: Calendar year used for the monthly buckets
        transactions: Deduplicated transactions
        provider_breakdown: Pre-dedup per-provider stats; computed from
            ``transactions`` when omitted

    Returns:
        BridgeWrappedStats
    """
    sorted_transactions = sorted(transactions, key=lambda tx: tx.timestamp)
    total = len(sorted_transactions)
    total_volume = Decimal(0)

    source_counts: dict[int, int] = {}
    destination_counts: dict[int, int] = {}
    destination_volumes: dict[int, Decimal] = {}
    tokens: dict[str, _TokenAccumulator] = {}
    daily: dict[str, _DayAccumulator] = {}
    monthly: dict[str, _DayAccumulator] = {}

    for tx in sorted_transactions:
        total_volume += tx.amount_usd

        source_counts[tx.source_chain_id] = source_counts.get(tx.source_chain_id, 0) + 1
        destination_counts[tx.destination_chain_id] = (
            destination_counts.get(tx.destination_chain_id, 0) + 1
        )
        destination_volumes[tx.destination_chain_id] = (
            destination_volumes.get(tx.destination_chain_id, Decimal(0)) + tx.amount_usd
        )

        token = tokens.setdefault(tx.token_symbol.upper(), _TokenAccumulator(address=tx.token_address))
        token.count += 1
        token.volume_usd += tx.amount_usd

        date_key = format_date_iso(tx.timestamp)
        day = daily.setdefault(date_key, _DayAccumulator())
        day.count += 1
        day.volume_usd += tx.amount_usd
        day.destinations[tx.destination_chain_id] = day.destinations.get(tx.destination_chain_id, 0) + 1

        month = monthly.setdefault(date_key[:7], _DayAccumulator())
        month.count += 1
        month.volume_usd += tx.amount_usd

    most_used_source = _first_max(source_counts.items())
    most_used_destination = _first_max(destination_counts.items())
    highest_volume = _first_max(destination_volumes.items())
    top_token = _first_max((symbol, data.count) for symbol, data in tokens.items())

    return BridgeWrappedStats(
        wallet_address=address,
        year=year,
        generated_at=datetime.now(timezone.utc).isoformat(),
        total_bridging_actions=total,
        total_volume_usd=total_volume,
        most_used_source_chain=(
            _chain_stats(*most_used_source, total) if most_used_source else None
        ),
        most_used_destination_chain=(
            _chain_stats(*most_used_destination, total) if most_used_destination else None
        ),
        highest_volume_destination=(
            _chain_stats(
                highest_volume[0],
                destination_counts[highest_volume[0]],
                total,
                volume_usd=highest_volume[1],
            )
            if highest_volume
            else None
        ),
        most_bridged_token=(
            _token_stats(top_token[0], tokens[top_token[0]], total) if top_token else None
        ),
        busiest_day=_busiest_day(daily),
        provider_breakdown=(
            provider_breakdown
            if provider_breakdown is not None
            else build_provider_breakdown(sorted_transactions)
        ),
        monthly_activity=_monthly_activity(monthly, year),
        top_source_chains=_top_chains(source_counts, total),
        top_destination_chains=_top_chains(destination_counts, total),
        top_tokens=_top_tokens(tokens, total),
        transactions=sorted_transactions,
    )


# ===================
# Aggregator
# ===================

class BridgeAggregator:
    """Fetches from every provider concurrently and aggregates the results."""

    def __init__(
        self,
        providers: list[BaseBridgeProvider],
        timeout: Optional[float] = None,
    ):
        self.providers = providers
        self.timeout = timeout if timeout is not None else settings.aggregation_timeout_seconds

    async def get_wrapped_stats(self, address: str, year: Optional[int] = None) -> BridgeWrappedStats:
        """
        Fetch and aggregate bridge statistics for a wallet address.

        A provider that fails or times out contributes whatever it had
        collected; it never fails the request.
        """
        year = year or settings.wrapped_year
        start_timestamp, end_timestamp = year_bounds(year)

        with log_context(address=address, year=year):
            results = await asyncio.gather(
                *(
                    self._run_provider(provider, address, start_timestamp, end_timestamp)
                    for provider in self.providers
                )
            )

            all_transactions = [tx for provider_txs in results for tx in provider_txs]
            breakdown = build_provider_breakdown(all_transactions)
            deduplicated = deduplicate_transactions(all_transactions)

            logger.info(
                "Aggregated bridge activity",
                fetched=len(all_transactions),
                duplicates_removed=len(all_transactions) - len(deduplicated),
                transactions=len(deduplicated),
            )

            return calculate_stats(address, year, deduplicated, breakdown)

    async def _run_provider(
        self,
        provider: BaseBridgeProvider,
        address: str,
        start_timestamp: int,
        end_timestamp: int,
    ) -> list[NormalizedTransaction]:
        collected: list[NormalizedTransaction] = []
        fetch = provider.fetch_transactions(address, start_timestamp, end_timestamp, collected=collected)

        try:
            if self.timeout:
                await asyncio.wait_for(fetch, timeout=self.timeout)
            else:
                await fetch
        except asyncio.TimeoutError:
            logger.warning(
                "Provider timed out, using partial results",
                provider=provider.provider.value,
                collected=len(collected),
            )
        except Exception as e:
            logger.error("Provider fetch failed", provider=provider.provider.value, error=str(e))
            return []

        return collected

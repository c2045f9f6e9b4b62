#!/usr/bin/env python
"""
Print a wallet's yearly bridging report.

Usage:
    python scripts/wrapped_report.py 0xYourWallet
    python scripts/wrapped_report.py 0xYourWallet --year 2024
"""

import argparse
import asyncio
import os
import sys

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from bridge_wrapped.config import settings
from bridge_wrapped.providers import ProviderRegistry
from bridge_wrapped.services.aggregator import BridgeAggregator, BridgeWrappedStats
from bridge_wrapped.services.classification import classify_user
from bridge_wrapped.utils.logging import setup_logging


def format_report(stats: BridgeWrappedStats) -> str:
    persona = classify_user(stats.transactions, stats.total_volume_usd)
    lines = [
        f"Bridge Wrapped {stats.year} for {stats.wallet_address}",
        "",
        f"Bridging actions: {stats.total_bridging_actions}",
        f"Total volume:     ${stats.total_volume_usd:,.2f}",
        f"Persona:          {persona.title} ({'*' * persona.rarity})",
    ]

    if stats.most_used_source_chain:
        chain = stats.most_used_source_chain
        lines.append(f"Top source:       {chain.chain_name} ({chain.count}, {chain.percentage}%)")
    if stats.most_used_destination_chain:
        chain = stats.most_used_destination_chain
        lines.append(f"Top destination:  {chain.chain_name} ({chain.count}, {chain.percentage}%)")
    if stats.highest_volume_destination:
        chain = stats.highest_volume_destination
        lines.append(f"Biggest inflow:   {chain.chain_name} (${chain.volume_usd:,.2f})")
    if stats.most_bridged_token:
        token = stats.most_bridged_token
        lines.append(f"Top token:        {token.symbol} ({token.count}, {token.percentage}%)")
    if stats.busiest_day:
        day = stats.busiest_day
        lines.append(
            f"Busiest day:      {day.date} ({day.count} tx, mostly to "
            f"{day.primary_destination.chain_name})"
        )

    lines.append("")
    lines.append("Providers (before dedup):")
    for provider, provider_stats in stats.provider_breakdown.items():
        lines.append(
            f"  {provider.value:<8} {provider_stats.count:>5}  ${provider_stats.volume_usd:,.2f}"
        )

    lines.append("")
    lines.append("Monthly activity:")
    for month in stats.monthly_activity:
        lines.append(f"  {month.month_name:<10} {month.count:>5}  ${month.volume_usd:,.2f}")

    return "\n".join(lines)


async def run(address: str, year: int) -> None:
    registry = ProviderRegistry()
    await registry.initialize()
    try:
        aggregator = BridgeAggregator(registry.adapters)
        stats = await aggregator.get_wrapped_stats(address, year)
    finally:
        await registry.close()

    print(format_report(stats))


def main():
    parser = argparse.ArgumentParser(description="Print a wallet's yearly bridging report")
    parser.add_argument("address", help="Wallet address (0x...)")
    parser.add_argument("--year", "-y", type=int, default=settings.wrapped_year,
                        help=f"Calendar year (default: {settings.wrapped_year})")
    parser.add_argument("--log-level", default="WARNING",
                        help="Log level (default: WARNING)")

    args = parser.parse_args()

    if not settings.min_year <= args.year <= settings.max_year:
        parser.error(f"year must be between {settings.min_year} and {settings.max_year}")

    setup_logging(args.log_level)
    asyncio.run(run(args.address, args.year))


if __name__ == "__main__":
    main()

"""
Bridge Wrapped - yearly cross-chain bridging stats for a wallet.
Aggregates Across, Relay and LI.FI activity into one deduplicated report.
"""

__version__ = "1.0.0"

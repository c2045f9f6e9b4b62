"""
Pytest configuration and fixtures.
"""

from decimal import Decimal
from typing import Callable

import httpx
import pytest

from bridge_wrapped.providers.base import (
    BridgeProvider,
    NormalizedTransaction,
    TransactionStatus,
)
from bridge_wrapped.services.chains import get_chain_name
from bridge_wrapped.services.tokens import TokenResolver
from bridge_wrapped.utils.parsing import generate_tx_id

# 2025-03-14 12:00:00 UTC
BASE_TIMESTAMP = 1741953600
DAY = 86400

WALLET = "0x1234567890abcdef1234567890abcdef12345678"


def make_transaction(
    tx_hash: str = "0xaa",
    provider: BridgeProvider = BridgeProvider.ACROSS,
    source_chain_id: int = 1,
    destination_chain_id: int = 10,
    amount_usd: str = "100",
    timestamp: int = BASE_TIMESTAMP,
    token_symbol: str = "USDC",
    token_address: str = "0xa0b86991c6218b36c1d19d4a2e9eb0ce3606eb48",
    status: TransactionStatus = TransactionStatus.COMPLETED,
) -> NormalizedTransaction:
    """Build a normalized transaction with sensible defaults."""
    return NormalizedTransaction(
        id=generate_tx_id(provider.value, tx_hash, source_chain_id, destination_chain_id),
        provider=provider,
        tx_hash=tx_hash,
        timestamp=timestamp,
        source_chain_id=source_chain_id,
        source_chain_name=get_chain_name(source_chain_id),
        destination_chain_id=destination_chain_id,
        destination_chain_name=get_chain_name(destination_chain_id),
        token_symbol=token_symbol,
        token_address=token_address,
        amount="100000000",
        amount_formatted=Decimal("100"),
        amount_usd=Decimal(amount_usd),
        status=status,
    )


def mock_client(handler: Callable[[httpx.Request], httpx.Response]) -> httpx.AsyncClient:
    """HTTP client answering every request with ``handler``."""
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


@pytest.fixture
def make_tx() -> Callable[..., NormalizedTransaction]:
    """Provide the transaction factory."""
    return make_transaction


@pytest.fixture
def resolver() -> TokenResolver:
    """Token resolver with the external lookup disabled."""
    return TokenResolver(api_key="")


@pytest.fixture
def fast_retry() -> dict:
    """Provider kwargs that retry without sleeping."""
    return {
        "retry_attempts": 3,
        "retry_base_delay": 0,
        "retry_max_delay": 0,
    }


@pytest.fixture
def make_client() -> Callable[[Callable[[httpx.Request], httpx.Response]], httpx.AsyncClient]:
    """Provide the mock HTTP client factory."""
    return mock_client

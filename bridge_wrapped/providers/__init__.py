"""
Provider registry for the bridge transaction indexers.
Routes fetches to the correct adapter and manages their HTTP lifecycles.
"""

from typing import Optional

from bridge_wrapped.providers.across import AcrossProvider
from bridge_wrapped.providers.base import (
    BaseBridgeProvider,
    BridgeProvider,
    NormalizedTransaction,
    ProviderError,
    TransactionStatus,
)
from bridge_wrapped.providers.lifi import LiFiProvider
from bridge_wrapped.providers.relay import RelayProvider
from bridge_wrapped.services.tokens import TokenResolver
from bridge_wrapped.utils.logging import get_logger

logger = get_logger(__name__)


# Provider metadata for display
PROVIDER_INFO = {
    BridgeProvider.ACROSS: {
        "name": "Across",
        "website": "https://across.to",
        "pagination": "offset",
        "description": "Intent-based bridge secured by UMA",
    },
    BridgeProvider.RELAY: {
        "name": "Relay",
        "website": "https://relay.link",
        "pagination": "continuation",
        "description": "Instant cross-chain payments and bridging",
    },
    BridgeProvider.LIFI: {
        "name": "LI.FI",
        "website": "https://li.fi",
        "pagination": "cursor",
        "description": "Bridge and DEX aggregation",
    },
}


class ProviderRegistry:
    """Registry holding one adapter per bridge provider."""

    def __init__(
        self,
        token_resolver: Optional[TokenResolver] = None,
        providers: Optional[list[BaseBridgeProvider]] = None,
    ):
        self.token_resolver = token_resolver or TokenResolver()
        if providers is None:
            providers = [
                AcrossProvider(self.token_resolver),
                RelayProvider(self.token_resolver),
                LiFiProvider(self.token_resolver),
            ]
        self._providers: dict[BridgeProvider, BaseBridgeProvider] = {
            p.provider: p for p in providers
        }
        self._initialized = False

    async def initialize(self) -> None:
        """Initialize the token resolver and all providers."""
        await self.token_resolver.initialize()
        for provider_id, provider in self._providers.items():
            try:
                await provider.initialize()
                logger.info(f"Initialized provider: {provider_id.value}")
            except Exception as e:
                logger.error(f"Failed to initialize {provider_id.value}", error=str(e))

        self._initialized = True

    async def close(self) -> None:
        """Close all provider connections."""
        for provider in self._providers.values():
            try:
                await provider.close()
            except Exception as e:
                logger.error("Failed to close provider", provider=provider.provider.value, error=str(e))
        await self.token_resolver.close()

        self._initialized = False

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    def get(self, provider: BridgeProvider) -> BaseBridgeProvider:
        """Get a provider adapter by ID."""
        if provider not in self._providers:
            raise ValueError(f"Unknown provider: {provider}")
        return self._providers[provider]

    def get_info(self, provider: BridgeProvider) -> dict:
        """Get provider metadata."""
        return PROVIDER_INFO.get(provider, {})

    @property
    def all_providers(self) -> list[BridgeProvider]:
        """Get list of all provider IDs."""
        return list(self._providers.keys())

    @property
    def adapters(self) -> list[BaseBridgeProvider]:
        return list(self._providers.values())


__all__ = [
    "AcrossProvider",
    "BaseBridgeProvider",
    "BridgeProvider",
    "LiFiProvider",
    "NormalizedTransaction",
    "PROVIDER_INFO",
    "ProviderError",
    "ProviderRegistry",
    "RelayProvider",
    "TransactionStatus",
]

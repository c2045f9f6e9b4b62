"""
Token metadata resolution.

Resolves a token contract address to symbol/name/decimals/logo using an
in-memory TTL cache, a static table of well-known tokens, and the
CoinMarketCap info endpoint for everything else.
https://coinmarketcap.com/api/documentation/v1/#operation/getV2CryptocurrencyInfo
"""

import time
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Optional

import httpx

from bridge_wrapped.config import settings
from bridge_wrapped.utils.logging import get_logger

logger = get_logger(__name__)

NATIVE_TOKEN_ADDRESS = "0x0000000000000000000000000000000000000000"
NATIVE_PSEUDO_ADDRESS = "0xeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeee"

SIX_DECIMAL_SYMBOLS = {"USDC", "USDT"}


@dataclass(frozen=True)
class TokenInfo:
    """Resolved token metadata."""
    symbol: str
    name: str
    decimals: int
    logo: Optional[str] = None


SYMBOL_TO_LOGO = {
    "BNB": "https://cryptologos.cc/logos/bnb-bnb-logo.png?v=040",
    "AVAX": "https://cryptologos.cc/logos/avalanche-avax-logo.png?v=040",
    "DAI": "https://cryptologos.cc/logos/multi-collateral-dai-dai-logo.png?v=040",
    "ETH": "https://cryptologos.cc/logos/ethereum-eth-logo.png?v=040",
    "KAIA": "https://cryptologos.cc/logos/kaia-kaia-logo.png?v=040",
    "MATIC": "https://cryptologos.cc/logos/polygon-matic-logo.png?v=040",
    "MON": "https://assets.coingecko.com/coins/images/38927/large/monad.jpg",
    "POL": "https://cryptologos.cc/logos/polygon-matic-logo.png?v=040",
    "SOPH": "https://assets.coingecko.com/coins/images/38680/large/sophon_logo_200.png",
    "USDC": "https://coin-images.coingecko.com/coins/images/6319/large/usdc.png",
    "USDT": "https://coin-images.coingecko.com/coins/images/35023/large/USDT.png",
    "WETH": "https://coin-images.coingecko.com/coins/images/2518/large/weth.png",
    "HYPE": "https://assets.coingecko.com/coins/images/50882/large/hyperliquid.jpg",
}

ETH = TokenInfo("ETH", "Ethereum", 18, SYMBOL_TO_LOGO["ETH"])
WETH = TokenInfo("WETH", "Wrapped Ethereum", 18, SYMBOL_TO_LOGO["WETH"])
USDC = TokenInfo("USDC", "USD Coin", 6, SYMBOL_TO_LOGO["USDC"])
USDT = TokenInfo("USDT", "Tether USD", 6, SYMBOL_TO_LOGO["USDT"])
DAI = TokenInfo("DAI", "Dai Stablecoin", 18, SYMBOL_TO_LOGO["DAI"])

# Well-known tokens across chains, keyed by lowercase address
_WELL_KNOWN_BY_TOKEN = {
    ETH: [NATIVE_TOKEN_ADDRESS, NATIVE_PSEUDO_ADDRESS],
    WETH: [
        "0xc02aaa39b223fe8d0a0e5c4f27ead9083c756cc2",  # Ethereum
        "0x4200000000000000000000000000000000000006",  # Base, Optimism, Mode
        "0x82af49447d8a07e3bd95bd0d56f35241523fbab1",  # Arbitrum
        "0x5300000000000000000000000000000000000004",  # Scroll
    ],
    USDC: [
        "0xa0b86991c6218b36c1d19d4a2e9eb0ce3606eb48",  # Ethereum
        "0xaf88d065e77c8cc2239327c5edb3a432268e5831",  # Arbitrum
        "0x0b2c639c533813f4aa9d7837caf62653d097ff85",  # Optimism
        "0x833589fcd6edb6e08f4c7c32d4f71b54bda02913",  # Base
        "0x3c499c542cef5e3811e1192ce70d8cc03d5c3359",  # Polygon
        "0x2791bca1f2de4661ed88a30c99a7a9449aa84174",  # Polygon (bridged)
        "0x8ac76a51cc950d9822d68b83fe1ad97b32cd580d",  # BSC
        "0x5425890298aed601595a70ab815c96711a31bc65",
        "0x06efdbff2a14a7c8e15944d1f4a48f9f95f663a4",  # Scroll
        "0x06a78e50142a4e9b2c6b49d47e5f0d1e1db33428",
        "0x176211869ca2b568f2a7d4ee941e073a821ee1ff",  # Linea
        "0x750ba8b76187092b0d1e87e28daaf484d1b5273b",
        "0x1d17cbcf0d6d143135ae902365d2e5e2a16538d4",
        "0x09bc4e0d864854c6afb6eb9a9cdf58ac190d0df9",
        "0xa8ce8aee21bc2a48a5ef670afcc9274c7bbbc035",  # Polygon zkEVM
        "0xd9aaec86b65d86f6a7b5b1b0c42ffa531710b6ca",
    ],
    USDT: [
        "0xdac17f958d2ee523a2206206994597c13d831ec7",  # Ethereum
        "0xfd086bc7cd5c481dcc9c85ebe478a1c0b69fcbb9",  # Arbitrum
        "0x94b008aa00579c1307b0ef2c499ad98a8ce58e58",  # Optimism
        "0x9702230a8ea53601f5cd2dc00fdbc13d4df4a8c7",  # Avalanche
        "0xc2132d05d31c914a87c6611c10748aeb04b58e8f",  # Polygon
        "0x55d398326f99059ff775485246999027b3197955",  # BSC
        "0xf417f5a458ec102b90352f697d6e2ac3a3d2851f",
        "0x1e4a5963abfd975d8c9021ce480b42188849d41d",
        "0xf0f161fda2712db8b566946122a5af183995e2ed",
        "0x493257fd37edb34451f62edf8d2a0c418852ba4c",  # zkSync Era
        "0x68f180fcce6836688e9084f035309e29bf0a2095",
    ],
    DAI: [
        "0x6b175474e89094c44da98b954eedeac495271d0f",  # Ethereum
        "0xda10009cbd5d07dd0cecc66161fc93d7c9000da1",  # Arbitrum, Optimism
        "0x8f3cf7ad23cd3cadbd9735aff958023239c6a063",  # Polygon
        "0x1af3f329e8be154074d8769d1ffa4ee058b1dbc3",  # BSC
        "0xd586e7f844cea2f87f50152665bcbc2c279d8d70",  # Avalanche
    ],
}

WELL_KNOWN_TOKENS: dict[str, TokenInfo] = {
    address: info
    for info, addresses in _WELL_KNOWN_BY_TOKEN.items()
    for address in addresses
}


def get_static_token_info(address: str) -> Optional[TokenInfo]:
    """Look up a well-known token. Returns None for anything not in the table."""
    return WELL_KNOWN_TOKENS.get(address.lower())


def decimals_for_symbol(symbol: str) -> int:
    """Approximate decimals from a symbol (stablecoins 6, everything else 18)."""
    return 6 if symbol.upper() in SIX_DECIMAL_SYMBOLS else 18


class TokenResolver:
    """
    Token metadata resolver with a process-lifetime TTL cache.

    One instance is shared by all provider adapters. Concurrent resolutions
    of the same address may both hit the external lookup; the last write wins.
    Addresses the lookup could not resolve are remembered for a shorter
    ``negative_ttl_seconds`` so a page of unknown tokens costs one request.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        api_url: Optional[str] = None,
        ttl_seconds: Optional[int] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        clock: Callable[[], float] = time.monotonic,
        negative_ttl_seconds: Optional[int] = None,
    ):
        self.api_key = settings.coinmarketcap_api_key if api_key is None else api_key
        self.api_url = (api_url or settings.coinmarketcap_api_url).rstrip("/")
        self.ttl_seconds = ttl_seconds if ttl_seconds is not None else settings.token_cache_ttl_seconds
        self.negative_ttl_seconds = (
            negative_ttl_seconds
            if negative_ttl_seconds is not None
            else settings.token_negative_ttl_seconds
        )
        self._http_client = http_client
        self._owns_client = http_client is None
        self._clock = clock
        self._cache: dict[str, tuple[TokenInfo, float]] = {}
        self._unresolved: dict[str, float] = {}
        self._hits = 0
        self._misses = 0

    @property
    def is_lookup_available(self) -> bool:
        return bool(self.api_key)

    async def initialize(self) -> None:
        """Initialize HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                timeout=settings.http_timeout_seconds,
                headers={"Accept": "application/json"},
            )
            self._owns_client = True
        logger.info("Token resolver initialized", lookup_available=self.is_lookup_available)

    async def close(self) -> None:
        """Close HTTP client."""
        if self._http_client and self._owns_client:
            await self._http_client.aclose()
            self._http_client = None

    # ------------------------------------------------------------------
    # Cache
    # ------------------------------------------------------------------

    def _get_cached(self, address: str) -> Optional[TokenInfo]:
        entry = self._cache.get(address)
        if entry is None:
            self._misses += 1
            return None
        info, inserted_at = entry
        if self._clock() - inserted_at >= self.ttl_seconds:
            self._misses += 1
            return None
        self._hits += 1
        return info

    def _store(self, address: str, info: TokenInfo) -> None:
        self._cache[address] = (info, self._clock())
        self._unresolved.pop(address, None)

    def _recently_unresolved(self, address: str) -> bool:
        inserted_at = self._unresolved.get(address)
        if inserted_at is None:
            return False
        if self._clock() - inserted_at >= self.negative_ttl_seconds:
            del self._unresolved[address]
            return False
        return True

    def clear_cache(self) -> None:
        self._cache.clear()
        self._unresolved.clear()
        self._hits = 0
        self._misses = 0

    def cache_stats(self) -> dict:
        """Return hit/miss statistics."""
        total = self._hits + self._misses
        return {
            "size": len(self._cache),
            "unresolved": len(self._unresolved),
            "hits": self._hits,
            "misses": self._misses,
            "hit_rate": round(self._hits / total * 100, 1) if total > 0 else 0.0,
        }

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    async def resolve(self, address: str) -> Optional[TokenInfo]:
        """
        Resolve a token address.

        Order: cache, static table, external lookup. Returns None when the
        token is unknown or the lookup is unavailable; never raises.
        """
        if not address:
            return None
        resolved = await self.resolve_many([address])
        return resolved.get(address.lower())

    async def resolve_many(self, addresses: Iterable[str]) -> dict[str, TokenInfo]:
        """
        Resolve several addresses with at most one external lookup.

        Returns:
            Mapping of lowercase address to TokenInfo for every address that
            resolved. Unresolved addresses are absent.
        """
        results: dict[str, TokenInfo] = {}
        pending: list[str] = []

        for address in addresses:
            if not isinstance(address, str) or not address:
                continue
            lower = address.lower()
            if lower in results or lower in pending:
                continue

            cached = self._get_cached(lower)
            if cached is not None:
                results[lower] = cached
                continue

            static = get_static_token_info(lower)
            if static is not None:
                self._store(lower, static)
                results[lower] = static
                continue

            if self._recently_unresolved(lower):
                continue

            pending.append(lower)

        if pending:
            fetched = await self._lookup(pending)
            now = self._clock()
            for lower in pending:
                info = fetched.get(lower)
                if info is None:
                    self._unresolved[lower] = now
                    continue
                self._store(lower, info)
                results[lower] = info

        return results

    async def _lookup(self, addresses: list[str]) -> dict[str, TokenInfo]:
        """Query CoinMarketCap for unknown addresses. Failures yield {}."""
        if not self.is_lookup_available:
            logger.warning("Token lookup unavailable (no API key)", count=len(addresses))
            return {}

        if self._http_client is None:
            await self.initialize()

        try:
            response = await self._http_client.get(
                f"{self.api_url}/v2/cryptocurrency/info",
                params={"address": ",".join(addresses)},
                headers={
                    "X-CMC_PRO_API_KEY": self.api_key,
                    "Accept": "application/json",
                },
            )
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPStatusError as e:
            logger.warning(
                "CoinMarketCap API error",
                status=e.response.status_code,
                addresses=addresses,
                error=e.response.text[:200] if e.response.text else "",
            )
            return {}
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("CoinMarketCap request failed", addresses=addresses, error=str(e))
            return {}

        try:
            return self._parse_lookup(payload, addresses)
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            logger.warning("Unexpected CoinMarketCap payload", addresses=addresses, error=str(e))
            return {}

    def _parse_lookup(self, payload: Any, addresses: list[str]) -> dict[str, TokenInfo]:
        if not isinstance(payload, dict):
            return {}
        status = payload.get("status")
        if status is not None and not isinstance(status, dict):
            logger.warning("Malformed CoinMarketCap status", status=str(status)[:100])
            return {}
        if status and status.get("error_code", 0) != 0:
            logger.warning(
                "CoinMarketCap returned error status",
                error_code=status.get("error_code"),
                error=status.get("error_message"),
            )
            return {}

        data = payload.get("data") or {}
        if isinstance(data, dict):
            entries = data.values()
        elif isinstance(data, list):
            entries = data
        else:
            return {}

        wanted = set(addresses)
        results: dict[str, TokenInfo] = {}
        for entry in entries:
            if isinstance(entry, list):
                entry = entry[0] if entry else None
            if not isinstance(entry, dict):
                continue
            symbol = entry.get("symbol")
            if not isinstance(symbol, str) or not symbol:
                continue

            platform = entry.get("platform")
            raw_address = platform.get("token_address") if isinstance(platform, dict) else None
            token_address = raw_address.lower() if isinstance(raw_address, str) else ""
            if token_address not in wanted:
                if len(addresses) != 1:
                    continue
                token_address = addresses[0]

            name = entry.get("name")
            logo = entry.get("logo")
            results[token_address] = TokenInfo(
                symbol=symbol,
                name=name if isinstance(name, str) and name else symbol,
                decimals=decimals_for_symbol(symbol),
                logo=logo if isinstance(logo, str) and logo else SYMBOL_TO_LOGO.get(symbol.upper()),
            )

        return results

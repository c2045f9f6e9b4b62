"""
Provider abstraction layer for bridge transaction indexers.
All bridge providers implement this interface and emit NormalizedTransaction.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

import httpx

from bridge_wrapped.config import settings
from bridge_wrapped.services.chains import get_chain_name
from bridge_wrapped.services.tokens import TokenResolver
from bridge_wrapped.utils.logging import get_logger
from bridge_wrapped.utils.parsing import (
    NormalizationError,
    generate_tx_id,
    is_within_range,
    parse_token_amount,
)
from bridge_wrapped.utils.retry import retry_with_backoff

logger = get_logger(__name__)


class BridgeProvider(str, Enum):
    """Supported bridge transaction providers."""
    ACROSS = "across"
    RELAY = "relay"
    LIFI = "lifi"


class TransactionStatus(str, Enum):
    """Normalized bridge transfer status."""
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


_COMPLETED_STATUSES = {"filled", "success", "completed", "done"}
_FAILED_STATUSES = {"expired", "refunded", "failed", "cancelled"}


def map_status(raw_status: Any) -> TransactionStatus:
    """Map a provider status string onto the 3-state model (case-insensitive)."""
    if not isinstance(raw_status, str):
        return TransactionStatus.PENDING
    status = raw_status.strip().lower()
    if status in _COMPLETED_STATUSES:
        return TransactionStatus.COMPLETED
    if status in _FAILED_STATUSES:
        return TransactionStatus.FAILED
    return TransactionStatus.PENDING


@dataclass(frozen=True)
class NormalizedTransaction:
    """Unified bridge transfer representation across providers."""
    id: str
    provider: BridgeProvider
    tx_hash: str
    timestamp: int  # Unix seconds, UTC

    # Chains
    source_chain_id: int
    source_chain_name: str
    destination_chain_id: int
    destination_chain_name: str

    # Token
    token_symbol: str
    token_address: str  # lowercase; all-zero address for the native asset
    amount: str  # raw integer in smallest unit
    amount_formatted: Decimal
    amount_usd: Decimal  # 0 when no price data was available

    status: TransactionStatus

    @property
    def dedup_key(self) -> str:
        """Identity of the underlying transfer, independent of provider."""
        return f"{self.tx_hash.lower()}-{self.source_chain_id}-{self.destination_chain_id}"


@dataclass
class Page:
    """One page of raw provider records."""
    records: list[dict]
    # None when the provider signals there are no further pages
    next_cursor: Any = None


class ProviderError(Exception):
    """Base exception for provider errors."""
    def __init__(self, message: str, provider: BridgeProvider, code: Optional[str] = None):
        self.message = message
        self.provider = provider
        self.code = code
        super().__init__(f"[{provider.value}] {message}")


class RateLimitError(ProviderError):
    """Raised when rate limit is hit."""
    pass


class MalformedResponseError(ProviderError):
    """Raised when a provider returns a body we cannot read."""
    pass


def compute_amount_usd(
    amount_formatted: Decimal,
    provided_usd: Optional[Decimal] = None,
    unit_price_usd: Optional[Decimal] = None,
) -> Decimal:
    """Prefer a provider-supplied USD total, then amount * unit price, else 0."""
    if provided_usd is not None and provided_usd >= 0:
        return provided_usd
    if unit_price_usd is not None and unit_price_usd > 0:
        return amount_formatted * unit_price_usd
    return Decimal(0)


class BaseBridgeProvider(ABC):
    """
    Abstract base class for bridge providers.

    Subclasses describe how to fetch one page and how to normalize one raw
    record; the pagination loop, retry policy, year-range filter and
    failure isolation live here.
    """

    # Provider identification
    provider: BridgeProvider
    name: str
    website: str

    # Providers returning newest-first may stop once a record predates the range
    supports_early_stop: bool = False

    def __init__(
        self,
        token_resolver: TokenResolver,
        http_client: Optional[httpx.AsyncClient] = None,
        base_url: Optional[str] = None,
        max_pages: Optional[int] = None,
        retry_attempts: Optional[int] = None,
        retry_base_delay: Optional[float] = None,
        retry_max_delay: Optional[float] = None,
    ):
        self.token_resolver = token_resolver
        self.base_url = (base_url or self.default_base_url()).rstrip("/")
        self.max_pages = max_pages or settings.max_pages
        self.retry_attempts = retry_attempts or settings.retry_max_attempts
        self.retry_base_delay = (
            settings.retry_base_delay_seconds if retry_base_delay is None else retry_base_delay
        )
        self.retry_max_delay = (
            settings.retry_max_delay_seconds if retry_max_delay is None else retry_max_delay
        )
        self._http_client = http_client
        self._owns_client = http_client is None

    @abstractmethod
    def default_base_url(self) -> str:
        """Base URL used when none is injected."""
        pass

    async def initialize(self) -> None:
        """Initialize HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                timeout=settings.http_timeout_seconds,
                headers={"Accept": "application/json"},
            )
            self._owns_client = True

    async def close(self) -> None:
        """Close connections."""
        if self._http_client and self._owns_client:
            await self._http_client.aclose()
            self._http_client = None

    @property
    def is_initialized(self) -> bool:
        return self._http_client is not None

    # ===================
    # API Helpers
    # ===================

    async def _api_request(self, endpoint: str, params: Optional[dict] = None) -> Any:
        """GET a provider endpoint and decode the JSON body."""
        if self._http_client is None:
            await self.initialize()

        try:
            response = await self._http_client.get(
                f"{self.base_url}{endpoint}",
                params=params,
                headers={"Accept": "application/json"},
            )

            if response.status_code == 429:
                raise RateLimitError("Rate limit exceeded", self.provider, "429")

            response.raise_for_status()
            return response.json()

        except httpx.HTTPStatusError as e:
            raise ProviderError(
                f"API error: {e.response.status_code}",
                self.provider,
                str(e.response.status_code),
            )
        except ValueError as e:
            raise MalformedResponseError(f"Invalid JSON body: {e}", self.provider)

    # ===================
    # Provider Hooks
    # ===================

    @abstractmethod
    async def _fetch_page(
        self,
        address: str,
        start_timestamp: int,
        end_timestamp: int,
        cursor: Any,
    ) -> Page:
        """Fetch one page. ``cursor`` is None for the first page."""
        pass

    @abstractmethod
    def _token_address(self, record: dict) -> Optional[str]:
        """Token contract address carried by a raw record, if any."""
        pass

    @abstractmethod
    async def _normalize(self, record: dict) -> Optional[NormalizedTransaction]:
        """
        Convert a raw record into a NormalizedTransaction.

        Returns None (or raises NormalizationError) when required fields
        are missing.
        """
        pass

    # ===================
    # Normalization Helpers
    # ===================

    async def _resolve_token(
        self,
        token_address: Optional[str],
        payload_symbol: Optional[str] = None,
        payload_decimals: Optional[int] = None,
    ) -> tuple[str, int]:
        """
        Pick the symbol and decimals for a record.

        Symbol: resolver, then payload, then the raw address.
        Decimals: payload, then resolver, then 18.
        """
        info = await self.token_resolver.resolve(token_address) if token_address else None

        symbol = (info.symbol if info else None) or payload_symbol or token_address or "UNKNOWN"
        if payload_decimals is not None and payload_decimals >= 0:
            decimals = payload_decimals
        elif info is not None:
            decimals = info.decimals
        else:
            decimals = 18
        return symbol, decimals

    def _build_transaction(
        self,
        *,
        tx_hash: Any,
        timestamp: int,
        source_chain_id: int,
        destination_chain_id: int,
        token_symbol: str,
        token_address: str,
        amount: str,
        decimals: int,
        status: TransactionStatus,
        provided_usd: Optional[Decimal] = None,
        unit_price_usd: Optional[Decimal] = None,
    ) -> NormalizedTransaction:
        """Assemble a NormalizedTransaction from already-extracted fields."""
        if tx_hash is None or tx_hash == "":
            raise NormalizationError("Missing transaction hash")
        tx_hash = str(tx_hash)

        amount = str(amount).strip()
        amount_formatted = parse_token_amount(amount, decimals)

        return NormalizedTransaction(
            id=generate_tx_id(self.provider.value, tx_hash, source_chain_id, destination_chain_id),
            provider=self.provider,
            tx_hash=tx_hash,
            timestamp=timestamp,
            source_chain_id=source_chain_id,
            source_chain_name=get_chain_name(source_chain_id),
            destination_chain_id=destination_chain_id,
            destination_chain_name=get_chain_name(destination_chain_id),
            token_symbol=token_symbol,
            token_address=token_address.lower(),
            amount=amount,
            amount_formatted=amount_formatted,
            amount_usd=compute_amount_usd(amount_formatted, provided_usd, unit_price_usd),
            status=status,
        )

    # ===================
    # Pagination
    # ===================

    async def fetch_transactions(
        self,
        address: str,
        start_timestamp: int,
        end_timestamp: int,
        collected: Optional[list[NormalizedTransaction]] = None,
    ) -> list[NormalizedTransaction]:
        """
        Fetch all normalized transactions for an address within a time range.

        Never raises on fetch failures: whatever was accumulated before the
        failure is returned.

        Args:
            address: Wallet address
            start_timestamp: Range start, Unix seconds, inclusive
            end_timestamp: Range end, Unix seconds, inclusive
            collected: Optional list to append accepted records to as they
                arrive, so a caller that cancels this coroutine keeps them

        Returns:
            Normalized transactions within the range, in provider order
        """
        results = collected if collected is not None else []
        cursor: Any = None
        pages = 0
        dropped = 0

        while pages < self.max_pages:
            try:
                page = await retry_with_backoff(
                    lambda: self._fetch_page(address, start_timestamp, end_timestamp, cursor),
                    max_attempts=self.retry_attempts,
                    base_delay=self.retry_base_delay,
                    max_delay=self.retry_max_delay,
                )
            except Exception as e:
                logger.error(
                    "Page fetch failed, returning partial results",
                    provider=self.provider.value,
                    page=pages,
                    collected=len(results),
                    error=str(e),
                )
                break

            pages += 1
            if not page.records:
                break

            await self._prefetch_tokens(page.records)

            reached_start = False
            for record in page.records:
                try:
                    normalized = await self._normalize(record)
                except (NormalizationError, AttributeError, KeyError, TypeError, ValueError) as e:
                    dropped += 1
                    logger.warning(
                        "Failed to normalize record",
                        provider=self.provider.value,
                        error=str(e),
                    )
                    continue

                if normalized is None:
                    dropped += 1
                    continue

                if is_within_range(normalized.timestamp, start_timestamp, end_timestamp):
                    results.append(normalized)
                elif normalized.timestamp < start_timestamp:
                    reached_start = True

            if reached_start and self.supports_early_stop:
                break
            if page.next_cursor is None:
                break
            cursor = page.next_cursor
        else:
            logger.warning(
                "Page ceiling reached",
                provider=self.provider.value,
                max_pages=self.max_pages,
            )

        logger.info(
            "Provider fetch finished",
            provider=self.provider.value,
            pages=pages,
            transactions=len(results),
            dropped=dropped,
        )
        return results

    async def _prefetch_tokens(self, records: list[dict]) -> None:
        """Warm the token cache for a page with one batched lookup."""
        addresses = []
        for record in records:
            try:
                address = self._token_address(record)
            except (KeyError, TypeError, AttributeError):
                continue
            if address:
                addresses.append(address)
        if addresses:
            await self.token_resolver.resolve_many(addresses)

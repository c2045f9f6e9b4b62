"""
Across Protocol provider.
Reads deposits made by a wallet from the Across indexer using offset pagination.
https://docs.across.to/reference/api-reference
"""

from typing import Any, Optional

from bridge_wrapped.config import settings
from bridge_wrapped.providers.base import (
    BaseBridgeProvider,
    BridgeProvider,
    MalformedResponseError,
    NormalizedTransaction,
    Page,
    map_status,
)
from bridge_wrapped.services.tokens import NATIVE_TOKEN_ADDRESS, TokenResolver
from bridge_wrapped.utils.logging import get_logger
from bridge_wrapped.utils.parsing import (
    NormalizationError,
    parse_timestamp,
    to_decimal,
    to_int,
)

logger = get_logger(__name__)


class AcrossProvider(BaseBridgeProvider):
    """
    Across deposits indexer.

    Deposits are returned newest first, ``limit``/``skip`` paginated.
    """

    provider = BridgeProvider.ACROSS
    name = "Across"
    website = "https://across.to"

    supports_early_stop = True

    def __init__(
        self,
        token_resolver: TokenResolver,
        page_size: Optional[int] = None,
        max_offset: Optional[int] = None,
        **kwargs,
    ):
        super().__init__(token_resolver, **kwargs)
        self.page_size = page_size or settings.across_page_size
        self.max_offset = max_offset or settings.across_max_offset

    def default_base_url(self) -> str:
        return settings.across_api_url

    async def _fetch_page(
        self,
        address: str,
        start_timestamp: int,
        end_timestamp: int,
        cursor: Any,
    ) -> Page:
        offset = cursor or 0
        data = await self._api_request(
            "/deposits",
            params={
                "depositor": address,
                "limit": self.page_size,
                "skip": offset,
            },
        )

        if isinstance(data, list):
            deposits = data
        elif isinstance(data, dict):
            deposits = data.get("deposits") or []
        else:
            raise MalformedResponseError("Unexpected deposits payload", self.provider)

        next_offset = offset + self.page_size
        if len(deposits) < self.page_size:
            next_offset = None
        elif next_offset > self.max_offset:
            logger.warning("Offset ceiling reached", provider=self.provider.value, offset=offset)
            next_offset = None

        return Page(records=deposits, next_cursor=next_offset)

    def _token_address(self, record: dict) -> Optional[str]:
        return record.get("inputToken")

    async def _normalize(self, record: dict) -> Optional[NormalizedTransaction]:
        raw_timestamp = (
            record.get("depositBlockTimestamp")
            or record.get("depositTime")
            or record.get("quoteTimestamp")
        )
        if raw_timestamp is None:
            return None
        timestamp = parse_timestamp(raw_timestamp)

        source_chain_id = to_int(record.get("originChainId"))
        destination_chain_id = to_int(record.get("destinationChainId"))
        if source_chain_id is None or destination_chain_id is None:
            raise NormalizationError("Missing chain ids")

        tx_hash = record.get("depositTxHash") or record.get("depositTxnRef")
        if not tx_hash:
            return None

        token = record.get("token") or {}
        token_address = record.get("inputToken") or NATIVE_TOKEN_ADDRESS
        symbol, decimals = await self._resolve_token(
            token_address,
            payload_symbol=token.get("symbol"),
            payload_decimals=to_int(token.get("decimals")),
        )

        unit_price = to_decimal(token.get("priceUsd")) or to_decimal(record.get("inputPriceUsd"))

        return self._build_transaction(
            tx_hash=tx_hash,
            timestamp=timestamp,
            source_chain_id=source_chain_id,
            destination_chain_id=destination_chain_id,
            token_symbol=symbol,
            token_address=token_address,
            amount=record.get("inputAmount"),
            decimals=decimals,
            status=map_status(record.get("status")),
            unit_price_usd=unit_price,
        )

"""
LI.FI provider.
Reads transfers for a wallet from the LI.FI analytics API (cursor pagination,
server-side time filtering).
https://docs.li.fi/api-reference/get-a-paginated-list-of-filtered-transfers
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
from bridge_wrapped.services.tokens import NATIVE_TOKEN_ADDRESS
from bridge_wrapped.utils.parsing import (
    NormalizationError,
    parse_timestamp,
    to_decimal,
    to_int,
)


class LiFiProvider(BaseBridgeProvider):
    """LI.FI analytics transfers. Filters by time range server-side."""

    provider = BridgeProvider.LIFI
    name = "LI.FI"
    website = "https://li.fi"

    def default_base_url(self) -> str:
        return settings.lifi_api_url

    async def _fetch_page(
        self,
        address: str,
        start_timestamp: int,
        end_timestamp: int,
        cursor: Any,
    ) -> Page:
        # Range bounds are sent in milliseconds
        params = {
            "wallet": address,
            "fromTimestamp": start_timestamp * 1000,
            "toTimestamp": end_timestamp * 1000,
        }
        if cursor:
            params["cursor"] = cursor

        data = await self._api_request("/analytics/transfers", params=params)
        if not isinstance(data, dict):
            raise MalformedResponseError("Unexpected transfers payload", self.provider)

        next_cursor = data.get("next") if data.get("hasNext") else None
        return Page(records=data.get("transfers") or [], next_cursor=next_cursor or None)

    def _token_address(self, record: dict) -> Optional[str]:
        return ((record.get("sending") or {}).get("token") or {}).get("address")

    async def _normalize(self, record: dict) -> Optional[NormalizedTransaction]:
        sending = record.get("sending") or {}
        receiving = record.get("receiving") or {}

        raw_timestamp = sending.get("timestamp")
        if raw_timestamp is None:
            return None
        timestamp = parse_timestamp(raw_timestamp)

        token = sending.get("token") or {}
        source_chain_id = to_int(sending.get("chainId"))
        if source_chain_id is None:
            source_chain_id = to_int(token.get("chainId"))
        destination_chain_id = to_int(receiving.get("chainId"))
        if destination_chain_id is None:
            destination_chain_id = to_int((receiving.get("token") or {}).get("chainId"))
        if source_chain_id is None or destination_chain_id is None:
            raise NormalizationError("Missing chain ids")

        tx_hash = sending.get("txHash")
        if not tx_hash:
            return None

        token_address = token.get("address") or NATIVE_TOKEN_ADDRESS
        symbol, decimals = await self._resolve_token(
            token_address,
            payload_symbol=token.get("symbol"),
            payload_decimals=to_int(token.get("decimals")),
        )

        return self._build_transaction(
            tx_hash=tx_hash,
            timestamp=timestamp,
            source_chain_id=source_chain_id,
            destination_chain_id=destination_chain_id,
            token_symbol=symbol,
            token_address=token_address,
            amount=sending.get("amount"),
            decimals=decimals,
            status=map_status(record.get("status")),
            provided_usd=to_decimal(sending.get("amountUSD")),
            unit_price_usd=to_decimal(token.get("priceUSD")),
        )

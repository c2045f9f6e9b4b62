"""
Relay provider.
Reads cross-chain requests submitted by a wallet, paginated by continuation token.
https://docs.relay.link/references/api/get-requests
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
from bridge_wrapped.utils.logging import get_logger
from bridge_wrapped.utils.parsing import (
    NormalizationError,
    parse_timestamp,
    to_decimal,
    to_int,
)

logger = get_logger(__name__)


def _first(items: Any) -> dict:
    if isinstance(items, list) and items and isinstance(items[0], dict):
        return items[0]
    return {}


class RelayProvider(BaseBridgeProvider):
    """Relay requests indexer. Requests are returned newest first."""

    provider = BridgeProvider.RELAY
    name = "Relay"
    website = "https://relay.link"

    supports_early_stop = True

    def default_base_url(self) -> str:
        return settings.relay_api_url

    async def _fetch_page(
        self,
        address: str,
        start_timestamp: int,
        end_timestamp: int,
        cursor: Any,
    ) -> Page:
        params = {"user": address}
        if cursor:
            params["continuation"] = cursor

        data = await self._api_request("/requests/v2", params=params)
        if not isinstance(data, dict):
            raise MalformedResponseError("Unexpected requests payload", self.provider)

        return Page(
            records=data.get("requests") or [],
            next_cursor=data.get("continuation") or None,
        )

    def _token_address(self, record: dict) -> Optional[str]:
        data = record.get("data") or {}
        currency_in = (data.get("metadata") or {}).get("currencyIn") or {}
        currency = currency_in.get("currency") or {}
        fee_currency = data.get("feeCurrencyObject") or {}
        return currency.get("address") or fee_currency.get("address")

    async def _normalize(self, record: dict) -> Optional[NormalizedTransaction]:
        data = record.get("data") or {}
        in_tx = _first(data.get("inTxs"))
        out_tx = _first(data.get("outTxs"))

        raw_timestamp = record.get("createdAt") or in_tx.get("timestamp")
        if not raw_timestamp:
            return None
        timestamp = parse_timestamp(raw_timestamp)

        source_chain_id = to_int(in_tx.get("chainId"))
        destination_chain_id = to_int(out_tx.get("chainId"))
        if source_chain_id is None or destination_chain_id is None:
            logger.warning("Missing chain ids in Relay request", request_id=record.get("id"))
            return None

        tx_hash = in_tx.get("hash") or record.get("id")
        if not tx_hash:
            return None

        currency_in = (data.get("metadata") or {}).get("currencyIn") or {}
        currency = currency_in.get("currency") or {}
        fee_currency = data.get("feeCurrencyObject") or {}

        token_address = self._token_address(record) or NATIVE_TOKEN_ADDRESS
        payload_decimals = to_int(currency.get("decimals"))
        if payload_decimals is None:
            payload_decimals = to_int(fee_currency.get("decimals"))
        symbol, decimals = await self._resolve_token(
            token_address,
            payload_symbol=currency.get("symbol") or fee_currency.get("symbol"),
            payload_decimals=payload_decimals,
        )

        amount = currency_in.get("amount") or data.get("amount")
        if amount is None:
            raise NormalizationError("Missing amount")

        provided_usd = to_decimal(currency_in.get("amountUsd"))
        if provided_usd is None:
            provided_usd = to_decimal(data.get("amountUsd"))

        return self._build_transaction(
            tx_hash=tx_hash,
            timestamp=timestamp,
            source_chain_id=source_chain_id,
            destination_chain_id=destination_chain_id,
            token_symbol=symbol,
            token_address=token_address,
            amount=amount,
            decimals=decimals,
            status=map_status(record.get("status")),
            provided_usd=provided_usd,
        )

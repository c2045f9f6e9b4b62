"""
Bridge Wrapped API - FastAPI backend for the wrapped slideshow frontend.

Run with: uvicorn api.main:app --reload --port 8000
"""
import re
import time
import traceback
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI, HTTPException, Path, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api.schemas import (
    BridgeStatsResponse,
    BusiestDayResponse,
    ChainStatsResponse,
    HealthResponse,
    MonthlyActivityResponse,
    PrimaryDestinationResponse,
    ProviderBreakdownResponse,
    ProviderStatsResponse,
    TokenInfoResponse,
    TokenStatsResponse,
    TransactionResponse,
    UserClassResponse,
)
from bridge_wrapped.config import settings
from bridge_wrapped.providers import ProviderRegistry
from bridge_wrapped.providers.base import NormalizedTransaction
from bridge_wrapped.services.aggregator import (
    BridgeAggregator,
    BridgeWrappedStats,
    ChainStats,
    TokenStats,
)
from bridge_wrapped.services.classification import UserClassInfo, classify_user
from bridge_wrapped.services.tokens import TokenResolver
from bridge_wrapped.utils.logging import get_logger, setup_logging

logger = get_logger("api")

ADDRESS_PATTERN = re.compile(r"^0x[a-fA-F0-9]{40}$")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create the shared resolver and provider adapters."""
    setup_logging(settings.log_level)

    resolver = TokenResolver()
    registry = ProviderRegistry(resolver)
    await registry.initialize()

    app.state.token_resolver = resolver
    app.state.registry = registry
    app.state.aggregator = BridgeAggregator(registry.adapters)
    logger.info(
        "API ready",
        providers=[p.value for p in registry.all_providers],
        token_lookup=settings.token_lookup_enabled,
    )

    yield

    # Cleanup
    await registry.close()


# ===================
# Dependencies
# ===================

def get_aggregator(request: Request) -> BridgeAggregator:
    aggregator = getattr(request.app.state, "aggregator", None)
    if aggregator is None:
        raise HTTPException(status_code=503, detail="Aggregator not initialized")
    return aggregator


def get_token_resolver(request: Request) -> TokenResolver:
    resolver = getattr(request.app.state, "token_resolver", None)
    if resolver is None:
        raise HTTPException(status_code=503, detail="Token resolver not initialized")
    return resolver


# ===================
# Converters
# ===================

def _chain_to_response(chain: Optional[ChainStats]) -> Optional[ChainStatsResponse]:
    if chain is None:
        return None
    return ChainStatsResponse(
        chainId=chain.chain_id,
        chainName=chain.chain_name,
        count=chain.count,
        percentage=chain.percentage,
        volumeUSD=float(chain.volume_usd),
        logo=chain.logo,
    )


def _token_to_response(token: Optional[TokenStats]) -> Optional[TokenStatsResponse]:
    if token is None:
        return None
    return TokenStatsResponse(
        symbol=token.symbol,
        address=token.address,
        count=token.count,
        totalVolumeUSD=float(token.total_volume_usd),
        percentage=token.percentage,
    )


def transaction_to_response(tx: NormalizedTransaction) -> TransactionResponse:
    """Convert a normalized transaction to API response."""
    return TransactionResponse(
        id=tx.id,
        provider=tx.provider.value,
        txHash=tx.tx_hash,
        timestamp=tx.timestamp,
        sourceChainId=tx.source_chain_id,
        sourceChainName=tx.source_chain_name,
        destinationChainId=tx.destination_chain_id,
        destinationChainName=tx.destination_chain_name,
        tokenSymbol=tx.token_symbol,
        tokenAddress=tx.token_address,
        amount=tx.amount,
        amountFormatted=format(tx.amount_formatted, "f"),
        amountUSD=float(tx.amount_usd),
        status=tx.status.value,
    )


def stats_to_response(stats: BridgeWrappedStats, user_class: UserClassInfo) -> BridgeStatsResponse:
    """Convert aggregated stats to the camelCase API response."""
    breakdown = {
        provider.value: ProviderStatsResponse(
            count=provider_stats.count,
            volumeUSD=float(provider_stats.volume_usd),
        )
        for provider, provider_stats in stats.provider_breakdown.items()
    }

    busiest_day = None
    if stats.busiest_day is not None:
        primary = stats.busiest_day.primary_destination
        busiest_day = BusiestDayResponse(
            date=stats.busiest_day.date,
            count=stats.busiest_day.count,
            primaryDestination=PrimaryDestinationResponse(
                chainId=primary.chain_id,
                chainName=primary.chain_name,
                count=primary.count,
            ),
        )

    return BridgeStatsResponse(
        walletAddress=stats.wallet_address,
        year=stats.year,
        generatedAt=stats.generated_at,
        totalBridgingActions=stats.total_bridging_actions,
        totalVolumeUSD=float(stats.total_volume_usd),
        mostUsedSourceChain=_chain_to_response(stats.most_used_source_chain),
        mostUsedDestinationChain=_chain_to_response(stats.most_used_destination_chain),
        highestVolumeDestination=_chain_to_response(stats.highest_volume_destination),
        mostBridgedToken=_token_to_response(stats.most_bridged_token),
        busiestDay=busiest_day,
        providerBreakdown=ProviderBreakdownResponse(**breakdown),
        monthlyActivity=[
            MonthlyActivityResponse(
                month=m.month,
                monthName=m.month_name,
                count=m.count,
                volumeUSD=float(m.volume_usd),
            )
            for m in stats.monthly_activity
        ],
        topSourceChains=[_chain_to_response(c) for c in stats.top_source_chains],
        topDestinationChains=[_chain_to_response(c) for c in stats.top_destination_chains],
        topTokens=[_token_to_response(t) for t in stats.top_tokens],
        transactions=[transaction_to_response(tx) for tx in stats.transactions],
        userClass=UserClassResponse(
            userClass=user_class.user_class.value,
            title=user_class.title,
            description=user_class.description,
            image=user_class.image,
            rarity=user_class.rarity,
        ),
    )


def _parse_year(raw_year: Optional[str]) -> int:
    if raw_year is None or raw_year == "":
        return settings.wrapped_year
    try:
        year = int(raw_year)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid year")
    if year < settings.min_year or year > settings.max_year:
        raise HTTPException(
            status_code=400,
            detail=f"Year must be between {settings.min_year} and {settings.max_year}",
        )
    return year


# ===================
# App
# ===================

def create_app() -> FastAPI:
    """Create the FastAPI application."""
    app = FastAPI(
        title="Bridge Wrapped API",
        description="Yearly cross-chain bridging stats for a wallet",
        version="1.0.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Timing middleware - logs duration and adds X-Response-Time header
    @app.middleware("http")
    async def timing_middleware(request: Request, call_next):
        start = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - start) * 1000
        response.headers["X-Response-Time"] = f"{elapsed_ms:.1f}ms"
        logger.info(
            "request_completed",
            method=request.method,
            path=request.url.path,
            status=response.status_code,
            duration_ms=round(elapsed_ms, 1),
        )
        return response

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.error(
            "unhandled_exception",
            path=str(request.url.path),
            method=request.method,
            error_type=type(exc).__name__,
            error=str(exc),
            traceback=traceback.format_exc(),
        )
        return JSONResponse(status_code=500, content={"detail": "Internal server error"})

    @app.get("/health", response_model=HealthResponse)
    async def health_check(request: Request):
        """Health check endpoint."""
        registry: Optional[ProviderRegistry] = getattr(request.app.state, "registry", None)
        if registry is None:
            return HealthResponse(healthy=False)

        return HealthResponse(
            healthy=registry.is_initialized,
            providers={a.provider.value: a.is_initialized for a in registry.adapters},
            tokenLookupAvailable=registry.token_resolver.is_lookup_available,
            tokenCache=registry.token_resolver.cache_stats(),
        )

    @app.get("/api/bridge-stats/{address}", response_model=BridgeStatsResponse)
    async def get_bridge_stats(
        address: str = Path(...),
        year: Optional[str] = Query(None),
        aggregator: BridgeAggregator = Depends(get_aggregator),
    ):
        """Get yearly bridging stats for a wallet."""
        if not ADDRESS_PATTERN.match(address):
            raise HTTPException(status_code=400, detail="Invalid wallet address format")
        wrapped_year = _parse_year(year)

        try:
            stats = await aggregator.get_wrapped_stats(address, wrapped_year)
            user_class = classify_user(stats.transactions, stats.total_volume_usd)
        except Exception as e:
            logger.error("Failed to fetch bridge stats", address=address, year=wrapped_year, error=str(e))
            raise HTTPException(status_code=500, detail="Failed to fetch bridge statistics")

        return stats_to_response(stats, user_class)

    @app.post("/api/token-info", response_model=dict[str, Optional[TokenInfoResponse]])
    async def get_token_info(
        request: Request,
        resolver: TokenResolver = Depends(get_token_resolver),
    ):
        """Resolve metadata for a batch of token addresses."""
        try:
            body = await request.json()
        except ValueError:
            raise HTTPException(status_code=400, detail="Invalid JSON body")

        addresses = body.get("addresses") if isinstance(body, dict) else None
        if (
            not isinstance(addresses, list)
            or not addresses
            or not all(isinstance(a, str) for a in addresses)
        ):
            raise HTTPException(status_code=400, detail="addresses must be a non-empty list")

        resolved = await resolver.resolve_many(addresses)

        result: dict[str, Optional[TokenInfoResponse]] = {}
        for address in addresses:
            info = resolved.get(address.lower())
            result[address.lower()] = (
                TokenInfoResponse(
                    symbol=info.symbol,
                    name=info.name,
                    decimals=info.decimals,
                    logo=info.logo,
                )
                if info
                else None
            )
        return result

    return app


app = create_app()

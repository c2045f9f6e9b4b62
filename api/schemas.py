"""Pydantic schemas for API requests and responses."""
from typing import Optional

from pydantic import BaseModel


class ChainStatsResponse(BaseModel):
    """Chain usage stats."""
    chainId: int
    chainName: str
    count: int
    percentage: float
    volumeUSD: float = 0
    logo: Optional[str] = None


class TokenStatsResponse(BaseModel):
    """Token usage stats."""
    symbol: str
    address: str
    count: int
    totalVolumeUSD: float = 0
    percentage: float


class PrimaryDestinationResponse(BaseModel):
    chainId: int
    chainName: str
    count: int


class BusiestDayResponse(BaseModel):
    """Busiest calendar day (UTC)."""
    date: str  # YYYY-MM-DD
    count: int
    primaryDestination: PrimaryDestinationResponse


class ProviderStatsResponse(BaseModel):
    count: int = 0
    volumeUSD: float = 0


class ProviderBreakdownResponse(BaseModel):
    """Raw per-provider contribution before deduplication."""
    across: ProviderStatsResponse = ProviderStatsResponse()
    relay: ProviderStatsResponse = ProviderStatsResponse()
    lifi: ProviderStatsResponse = ProviderStatsResponse()


class MonthlyActivityResponse(BaseModel):
    month: str  # YYYY-MM
    monthName: str
    count: int
    volumeUSD: float = 0


class TransactionResponse(BaseModel):
    """Normalized bridge transaction."""
    id: str
    provider: str
    txHash: str
    timestamp: int
    sourceChainId: int
    sourceChainName: str
    destinationChainId: int
    destinationChainName: str
    tokenSymbol: str
    tokenAddress: str
    amount: str  # raw integer in smallest unit
    amountFormatted: str
    amountUSD: float = 0
    status: str


class UserClassResponse(BaseModel):
    """Bridger persona."""
    userClass: str
    title: str
    description: str
    image: str
    rarity: int


class BridgeStatsResponse(BaseModel):
    """Yearly bridging stats for a wallet."""
    walletAddress: str
    year: int
    generatedAt: str
    totalBridgingActions: int
    totalVolumeUSD: float = 0
    mostUsedSourceChain: Optional[ChainStatsResponse] = None
    mostUsedDestinationChain: Optional[ChainStatsResponse] = None
    highestVolumeDestination: Optional[ChainStatsResponse] = None
    mostBridgedToken: Optional[TokenStatsResponse] = None
    busiestDay: Optional[BusiestDayResponse] = None
    providerBreakdown: ProviderBreakdownResponse
    monthlyActivity: list[MonthlyActivityResponse] = []
    topSourceChains: list[ChainStatsResponse] = []
    topDestinationChains: list[ChainStatsResponse] = []
    topTokens: list[TokenStatsResponse] = []
    transactions: list[TransactionResponse] = []
    userClass: UserClassResponse


class TokenInfoRequest(BaseModel):
    """Batch token metadata request."""
    addresses: Optional[list[str]] = None


class TokenInfoResponse(BaseModel):
    symbol: str
    name: str
    decimals: int
    logo: Optional[str] = None


class HealthResponse(BaseModel):
    """Health check response."""
    healthy: bool
    providers: dict[str, bool] = {}
    tokenLookupAvailable: bool = False
    tokenCache: dict[str, float] = {}

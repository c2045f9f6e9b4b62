"""
Chain registry: static mapping from EVM chain id to display metadata.
Unknown chain ids never raise; they get a synthetic "Chain <id>" entry.
"""

from dataclasses import dataclass
from typing import Optional

DEFAULT_CHAIN_COLOR = "#6B7280"


@dataclass(frozen=True)
class ChainInfo:
    """Display metadata for one chain."""
    id: int
    name: str
    short_name: str
    native_symbol: str
    block_explorer: str
    color: str
    logo_url: Optional[str] = None


CHAINS: dict[int, ChainInfo] = {
    1: ChainInfo(
        1, "Ethereum", "ETH", "ETH", "https://etherscan.io", "#627EEA",
        "https://assets.coingecko.com/coins/images/279/small/ethereum.png",
    ),
    10: ChainInfo(
        10, "Optimism", "OP", "ETH", "https://optimistic.etherscan.io", "#FF0420",
        "https://assets.coingecko.com/coins/images/25244/small/Optimism.png",
    ),
    56: ChainInfo(
        56, "BNB Chain", "BSC", "BNB", "https://bscscan.com", "#F0B90B",
        "https://assets.coingecko.com/asset_platforms/images/1/large/bnb_smart_chain.png",
    ),
    100: ChainInfo(100, "Gnosis", "GNO", "XDAI", "https://gnosisscan.io", "#04795B"),
    137: ChainInfo(
        137, "Polygon", "MATIC", "MATIC", "https://polygonscan.com", "#8247E5",
        "https://assets.coingecko.com/coins/images/4713/small/polygon.png",
    ),
    250: ChainInfo(250, "Fantom", "FTM", "FTM", "https://ftmscan.com", "#1969FF"),
    324: ChainInfo(324, "zkSync Era", "zkSync", "ETH", "https://explorer.zksync.io", "#8C8DFC"),
    999: ChainInfo(
        999, "Hyper EVM", "HYPERLIQUID", "HYPE", "https://hyperevmscan.io", "#000000",
        "https://assets.coingecko.com/asset_platforms/images/243/large/hyperliquid.png",
    ),
    1101: ChainInfo(1101, "Polygon zkEVM", "zkEVM", "ETH", "https://zkevm.polygonscan.com", "#8247E5"),
    5000: ChainInfo(5000, "Mantle", "MNT", "MNT", "https://explorer.mantle.xyz", "#000000"),
    8217: ChainInfo(
        8217, "Kaia Mainnet", "KAIA", "KAIA", "https://kaiascan.io", "#FF6B00",
        "https://assets.coingecko.com/asset_platforms/images/9672/large/kaia.png",
    ),
    8453: ChainInfo(
        8453, "Base", "BASE", "ETH", "https://basescan.org", "#0052FF",
        "https://pbs.twimg.com/profile_images/1945608199500910592/rnk6ixxH_400x400.jpg",
    ),
    34443: ChainInfo(34443, "Mode", "MODE", "ETH", "https://explorer.mode.network", "#DFFE00"),
    41454: ChainInfo(
        41454, "Monad", "MONAD", "MON", "https://monadvision.com", "#8B5CF6",
        "https://assets.coingecko.com/coins/images/38927/large/monad.jpg",
    ),
    42161: ChainInfo(
        42161, "Arbitrum One", "ARB", "ETH", "https://arbiscan.io", "#28A0F0",
        "https://assets.coingecko.com/coins/images/16547/small/photo_2023-03-29_21.47.00.jpeg",
    ),
    42170: ChainInfo(42170, "Arbitrum Nova", "NOVA", "ETH", "https://nova.arbiscan.io", "#E57310"),
    43114: ChainInfo(
        43114, "Avalanche", "AVAX", "AVAX", "https://snowtrace.io", "#E84142",
        "https://assets.coingecko.com/coins/images/12559/small/Avalanche_Circle_RedWhite_Trans.png",
    ),
    50104: ChainInfo(
        50104, "Sophon", "SOPHON", "SOPH", "https://explorer.sophon.xyz", "#6366F1",
        "https://assets.coingecko.com/coins/images/38680/large/sophon_logo_200.png",
    ),
    59144: ChainInfo(59144, "Linea", "LINEA", "ETH", "https://lineascan.build", "#121212"),
    81457: ChainInfo(81457, "Blast", "BLAST", "ETH", "https://blastscan.io", "#FCFC03"),
    534352: ChainInfo(
        534352, "Scroll", "SCROLL", "ETH", "https://scrollscan.com", "#FFEEDA",
        "https://assets.coingecko.com/coins/images/50571/standard/scroll.jpg",
    ),
    7777777: ChainInfo(7777777, "Zora", "ZORA", "ETH", "https://explorer.zora.energy", "#000000"),
}


def get_chain_name(chain_id: int) -> str:
    """Display name, or "Chain <id>" for unknown chains."""
    chain = CHAINS.get(chain_id)
    return chain.name if chain else f"Chain {chain_id}"


def get_chain_short_name(chain_id: int) -> str:
    chain = CHAINS.get(chain_id)
    return chain.short_name if chain else str(chain_id)


def get_chain_color(chain_id: int) -> str:
    chain = CHAINS.get(chain_id)
    return chain.color if chain else DEFAULT_CHAIN_COLOR


def get_chain_logo(chain_id: int) -> Optional[str]:
    chain = CHAINS.get(chain_id)
    return chain.logo_url if chain else None


def get_chain_info(chain_id: int) -> ChainInfo:
    """Full chain metadata with a synthetic fallback for unknown ids."""
    return CHAINS.get(chain_id) or ChainInfo(
        id=chain_id,
        name=f"Chain {chain_id}",
        short_name=str(chain_id),
        native_symbol="UNK",
        block_explorer="",
        color=DEFAULT_CHAIN_COLOR,
    )


def get_explorer_tx_url(chain_id: int, tx_hash: str) -> str:
    """Block explorer URL for a transaction, or empty string for unknown chains."""
    chain = CHAINS.get(chain_id)
    if not chain or not chain.block_explorer:
        return ""
    return f"{chain.block_explorer}/tx/{tx_hash}"

"""
Bridger persona classification from yearly activity.
"""

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Sequence

from bridge_wrapped.providers.base import NormalizedTransaction


class UserClass(str, Enum):
    CROSSCHAIN_NOOB = "crosschain-noob"
    STANDARD_JOE = "standard-joe"
    WORKING_ELF = "working-elf"
    CALCULATED_WHALE = "calculated-whale"
    FARMER_WHALE = "farmer-whale"


@dataclass(frozen=True)
class UserClassInfo:
    user_class: UserClass
    title: str
    description: str
    image: str
    rarity: int  # 1-5


# Thresholds in USD
WHALE_AVERAGE_USD = Decimal(10_000)
WHALE_TOTAL_USD = Decimal(20_000)


USER_CLASS_DATA = {
    UserClass.CROSSCHAIN_NOOB: {
        "title": "The Cross-chain Noob",
        "description": (
            "You're new to the game, aren't you? You haven't done much bridging, "
            "and your on-chain volume is practically invisible. We have to ask: "
            "Are you actually a degen, or just a tourist?"
        ),
        "image": "/img/crosschain-noob.png",
        "rarity": 1,
    },
    UserClass.STANDARD_JOE: {
        "title": "The Standard Joe",
        "description": (
            "You have an average number of bridges with decent volume. You aren't "
            "a legend, and you aren't a noob. You're just like the rest of us: "
            "aggressively mid."
        ),
        "image": "/img/standard-joe.png",
        "rarity": 2,
    },
    UserClass.WORKING_ELF: {
        "title": "The Working Elf",
        "description": (
            "You bridge constantly, but your bags are light. You're a tireless "
            "laborer in a world of whales, the kind of person who seemingly enjoys "
            "the pain of a thousand tiny transactions."
        ),
        "image": "/img/the-working-elf.png",
        "rarity": 3,
    },
    UserClass.CALCULATED_WHALE: {
        "title": "The Calculated Whale",
        "description": (
            "You have a clear history of moving weight, but only when the time is "
            "right. Every bridge you cross is a strategic play, not a random hop."
        ),
        "image": "/img/calculated-whale.png",
        "rarity": 4,
    },
    UserClass.FARMER_WHALE: {
        "title": "The Farmer Whale",
        "description": (
            "You move massive volume, and you do it often. You're a rare breed of "
            "high-velocity capital, constantly chasing the best yields across "
            "every chain."
        ),
        "image": "/img/farmer-whale.png",
        "rarity": 5,
    },
}


def _info(user_class: UserClass) -> UserClassInfo:
    return UserClassInfo(user_class=user_class, **USER_CLASS_DATA[user_class])


def classify_user(
    transactions: Sequence[NormalizedTransaction],
    total_volume_usd: Decimal,
) -> UserClassInfo:
    """Pick a persona from transaction count and average volume per transaction."""
    tx_count = len(transactions)
    total = Decimal(total_volume_usd)
    average = total / tx_count if tx_count else Decimal(0)

    small = average < WHALE_AVERAGE_USD and total < WHALE_TOTAL_USD
    whale = average > WHALE_AVERAGE_USD and total > WHALE_TOTAL_USD

    if tx_count < 10 and small:
        return _info(UserClass.CROSSCHAIN_NOOB)
    if tx_count > 50 and small:
        return _info(UserClass.WORKING_ELF)
    if tx_count < 20 and whale:
        return _info(UserClass.CALCULATED_WHALE)
    if tx_count > 20 and whale:
        return _info(UserClass.FARMER_WHALE)

    return _info(UserClass.STANDARD_JOE)

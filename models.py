"""
Domain 型別：座位、模式、牌、結果標籤

所有 enum 都繼承 str / int，讓它們可以直接放進 JSON payload。
"""
from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Optional


class Seat(IntEnum):
    """座位：1 號位、2 號位、觀戰者（0）"""
    SPECTATOR = 0
    SEAT1 = 1
    SEAT2 = 2

    @property
    def is_player(self) -> bool:
        return self != Seat.SPECTATOR

    def other(self) -> "Seat":
        if self == Seat.SEAT1:
            return Seat.SEAT2
        if self == Seat.SEAT2:
            return Seat.SEAT1
        return Seat.SPECTATOR


PLAYER_SEATS = (Seat.SEAT1, Seat.SEAT2)


class SettlementMode(str, Enum):
    LEDGER = "ledger"
    REWARD_POOL = "reward_pool"

    @classmethod
    def parse(cls, raw: Optional[str], default: "SettlementMode") -> "SettlementMode":
        for mode in cls:
            if raw == mode.value:
                return mode
        return default


class GameTab(str, Enum):
    WHEEL = "wheel"
    TAIXIU = "taixiu"
    BLACKJACK = "blackjack"
    ROULETTE = "roulette"


class TaiXiuPick(str, Enum):
    TAI = "tai"
    XIU = "xiu"


class RouletteBetType(str, Enum):
    RED = "red"
    BLACK = "black"
    ODD = "odd"
    EVEN = "even"
    LOW = "low"
    HIGH = "high"
    NUMBER = "number"


class OutcomeCategory(str, Enum):
    """獎勵池分類：每個遊戲的 win / lose / push 各自一份清單"""
    WIN = "win"
    LOSE = "lose"
    PUSH = "push"


class BlackjackOutcome(str, Enum):
    BLACKJACK = "blackjack"
    WIN = "win"
    LOSE = "lose"
    PUSH = "push"
    BUST = "bust"

    @property
    def category(self) -> OutcomeCategory:
        if self in (BlackjackOutcome.BLACKJACK, BlackjackOutcome.WIN):
            return OutcomeCategory.WIN
        if self == BlackjackOutcome.PUSH:
            return OutcomeCategory.PUSH
        return OutcomeCategory.LOSE


SUITS = ("♠", "♥", "♦", "♣")
RANKS = ("A", "2", "3", "4", "5", "6", "7", "8", "9", "10", "J", "Q", "K")


@dataclass(frozen=True)
class Card:
    rank: str
    suit: str

    def to_dict(self) -> dict:
        return {"r": self.rank, "s": self.suit}

    def __str__(self) -> str:
        return f"{self.rank}{self.suit}"

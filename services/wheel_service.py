"""
Wheel 服務：加權轉盤

mult 是「派彩總額」倍數（含本金）：mult=2 代表拿回 2 倍下注，淨賺 1 倍。
"""
import math
from dataclasses import dataclass
from typing import List, Optional, Sequence

from services.rng_service import RngResolver


@dataclass(frozen=True)
class WheelSegment:
    label: str
    mult: float
    weight: int

    def to_dict(self) -> dict:
        return {"label": self.label, "mult": self.mult, "weight": self.weight}


# x0 權重為 0：保留在盤面上但永遠抽不到
WHEEL_SEGMENTS = (
    WheelSegment("x0", 0.0, 0),
    WheelSegment("x0.5", 0.5, 20),
    WheelSegment("x1", 1.0, 20),
    WheelSegment("x1.5", 1.5, 20),
    WheelSegment("x2", 2.0, 20),
    WheelSegment("x2.5", 2.5, 20),
)

MIN_SPEED = 1
MAX_SPEED = 10
DEFAULT_SPEED = 5


@dataclass
class WheelSpin:
    index: int
    segment: WheelSegment
    payout_total: int


def wheel_payout(bet: int, segment: WheelSegment) -> int:
    return math.floor(bet * segment.mult)


def spin_wheel(
    bet: int,
    rng: RngResolver,
    segments: Sequence[WheelSegment] = WHEEL_SEGMENTS
) -> WheelSpin:
    """
    轉一次籌碼轉盤

    返回：
        WheelSpin（index、segment、payoutTotal = floor(bet * mult)）
    """
    index = rng.weighted_pick(segments)
    segment = segments[index]
    return WheelSpin(index, segment, wheel_payout(bet, segment))


def spin_reward_wheel(items: List[str], rng: RngResolver) -> Optional[int]:
    """
    獎勵池轉盤：盤面就是獎品清單本身，均勻抽一個 index

    返回：
        被選中的 index；清單為空時回傳 None
    """
    if not items:
        return None
    return rng.uniform(len(items))

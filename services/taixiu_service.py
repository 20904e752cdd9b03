"""
Tài/Xỉu（骰寶大小）服務

三顆骰子加總：11-17 為 tai（大），4-10 為 xiu（小）。
豹子（三顆相同）對大、小都是輸，這是莊家優勢的來源。
"""
from dataclasses import dataclass
from typing import Tuple

from models import TaiXiuPick
from services.rng_service import RngResolver

TAI_THRESHOLD = 11


@dataclass
class TaiXiuRoll:
    dice: Tuple[int, int, int]
    total: int
    outcome: TaiXiuPick
    triple: bool
    win: bool
    payout_total: int


def roll_die(rng: RngResolver) -> int:
    return rng.uniform(6) + 1


def classify(total: int) -> TaiXiuPick:
    return TaiXiuPick.TAI if total >= TAI_THRESHOLD else TaiXiuPick.XIU


def is_triple(d1: int, d2: int, d3: int) -> bool:
    return d1 == d2 == d3


def judge(dice: Tuple[int, int, int], pick: TaiXiuPick, bet: int) -> TaiXiuRoll:
    """
    判定一組骰子的結果

    參數：
        dice: 三顆骰子點數
        pick: 玩家押的邊
        bet: 下注金額

    返回：
        TaiXiuRoll（贏了派彩 2 倍，輸了 0）
    """
    total = sum(dice)
    outcome = classify(total)
    triple = is_triple(*dice)
    win = (not triple) and outcome == pick
    return TaiXiuRoll(
        dice=dice,
        total=total,
        outcome=outcome,
        triple=triple,
        win=win,
        payout_total=bet * 2 if win else 0
    )


def roll_taixiu(pick: TaiXiuPick, bet: int, rng: RngResolver) -> TaiXiuRoll:
    dice = (roll_die(rng), roll_die(rng), roll_die(rng))
    return judge(dice, pick, bet)

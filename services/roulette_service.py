"""
Roulette 服務：歐式單零輪盤（0-36）

下注種類：
- number：單號，派彩 36 倍（35:1 加本金）
- red / black / odd / even / low / high：派彩 2 倍
開出 0 時，除了押中 0 的單號以外全部輸。
"""
from dataclasses import dataclass

from models import RouletteBetType
from services.rng_service import RngResolver

POCKETS = 37
RED_NUMBERS = frozenset({
    1, 3, 5, 7, 9, 12, 14, 16, 18, 19, 21, 23, 25, 27, 30, 32, 34, 36
})


@dataclass
class RouletteSpin:
    rolled: int
    color: str
    win: bool
    payout_total: int


def color_of(number: int) -> str:
    if number == 0:
        return "green"
    return "red" if number in RED_NUMBERS else "black"


def bet_wins(bet_type: RouletteBetType, bet_number: int, rolled: int) -> bool:
    if bet_type == RouletteBetType.NUMBER:
        return rolled == bet_number
    if rolled == 0:
        return False

    if bet_type == RouletteBetType.RED:
        return color_of(rolled) == "red"
    if bet_type == RouletteBetType.BLACK:
        return color_of(rolled) == "black"
    if bet_type == RouletteBetType.ODD:
        return rolled % 2 == 1
    if bet_type == RouletteBetType.EVEN:
        return rolled % 2 == 0
    if bet_type == RouletteBetType.LOW:
        return 1 <= rolled <= 18
    if bet_type == RouletteBetType.HIGH:
        return 19 <= rolled <= 36
    return False


def payout_total(bet_type: RouletteBetType, bet: int, win: bool) -> int:
    if not win:
        return 0
    if bet_type == RouletteBetType.NUMBER:
        return bet * 36
    return bet * 2


def judge(bet_type: RouletteBetType, bet_number: int, bet: int, rolled: int) -> RouletteSpin:
    win = bet_wins(bet_type, bet_number, rolled)
    return RouletteSpin(
        rolled=rolled,
        color=color_of(rolled),
        win=win,
        payout_total=payout_total(bet_type, bet, win)
    )


def spin_roulette(
    bet_type: RouletteBetType,
    bet_number: int,
    bet: int,
    rng: RngResolver
) -> RouletteSpin:
    return judge(bet_type, bet_number, bet, rng.uniform(POCKETS))

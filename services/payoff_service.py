"""
結算服務：把「下注 + 結果」換算成餘額變化或文字獎勵

兩種模式共用同一個 SettlementUnit：
- LEDGER：數字餘額帳本，balance = clamp(balance - bet + payoutTotal, 0, CAP)
- REWARD_POOL：沒有數字帳本，從對應結果的獎勵清單均勻抽一個字串

純計算邏輯；餘額 dict 由 Room 持有，這裡只負責改它。
"""
import logging
import math
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Union

from models import Seat, SettlementMode
from core.exceptions import InvalidBet
from services.rng_service import RngResolver

logger = logging.getLogger(__name__)

INSUFFICIENT_BALANCE_MSG = "Not enough chips or bet outside the table limits."


def clamp_int(value, lo: int, hi: int) -> int:
    """
    把任意輸入轉成 [lo, hi] 內的整數（無條件捨去）

    無法轉成有限數字的輸入（None、文字、NaN、inf）一律回傳 lo。
    """
    if isinstance(value, int) and not isinstance(value, bool):
        n = value
    else:
        try:
            f = float(value)
        except (TypeError, ValueError):
            return lo
        if math.isnan(f) or math.isinf(f):
            return lo
        n = math.floor(f)
    return max(lo, min(hi, n))


def settle(balance: int, bet: int, payout_total: int, cap: int) -> int:
    """
    計算結算後的餘額

    balance - bet + payoutTotal，夾在 [0, cap]

    範例：
        settle(10000, 100, 200, CAP) -> 10100
        settle(50, 100, 0, CAP) -> 0
    """
    return clamp_int(balance - bet + payout_total, 0, cap)


def clean_reward_list(
    raw: Union[str, Iterable, None],
    max_items: int,
    max_length: int
) -> List[str]:
    """
    整理獎勵清單

    - 接受 list 或以換行分隔的字串
    - 去掉前後空白、丟掉空字串
    - 每個項目最長 max_length，最多 max_items 個
    """
    if raw is None:
        return []
    if isinstance(raw, str):
        items = raw.splitlines()
    else:
        items = [str(item) for item in raw if item is not None]

    cleaned = []
    for item in items:
        text = item.strip()[:max_length]
        if text:
            cleaned.append(text)
        if len(cleaned) >= max_items:
            break
    return cleaned


def pick_reward(rewards: List[str], rng: RngResolver, placeholder: str) -> str:
    """從非空清單均勻抽一個；空清單回傳固定 placeholder"""
    if not rewards:
        return placeholder
    return rewards[rng.uniform(len(rewards))]


@dataclass
class SettlementResult:
    bet: int
    payout_total: int
    profit: int
    balance: Optional[int] = None
    reward: Optional[str] = None


class SettlementUnit:
    """
    結算單元（一個房間一個）

    mini-game（wheel / tai-xiu / roulette）用 resolve() 一次完成扣款加派彩；
    Blackjack 用 debit() 在發牌時先扣款，回合結束再 credit()。
    """

    def __init__(
        self,
        mode: SettlementMode,
        rng: RngResolver,
        min_bet: int,
        max_bet: int,
        cap: int,
        placeholder: str
    ):
        self.mode = mode
        self.rng = rng
        self.min_bet = min_bet
        self.max_bet = max_bet
        self.cap = cap
        self.placeholder = placeholder

    @property
    def uses_ledger(self) -> bool:
        return self.mode == SettlementMode.LEDGER

    def clamp_bet(self, raw_bet) -> int:
        return clamp_int(raw_bet, self.min_bet, self.max_bet)

    def accept_bet(
        self,
        balances: Dict[Seat, int],
        seat: Seat,
        raw_bet,
        message: str = INSUFFICIENT_BALANCE_MSG
    ) -> int:
        """
        驗證下注金額

        流程：
        1. 先把金額夾進 [MIN_BET, MAX_BET]
        2. LEDGER 模式再檢查餘額是否足夠（不足就拒絕，不會自動調低）

        返回：
            被接受的下注金額

        異常：
            InvalidBet: 餘額不足
        """
        bet = self.clamp_bet(raw_bet)
        if not self.uses_ledger:
            return bet

        balance = balances.get(seat, 0)
        if bet < self.min_bet or bet > self.max_bet or balance < bet:
            logger.warning(
                f"Rejected bet {bet} for seat {int(seat)} (balance={balance})"
            )
            raise InvalidBet(message)
        return bet

    def resolve(
        self,
        balances: Dict[Seat, int],
        seat: Seat,
        bet: int,
        payout_total: int,
        rewards: Optional[List[str]] = None
    ) -> SettlementResult:
        """
        一次性結算（扣款與派彩在同一次呼叫內完成）

        參數：
            balances: 房間的餘額帳本
            seat: 下注的座位
            bet: 已通過 accept_bet 的金額
            payout_total: 派彩總額（含本金），輸了是 0
            rewards: REWARD_POOL 模式下此結果對應的獎勵清單

        返回：
            SettlementResult
        """
        profit = payout_total - bet
        if self.uses_ledger:
            balances[seat] = settle(balances.get(seat, 0), bet, payout_total, self.cap)
            return SettlementResult(bet, payout_total, profit, balance=balances[seat])

        return SettlementResult(bet, payout_total, profit, reward=self.pick(rewards))

    def pick(self, rewards: Optional[List[str]]) -> str:
        return pick_reward(rewards or [], self.rng, self.placeholder)

    def debit(self, balances: Dict[Seat, int], seat: Seat, bet: int) -> None:
        if self.uses_ledger:
            balances[seat] = settle(balances.get(seat, 0), bet, 0, self.cap)

    def credit(self, balances: Dict[Seat, int], seat: Seat, payout_total: int) -> None:
        if self.uses_ledger:
            balances[seat] = settle(balances.get(seat, 0), 0, payout_total, self.cap)

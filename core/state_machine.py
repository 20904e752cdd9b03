"""
Blackjack 狀態機：集中管理一局 Blackjack 的所有狀態轉換

狀態：
    IDLE --deal--> (Dealt) --natural--> SETTLED
                          +-otherwise--> IN_ROUND --hit(bust)/stand--> (DealerPlay) --> SETTLED
    SETTLED 之後輪到另一個座位，等同回到 IDLE

規則：
- 只有 turn 對應的座位可以 deal / hit / stand
- 不符合條件的指令一律 RejectedCommand（Engine 會靜默丟棄）
- 每局重新建一副牌並洗牌，牌堆 ∪ 玩家手牌 ∪ 莊家手牌 永遠是完整 52 張
- LEDGER 模式：發牌時先扣注，結算時再派彩
"""
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional

from models import BlackjackOutcome, Card, OutcomeCategory, Seat
from core.exceptions import RejectedCommand
from services.deck_service import deal, fresh_deck
from services.hand_service import hand_value, is_bust, is_natural
from services.payoff_service import SettlementUnit
from services.rng_service import RngResolver

logger = logging.getLogger(__name__)

DEALER_STAND_VALUE = 17
BLACKJACK_BET_MSG = "Not enough chips to deal Blackjack."

RewardLists = Dict[OutcomeCategory, List[str]]


class BlackjackPhase(str, Enum):
    IDLE = "idle"
    IN_ROUND = "in_round"
    SETTLED = "settled"


@dataclass
class BlackjackRound:
    deck: List[Card] = field(default_factory=list)
    player: List[Card] = field(default_factory=list)
    dealer: List[Card] = field(default_factory=list)
    phase: BlackjackPhase = BlackjackPhase.IDLE
    dealer_hidden: bool = True
    turn: Seat = Seat.SEAT1
    wager_seat: Seat = Seat.SEAT1
    wager: int = 0
    last_outcome: Optional[BlackjackOutcome] = None
    last_profit: int = 0
    last_reward: Optional[str] = None
    rounds_played: int = 0

    @property
    def in_round(self) -> bool:
        return self.phase == BlackjackPhase.IN_ROUND

    def cards_in_play(self) -> List[Card]:
        return self.deck + self.player + self.dealer


def payout_for(outcome: BlackjackOutcome, bet: int) -> int:
    """
    派彩總額（含本金）

    - blackjack：3:2，floor(bet * 2.5)
    - win：2 倍
    - push：退回本金
    - lose / bust：0
    """
    if outcome == BlackjackOutcome.BLACKJACK:
        return (bet * 5) // 2
    if outcome == BlackjackOutcome.WIN:
        return bet * 2
    if outcome == BlackjackOutcome.PUSH:
        return bet
    return 0


def compare_hands(player_value: int, dealer_value: int) -> BlackjackOutcome:
    """玩家停牌後的比牌結果（玩家沒有爆牌）"""
    if dealer_value > 21 or player_value > dealer_value:
        return BlackjackOutcome.WIN
    if player_value < dealer_value:
        return BlackjackOutcome.LOSE
    return BlackjackOutcome.PUSH


def natural_outcome(player_natural: bool, dealer_natural: bool) -> Optional[BlackjackOutcome]:
    if player_natural and dealer_natural:
        return BlackjackOutcome.PUSH
    if player_natural:
        return BlackjackOutcome.BLACKJACK
    if dealer_natural:
        return BlackjackOutcome.LOSE
    return None


class BlackjackStateMachine:
    """
    一個房間內嵌一台 Blackjack 狀態機

    balances 是房間帳本的參照（Room 重置時原地更新，不會換掉 dict）。
    """

    def __init__(self, rng: RngResolver, settlement: SettlementUnit, balances: Dict[Seat, int]):
        self.rng = rng
        self.settlement = settlement
        self.balances = balances
        self.state = BlackjackRound()

    def reset(self) -> None:
        """整局丟棄（已扣的注不退回），回到 1 號位的回合"""
        if self.state.in_round:
            logger.info(
                f"Blackjack round discarded mid-round; stake {self.state.wager} "
                f"of seat {int(self.state.wager_seat)} is forfeited"
            )
        self.state = BlackjackRound()

    # ============ 授權檢查 ============

    def _require_turn(self, seat: Seat) -> None:
        if not seat.is_player or seat != self.state.turn:
            raise RejectedCommand(f"seat {int(seat)} acted on turn {int(self.state.turn)}")

    def _require_active_wager(self, seat: Seat) -> None:
        self._require_turn(seat)
        if not self.state.in_round:
            raise RejectedCommand("no blackjack round in progress")
        if self.state.wager_seat != seat:
            raise RejectedCommand(f"seat {int(seat)} does not hold the wager")

    # ============ 狀態轉換 ============

    def deal(self, seat: Seat, raw_bet, rewards: Optional[RewardLists] = None) -> None:
        """
        發牌（IDLE -> IN_ROUND 或直接 SETTLED）

        流程：
        1. 驗證座位與回合狀態
        2. 驗證下注（LEDGER 模式檢查餘額）
        3. 新洗一副牌，玩家兩張、莊家兩張
        4. 立即扣注
        5. 任一方 natural：翻開莊家底牌，直接結算

        異常：
            RejectedCommand: 不是這個座位的回合，或回合已在進行中
            InvalidBet: 餘額不足
        """
        self._require_turn(seat)
        if self.state.in_round:
            raise RejectedCommand("blackjack round already in progress")

        bet = self.settlement.accept_bet(self.balances, seat, raw_bet, message=BLACKJACK_BET_MSG)

        state = self.state
        state.deck = fresh_deck(self.rng)
        state.player = [deal(state.deck), deal(state.deck)]
        state.dealer = [deal(state.deck), deal(state.deck)]
        state.phase = BlackjackPhase.IN_ROUND
        state.dealer_hidden = True
        state.wager_seat = seat
        state.wager = bet
        state.last_outcome = None
        state.last_profit = 0
        state.last_reward = None

        self.settlement.debit(self.balances, seat, bet)
        logger.info(f"Blackjack dealt to seat {int(seat)} with bet {bet}")

        outcome = natural_outcome(is_natural(state.player), is_natural(state.dealer))
        if outcome is not None:
            self._finish(outcome, rewards)

    def hit(self, seat: Seat, rewards: Optional[RewardLists] = None) -> None:
        """
        要牌；爆牌時莊家照樣補完牌，結果為 bust

        異常：
            RejectedCommand: 不是持有這局下注的座位，或沒有進行中的回合
        """
        self._require_active_wager(seat)
        state = self.state
        state.player.append(deal(state.deck))

        if is_bust(state.player):
            self._dealer_play()
            self._finish(BlackjackOutcome.BUST, rewards)

    def stand(self, seat: Seat, rewards: Optional[RewardLists] = None) -> None:
        """停牌：莊家補牌後比點數"""
        self._require_active_wager(seat)
        self._dealer_play()
        outcome = compare_hands(hand_value(self.state.player), hand_value(self.state.dealer))
        self._finish(outcome, rewards)

    def _dealer_play(self) -> None:
        state = self.state
        state.dealer_hidden = False
        while hand_value(state.dealer) < DEALER_STAND_VALUE:
            state.dealer.append(deal(state.deck))

    def _finish(self, outcome: BlackjackOutcome, rewards: Optional[RewardLists]) -> None:
        """
        結算並換手

        不論哪一條路徑結束，turn 都切到另一個座位，下注欄位歸零；
        lastOutcome / lastProfit / lastReward 保留到下一局覆寫。
        """
        state = self.state
        bet = state.wager
        payout_total = payout_for(outcome, bet)

        self.settlement.credit(self.balances, state.wager_seat, payout_total)
        if self.settlement.uses_ledger:
            state.last_profit = payout_total - bet
            state.last_reward = None
        else:
            state.last_profit = 0
            state.last_reward = self.settlement.pick((rewards or {}).get(outcome.category))

        state.phase = BlackjackPhase.SETTLED
        state.dealer_hidden = False
        state.last_outcome = outcome
        state.wager = 0
        state.rounds_played += 1

        logger.info(
            f"Blackjack settled for seat {int(state.wager_seat)}: {outcome.value} "
            f"(bet={bet}, payout={payout_total})"
        )

        state.turn = state.turn.other()
        state.wager_seat = state.turn

    # ============ 輸出 ============

    def snapshot(self) -> dict:
        """
        給客戶端的狀態

        dealerHidden 時底牌以 None 取代，dealerValue 只算明牌；牌堆順序不輸出。
        """
        state = self.state
        dealer = [card.to_dict() for card in state.dealer]
        visible_dealer = state.dealer
        if state.dealer_hidden and len(dealer) > 1:
            dealer[1] = None
            visible_dealer = state.dealer[:1]

        return {
            "player": [card.to_dict() for card in state.player],
            "dealer": dealer,
            "inRound": state.in_round,
            "dealerHidden": state.dealer_hidden,
            "turn": int(state.turn),
            "wagerPid": int(state.wager_seat),
            "wager": state.wager,
            "lastOutcome": state.last_outcome.value if state.last_outcome else None,
            "lastProfit": state.last_profit,
            "lastReward": state.last_reward,
            "playerValue": hand_value(state.player),
            "dealerValue": hand_value(visible_dealer),
            "deckRemaining": len(state.deck),
            "roundsPlayed": state.rounds_played,
        }

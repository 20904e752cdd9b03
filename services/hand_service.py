"""
手牌計分服務：Blackjack 點數計算

純計算邏輯
"""
from typing import Sequence

from models import Card

FACE_RANKS = ("J", "Q", "K")


def card_points(card: Card) -> int:
    """A 先算 11，J/Q/K 算 10，其他為面值"""
    if card.rank == "A":
        return 11
    if card.rank in FACE_RANKS:
        return 10
    return int(card.rank)


def hand_value(hand: Sequence[Card]) -> int:
    """
    計算手牌點數（含 soft ace 調整）

    規則：
    - 先把所有 A 當 11 加總
    - 總數 > 21 且還有當 11 的 A 時，扣 10 並少算一張 soft ace
    - 直到總數 <= 21 或沒有 soft ace

    範例：
        [A, K] -> 21
        [A, A, 9] -> 21
        [A, K, 5] -> 16
    """
    total = 0
    soft_aces = 0
    for card in hand:
        if card.rank == "A":
            soft_aces += 1
        total += card_points(card)

    while total > 21 and soft_aces > 0:
        total -= 10
        soft_aces -= 1

    return total


def is_natural(hand: Sequence[Card]) -> bool:
    """剛好兩張且 21 點"""
    return len(hand) == 2 and hand_value(hand) == 21


def is_bust(hand: Sequence[Card]) -> bool:
    return hand_value(hand) > 21

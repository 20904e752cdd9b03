"""
牌組服務：建立、洗牌、發牌

一副 52 張標準撲克牌，每張只出現一次。
"""
from typing import List

from models import Card, RANKS, SUITS
from core.exceptions import DeckExhausted
from services.rng_service import RngResolver


def build_deck() -> List[Card]:
    """建立 4 花色 x 13 點數的完整牌組（未洗牌）"""
    return [Card(rank, suit) for suit in SUITS for rank in RANKS]


def shuffle(deck: List[Card], rng: RngResolver) -> List[Card]:
    """
    Fisher-Yates 原地洗牌

    i 從最後一個 index 往下到 1，每一步抽 j ∈ [0, i] 交換。
    回傳同一個 list 方便串接。
    """
    for i in range(len(deck) - 1, 0, -1):
        j = rng.uniform(i + 1)
        deck[i], deck[j] = deck[j], deck[i]
    return deck


def fresh_deck(rng: RngResolver) -> List[Card]:
    return shuffle(build_deck(), rng)


def deal(deck: List[Card]) -> Card:
    """
    從牌堆頂（list 尾端）取出一張牌

    異常：
        DeckExhausted: 牌堆已空（程式錯誤，正常回合不可能發生）
    """
    if not deck:
        raise DeckExhausted()
    return deck.pop()

import pytest

from config import Settings
from models import Card, Seat, SettlementMode
from core.engine import GameEngine
from core.room_manager import RoomManager
from services.deck_service import build_deck
from services.rng_service import RngResolver


class ScriptedSource:
    """randrange() 依序回傳預先排好的值；用完後退回 0"""

    def __init__(self, values=None):
        self.values = list(values or [])
        self.calls = []

    def push(self, *values):
        self.values.extend(values)

    def randrange(self, n):
        self.calls.append(n)
        value = self.values.pop(0) if self.values else 0
        assert 0 <= value < n, f"scripted value {value} outside [0, {n})"
        return value


def card(text: str) -> Card:
    """'A♠' / '10♥' -> Card"""
    return Card(text[:-1], text[-1])


def stacked_deck(draws):
    """
    排好一副完整 52 張的牌堆，讓 deal() 依 draws 的順序發出

    draws 依發牌順序：玩家、玩家、莊家、莊家，接著是要牌 / 莊家補牌
    """
    wanted = [card(c) if isinstance(c, str) else c for c in draws]
    rest = [c for c in build_deck() if c not in wanted]
    return rest + list(reversed(wanted))


@pytest.fixture
def settings():
    return Settings(
        start_balance=10000,
        min_bet=10,
        max_bet=500000,
        balance_cap=10_000_000_000,
        settlement_mode="ledger",
        reward_placeholder="(no reward)",
    )


@pytest.fixture
def source():
    return ScriptedSource()


@pytest.fixture
def rng(source):
    return RngResolver(source)


@pytest.fixture
def registry(settings, rng):
    return RoomManager(settings, rng)


@pytest.fixture
def engine(registry, settings):
    return GameEngine(registry, settings)


@pytest.fixture
def two_seats(engine):
    """同一個房間裡的 1 號位與 2 號位"""
    s1, _ = engine.connect("table", "conn-1")
    s2, _ = engine.connect("table", "conn-2")
    assert s1.seat == Seat.SEAT1 and s2.seat == Seat.SEAT2
    return s1, s2


@pytest.fixture
def reward_seats(engine):
    s1, _ = engine.connect("prizes", "conn-1", SettlementMode.REWARD_POOL)
    s2, _ = engine.connect("prizes", "conn-2")
    return s1, s2

import random

import pytest

from core.exceptions import UnknownField
from core.locks import FieldLockManager
from core.shared_state import SharedStateStore, build_field_specs


@pytest.fixture
def store():
    return SharedStateStore(build_field_specs(10, 500000))


# ============ FieldLockManager ============

def test_acquire_is_exclusive_and_reentrant():
    locks = FieldLockManager()
    assert locks.acquire("tab", "a")
    assert locks.acquire("tab", "a")
    assert not locks.acquire("tab", "b")
    assert locks.owner_of("tab") == "a"


def test_only_owner_can_release():
    locks = FieldLockManager()
    locks.acquire("tab", "a")
    assert not locks.release("tab", "b")
    assert locks.owner_of("tab") == "a"
    assert locks.release("tab", "a")
    assert locks.owner_of("tab") is None
    assert not locks.release("tab", "a")


def test_release_all_frees_only_that_owner():
    locks = FieldLockManager()
    locks.acquire("tab", "a")
    locks.acquire("wheel.items", "a")
    locks.acquire("tx.winRewards", "b")
    assert sorted(locks.release_all("a")) == ["tab", "wheel.items"]
    assert locks.owner_of("tx.winRewards") == "b"
    assert locks.release_all("a") == []


def test_can_write_rules():
    locks = FieldLockManager()
    assert locks.can_write("tab", "anyone")
    locks.acquire("tab", "a")
    assert locks.can_write("tab", "a")
    assert not locks.can_write("tab", "b")


def test_snapshot_translates_owner_to_seat():
    locks = FieldLockManager()
    locks.acquire("tab", "conn-x")
    locks.acquire("bj.winRewards", "conn-y")
    seats = {"conn-x": 1, "conn-y": 2}
    assert locks.snapshot(seats.get) == {"tab": 1, "bj.winRewards": 2}


def test_never_two_owners_under_random_contention():
    rnd = random.Random(5)
    locks = FieldLockManager()
    fields = ["tab", "wheel.items", "players.1.wheelBet"]
    owners = ["a", "b", "c"]
    held = {}
    for _ in range(3000):
        field, owner = rnd.choice(fields), rnd.choice(owners)
        op = rnd.choice(["acquire", "release", "drop"])
        if op == "acquire":
            granted = locks.acquire(field, owner)
            assert granted == (held.get(field) in (None, owner))
            if granted:
                held[field] = owner
        elif op == "release":
            released = locks.release(field, owner)
            assert released == (held.get(field) == owner)
            if released:
                del held[field]
        else:
            for f in locks.release_all(owner):
                assert held.pop(f) == owner
        assert {f: locks.owner_of(f) for f in fields if locks.owner_of(f)} == held


# ============ SharedStateStore ============

def test_defaults(store):
    snapshot = store.snapshot()
    assert snapshot["tab"] == "wheel"
    assert snapshot["players"]["1"] == {
        "wheelBet": 100,
        "txPick": "tai",
        "txBet": 100,
        "rlBetType": "red",
        "rlNumber": 7,
        "rlBet": 100,
        "bjBet": 200,
    }
    assert snapshot["players"]["2"]["bjBet"] == 200
    assert snapshot["wheel"] == {"speed": 5, "items": ""}
    assert snapshot["bj"]["pushRewards"] == ""


def test_undeclared_field_is_rejected(store):
    with pytest.raises(UnknownField):
        store.set("players.3.wheelBet", 100)
    with pytest.raises(UnknownField):
        store.set("balances", 10**9)
    with pytest.raises(UnknownField):
        store.get("nope")
    assert not store.is_declared(None)


@pytest.mark.parametrize("path,value,expected", [
    ("players.1.wheelBet", 999999999, 500000),
    ("players.1.wheelBet", "42.7", 42),
    ("players.2.bjBet", -5, 10),
    ("players.1.rlNumber", 99, 36),
    ("players.1.txPick", "xiu", "xiu"),
    ("players.1.txPick", "garbage", "xiu"),
    ("players.1.rlBetType", "number", "number"),
    ("players.1.rlBetType", "split", "red"),
    ("wheel.speed", 0, 1),
    ("tx.winRewards", "x" * 5000, "x" * 2000),
    ("tx.loseRewards", None, ""),
])
def test_coercion(store, path, value, expected):
    assert store.set(path, value) == expected
    assert store.get(path) == expected


def test_invalid_tab_keeps_current_value(store):
    store.set("tab", "roulette")
    assert store.set("tab", "poker") == "roulette"


def test_reset_restores_defaults(store):
    store.set("players.1.bjBet", 5000)
    store.set("tab", "blackjack")
    store.reset()
    assert store.get("players.1.bjBet") == 200
    assert store.get("tab") == "wheel"

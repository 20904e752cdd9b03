import threading

import pytest

from core.exceptions import RoomNotFound
from models import Seat, SettlementMode
from services.naming_service import generate_room_code, normalize_room_id


def test_rooms_are_created_lazily_with_default_mode(registry):
    assert "lobby" not in registry
    room, seat = registry.join("lobby", "a")
    assert "lobby" in registry
    assert seat == Seat.SEAT1
    assert room.mode == SettlementMode.LEDGER
    assert room.balances == {Seat.SEAT1: 10000, Seat.SEAT2: 10000}


def test_mode_only_applies_when_room_is_created(registry):
    room, _ = registry.join("prizes", "a", SettlementMode.REWARD_POOL)
    again, _ = registry.join("prizes", "b", SettlementMode.LEDGER)
    assert again is room
    assert room.mode == SettlementMode.REWARD_POOL
    assert room.balances == {}


def test_seat_allocation_lowest_free_then_spectator(registry):
    seats = [registry.join("t", conn)[1] for conn in ("a", "b", "c", "d")]
    assert seats == [Seat.SEAT1, Seat.SEAT2, Seat.SPECTATOR, Seat.SPECTATOR]

    # 1 號位空出來後給下一個新連線，觀戰者不會被自動升位
    registry.leave("t", "a")
    room, seat = registry.join("t", "e")
    assert seat == Seat.SEAT1
    assert room.seat_of("c") == Seat.SPECTATOR
    assert room.occupied_seats() == [1, 2]


def test_join_is_idempotent_for_the_same_connection(registry):
    registry.join("t", "a")
    _, seat = registry.join("t", "a")
    assert seat == Seat.SEAT1
    assert len(registry.get_room("t").seats) == 1


def test_room_discarded_when_last_seat_leaves_even_with_spectators(registry):
    registry.join("t", "a")
    registry.join("t", "b")
    registry.join("t", "watcher")

    first = registry.leave("t", "a")
    assert not first.discarded
    assert "t" in registry

    last = registry.leave("t", "b")
    assert last.discarded
    assert last.orphaned == ["watcher"]
    assert "t" not in registry


def test_leave_releases_locks(registry):
    room, _ = registry.join("t", "a")
    registry.join("t", "b")
    room.locks.acquire("tab", "a")
    result = registry.leave("t", "a")
    assert result.released_locks == ["tab"]
    assert room.locks.owner_of("tab") is None


def test_leave_unknown_connection_is_noop(registry):
    registry.join("t", "a")
    result = registry.leave("t", "ghost")
    assert result.seat is None
    assert "t" in registry
    assert registry.leave("missing", "a").room is None


def test_stale_spectator_cannot_affect_recreated_room(registry):
    registry.join("t", "a")
    registry.join("t", "b")
    registry.join("t", "watcher")
    registry.leave("t", "a")
    registry.leave("t", "b")

    fresh, _ = registry.join("t", "c")
    result = registry.leave("t", "watcher")
    assert result.seat is None
    assert registry.get_room("t") is fresh


def test_get_room_raises_for_unknown(registry):
    with pytest.raises(RoomNotFound):
        registry.get_room("nope")


def test_list_rooms(registry):
    registry.join("t", "a")
    registry.join("t", "b")
    registry.join("t", "c")
    assert registry.list_rooms() == [
        {"room": "t", "mode": "ledger", "players": [1, 2], "connections": 3}
    ]


def test_room_id_normalization():
    assert normalize_room_id(None, "demo", 32) == "demo"
    assert normalize_room_id("", "demo", 32) == "demo"
    assert normalize_room_id("x" * 40, "demo", 32) == "x" * 32
    assert normalize_room_id("abc", "demo", 32) == "abc"


def test_generate_room_code():
    code = generate_room_code()
    assert len(code) == 6
    assert code.isalpha() and code.isupper()


def test_list_rooms_waits_for_room_lock(registry):
    room, _ = registry.join("t", "a")
    summaries = []
    worker = threading.Thread(target=lambda: summaries.extend(registry.list_rooms()))

    with room.mutex:
        worker.start()
        worker.join(timeout=0.2)
        assert worker.is_alive()
        assert summaries == []

    worker.join(timeout=2)
    assert not worker.is_alive()
    assert summaries[0]["connections"] == 1

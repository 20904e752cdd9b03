"""
Room：一個遊戲房間的完整狀態

包含：
- 連線 -> 座位 的對應（Seat Allocator / Presence）
- 餘額帳本（LEDGER 模式）
- 共享欄位（SharedStateStore）與欄位鎖（FieldLockManager）
- 內嵌的一台 Blackjack 狀態機

Room 本身不做授權判斷，那是 Engine 的工作；這裡只保證資料結構的不變量：
1 號位、2 號位各自最多一個連線，新連線拿最小的空位，否則成為觀戰者。
"""
import logging
from typing import Dict, List, Optional, Tuple

from config import Settings
from models import PLAYER_SEATS, Seat, SettlementMode
from core.locks import FieldLockManager, new_room_mutex
from core.shared_state import SharedStateStore, build_field_specs
from core.state_machine import BlackjackStateMachine
from services.naming_service import seat_label
from services.payoff_service import SettlementUnit
from services.rng_service import RngResolver
from services.wheel_service import WHEEL_SEGMENTS

logger = logging.getLogger(__name__)


class Room:
    def __init__(self, room_id: str, mode: SettlementMode, settings: Settings, rng: RngResolver):
        self.room_id = room_id
        self.mode = mode
        self.settings = settings
        self.rng = rng
        self.mutex = new_room_mutex()

        # 連線 ID -> 座位（保持加入順序）
        self.seats: Dict[str, Seat] = {}

        self.balances: Dict[Seat, int] = {}
        self.settlement = SettlementUnit(
            mode=mode,
            rng=rng,
            min_bet=settings.min_bet,
            max_bet=settings.max_bet,
            cap=settings.balance_cap,
            placeholder=settings.reward_placeholder
        )
        self.state = SharedStateStore(build_field_specs(settings.min_bet, settings.max_bet))
        self.locks = FieldLockManager()
        self.bj = BlackjackStateMachine(rng, self.settlement, self.balances)

        self.reset_balances()

    # ============ 座位 ============

    def allocate_seat(self) -> Seat:
        used = set(self.seats.values())
        for seat in PLAYER_SEATS:
            if seat not in used:
                return seat
        return Seat.SPECTATOR

    def join(self, conn_id: str) -> Seat:
        """
        分配座位給新連線

        返回：
            1 號位、2 號位，或 SPECTATOR（兩個座位都有人時）
        """
        if conn_id in self.seats:
            return self.seats[conn_id]

        seat = self.allocate_seat()
        self.seats[conn_id] = seat
        logger.info(f"Connection {conn_id} joined room {self.room_id} as {seat_label(seat)}")
        return seat

    def leave(self, conn_id: str) -> Tuple[Optional[Seat], List[str]]:
        """
        連線離開：釋放座位與它持有的所有欄位鎖

        返回：
            (釋放的座位, 被釋放的欄位)；連線不在房間內時回傳 (None, [])
        """
        seat = self.seats.pop(conn_id, None)
        if seat is None:
            return None, []

        released = self.locks.release_all(conn_id)
        logger.info(
            f"Connection {conn_id} left room {self.room_id} ({seat_label(seat)}), "
            f"released {len(released)} lock(s)"
        )
        return seat, released

    def seat_of(self, conn_id: str) -> Seat:
        return self.seats.get(conn_id, Seat.SPECTATOR)

    def is_member(self, conn_id: str) -> bool:
        return conn_id in self.seats

    def occupied_seats(self) -> List[int]:
        return sorted(int(seat) for seat in self.seats.values() if seat.is_player)

    def has_players(self) -> bool:
        """只剩觀戰者不算，房間可以被銷毀"""
        return any(seat.is_player for seat in self.seats.values())

    def connection_ids(self) -> List[str]:
        return list(self.seats.keys())

    # ============ 重置 ============

    def reset_balances(self) -> None:
        # 原地更新：Blackjack 狀態機持有同一個 dict
        self.balances.clear()
        if self.settlement.uses_ledger:
            for seat in PLAYER_SEATS:
                self.balances[seat] = self.settings.start_balance

    def reset(self) -> None:
        """整個房間回到初始狀態（座位不變）"""
        self.reset_balances()
        self.state.reset()
        self.locks.clear()
        self.bj.reset()
        logger.info(f"Room {self.room_id} reset")

    # ============ 輸出 ============

    def balances_snapshot(self) -> Optional[Dict[str, int]]:
        if not self.settlement.uses_ledger:
            return None
        return {str(int(seat)): amount for seat, amount in self.balances.items()}

    def lock_snapshot(self) -> Dict[str, int]:
        return self.locks.snapshot(self.seat_of)

    def presence(self) -> dict:
        spectators = sum(1 for seat in self.seats.values() if not seat.is_player)
        return {"players": self.occupied_seats(), "spectators": spectators}

    def snapshot(self) -> dict:
        shared = self.state.snapshot()
        return {
            "room": self.room_id,
            "mode": self.mode.value,
            "balances": self.balances_snapshot(),
            "player": shared.get("players", {}),
            "state": shared,
            "locks": self.lock_snapshot(),
            "bj": self.bj.snapshot(),
            "wheel": {"segments": [segment.to_dict() for segment in WHEEL_SEGMENTS]},
            "presence": self.presence(),
            "limits": {
                "MIN_BET": self.settings.min_bet,
                "MAX_BET": self.settings.max_bet,
                "START_BALANCE": self.settings.start_balance,
            },
        }

"""
Room Manager：管理 Room 的完整生命週期

職責：
1. 建立 Room（第一個連線引用未知的 room id 時）
2. 連線加入 / 離開（分配、釋放座位）
3. 銷毀 Room（最後一個有座位的連線離開時；只剩觀戰者不會讓房間存活）
4. 查詢 Room 資訊

原則：
- 單一職責：只管 Room 的生命週期，不管遊戲規則
- 加入 / 離開會同時持有 registry 鎖與 room 鎖（固定順序：先 registry 再 room），
  所以「離開後銷毀」與「新連線加入」不會交錯
"""
import logging
import threading
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from config import Settings
from models import Seat, SettlementMode
from core.exceptions import RoomNotFound
from core.locks import with_room_lock
from core.room import Room
from services.rng_service import RngResolver

logger = logging.getLogger(__name__)


@dataclass
class LeaveResult:
    room: Optional[Room]
    seat: Optional[Seat]
    released_locks: List[str] = field(default_factory=list)
    discarded: bool = False
    # 房間被銷毀時仍連著的觀戰者，由傳輸層負責關閉
    orphaned: List[str] = field(default_factory=list)


class RoomManager:
    """Room 生命週期管理器（room id -> Room）"""

    def __init__(self, settings: Settings, rng: Optional[RngResolver] = None):
        self.settings = settings
        self.rng = rng if rng is not None else RngResolver()
        self._rooms: Dict[str, Room] = {}
        self._lock = threading.Lock()

    def _create_room(self, room_id: str, mode: Optional[SettlementMode]) -> Room:
        default_mode = SettlementMode.parse(self.settings.settlement_mode, SettlementMode.LEDGER)
        room = Room(room_id, mode or default_mode, self.settings, self.rng)
        self._rooms[room_id] = room
        logger.info(f"Created room {room_id} (mode={room.mode.value})")
        return room

    def join(
        self,
        room_id: str,
        conn_id: str,
        mode: Optional[SettlementMode] = None
    ) -> Tuple[Room, Seat]:
        """
        連線加入房間（房間不存在就建立）

        參數：
            room_id: 已整理過的房間 ID
            conn_id: 傳輸層給的穩定連線 ID
            mode: 建立新房間時使用的結算模式；房間已存在時忽略

        返回：
            (Room, 分配到的座位)
        """
        with self._lock:
            room = self._rooms.get(room_id)
            if room is None:
                room = self._create_room(room_id, mode)
            with with_room_lock(room):
                seat = room.join(conn_id)
        return room, seat

    def leave(self, room_id: str, conn_id: str) -> LeaveResult:
        """
        連線離開房間

        流程：
        1. 釋放座位與欄位鎖
        2. 如果已經沒有任何 1 號位 / 2 號位，銷毀房間

        返回：
            LeaveResult；連線不在該房間時 seat 為 None，不做任何事
        """
        with self._lock:
            room = self._rooms.get(room_id)
            if room is None:
                return LeaveResult(room=None, seat=None)

            with with_room_lock(room):
                seat, released = room.leave(conn_id)
                if seat is None:
                    return LeaveResult(room=room, seat=None)

                result = LeaveResult(room=room, seat=seat, released_locks=released)
                if not room.has_players():
                    del self._rooms[room_id]
                    result.discarded = True
                    result.orphaned = room.connection_ids()
                    logger.info(
                        f"Discarded room {room_id} "
                        f"({len(result.orphaned)} spectator(s) still attached)"
                    )
                return result

    def find(self, room_id: str) -> Optional[Room]:
        return self._rooms.get(room_id)

    def get_room(self, room_id: str) -> Room:
        """
        透過 ID 取得 Room

        異常：
            RoomNotFound: Room 不存在
        """
        room = self._rooms.get(room_id)
        if room is None:
            raise RoomNotFound(room_id)
        return room

    def list_rooms(self) -> List[dict]:
        with self._lock:
            rooms = list(self._rooms.values())
        summaries = []
        for room in rooms:
            # 座位表可能正被事件迴圈修改
            with with_room_lock(room):
                summaries.append({
                    "room": room.room_id,
                    "mode": room.mode.value,
                    "players": room.occupied_seats(),
                    "connections": len(room.seats),
                })
        return summaries

    def __len__(self) -> int:
        return len(self._rooms)

    def __contains__(self, room_id: str) -> bool:
        return room_id in self._rooms

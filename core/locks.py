"""
並發控制工具

兩種鎖：
1. Room 鎖：同一個房間的所有指令（含斷線清理）一次只處理一個，依到達順序。
   不同房間互不影響，可以平行處理。
2. 欄位鎖（FieldLockManager）：協作編輯用的「欄位擁有權」，
   同一時間一個欄位最多只有一個連線持有。
"""
import logging
import threading
from contextlib import contextmanager
from typing import Callable, Dict, List, Optional

logger = logging.getLogger(__name__)


def new_room_mutex() -> threading.RLock:
    return threading.RLock()


@contextmanager
def with_room_lock(room):
    """
    鎖定一個 Room，直到 with 區塊結束

    使用場景：
    - 處理任何會修改房間狀態的指令
    - 處理斷線清理（釋放座位、釋放欄位鎖、可能銷毀房間）

    範例：
        with with_room_lock(room):
            room.bj.hit(seat)

    注意：
        - 指令處理本身是同步計算（亂數、算術、list 操作），區塊內不可 await
        - 使用 RLock，同一執行緒重入不會 deadlock
    """
    with room.mutex:
        yield room


class FieldLockManager:
    """
    欄位鎖管理器

    規則：
    - acquire：欄位沒人鎖，或已經是自己鎖的，才會成功
    - release：只有目前持有者可以釋放
    - 持有者斷線時，release_all 釋放它持有的所有欄位
    """

    def __init__(self):
        self._owners: Dict[str, str] = {}

    def owner_of(self, field: str) -> Optional[str]:
        return self._owners.get(field)

    def acquire(self, field: str, owner: str) -> bool:
        current = self._owners.get(field)
        if current is not None and current != owner:
            logger.debug(f"Lock on {field} denied for {owner} (held by {current})")
            return False
        self._owners[field] = owner
        return True

    def release(self, field: str, owner: str) -> bool:
        if self._owners.get(field) != owner:
            return False
        del self._owners[field]
        return True

    def release_all(self, owner: str) -> List[str]:
        """釋放某個連線持有的所有欄位，回傳被釋放的欄位名稱"""
        released = [field for field, holder in self._owners.items() if holder == owner]
        for field in released:
            del self._owners[field]
        return released

    def clear(self) -> None:
        self._owners.clear()

    def can_write(self, field: str, writer: str) -> bool:
        """沒被鎖的欄位任何人可寫；被鎖的欄位只有持有者可寫"""
        holder = self._owners.get(field)
        return holder is None or holder == writer

    def snapshot(self, seat_of: Callable[[str], int]) -> Dict[str, int]:
        """把 {欄位: 連線 ID} 轉成 {欄位: 座位號碼}，給客戶端顯示"""
        return {field: int(seat_of(holder)) for field, holder in self._owners.items()}

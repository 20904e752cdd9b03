"""
命名服務：生成 Room Code、整理 Room ID

純計算邏輯，不涉及狀態轉換
"""
import random
import string
from typing import Optional


def generate_room_code() -> str:
    """
    生成隨機的 6 位大寫字母房間代碼

    範例：ABCDEF, XYZABC

    注意：
    - 不檢查唯一性，也不預先建立房間（第一個連線進來時才建立）
    - 26^6 = 308,915,776 種可能，碰撞機率極低
    """
    return ''.join(random.choices(string.ascii_uppercase, k=6))


def normalize_room_id(raw: Optional[str], default: str, max_length: int) -> str:
    """
    整理客戶端傳來的房間 ID

    規則：
    - 轉成字串後截斷到 max_length
    - 空字串或缺少時使用預設房間

    範例：
        normalize_room_id(None, "demo", 32) -> "demo"
        normalize_room_id("x" * 40, "demo", 32) -> "x" * 32
    """
    text = "" if raw is None else str(raw)
    text = text[:max_length]
    return text or default


def seat_label(seat: int) -> str:
    return f"P{int(seat)}" if seat else "spectator"

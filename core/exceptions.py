"""
自定義異常類別

集中管理所有業務邏輯異常，方便 Engine 與 API 層統一處理：
- RejectedCommand / UnknownField：靜默丟棄（不廣播、不回錯誤）
- InvalidBet：單播 error:msg 給送出指令的連線
- RoomNotFound：REST 層轉成 404
- DeckExhausted：程式錯誤，直接往上拋
"""


class GameRoomException(Exception):
    """所有遊戲房間異常的基類"""
    pass


# ============ 指令相關異常 ============

class RejectedCommand(GameRoomException):
    """座位、回合、鎖或回合狀態不符合，指令被拒絕"""
    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(reason)


class UnknownField(GameRoomException):
    """寫入或鎖定一個沒有宣告的欄位"""
    def __init__(self, field):
        self.field = field
        super().__init__(f"Unknown field {field!r}")


class InvalidBet(GameRoomException):
    """下注金額不合法或餘額不足"""
    def __init__(self, msg: str):
        self.msg = msg
        super().__init__(msg)


# ============ Room 相關異常 ============

class RoomNotFound(GameRoomException):
    """房間不存在"""
    def __init__(self, room_id):
        self.room_id = room_id
        super().__init__(f"Room {room_id} not found")


# ============ 牌組相關異常 ============

class DeckExhausted(GameRoomException, RuntimeError):
    """牌堆已空（不應該發生，代表程式邏輯有錯）"""
    def __init__(self):
        super().__init__("Deck exhausted")

"""
WebSocket Endpoint

職責：
1. 接受連線，分配穩定的連線 ID，把連線交給 GameEngine 分配座位
2. 解析訊框 {"event": ..., "data": ...}，交給 GameEngine 處理
3. 把 GameEngine 回傳的事件扇出（room / others / sender）
4. 斷線時執行清理；房間被銷毀時關閉還連著的觀戰者

遊戲規則全部在 GameEngine；這裡只負責傳輸。
"""
from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from pydantic import ValidationError
from typing import Dict, Iterable, List, Optional
from uuid import uuid4
import json
import logging

from models import SettlementMode
from schemas import Frame
from core.engine import Event, Session, Target
from services.naming_service import normalize_room_id

router = APIRouter(tags=["websocket"])
logger = logging.getLogger(__name__)

ROOM_CLOSED_CODE = 1000
INTERNAL_ERROR_CODE = 1011


async def safe_close(websocket: WebSocket, code: int) -> None:
    try:
        await websocket.close(code=code)
    except Exception as e:
        logger.warning(f"Failed to close websocket: {e}")


def decode_frame(raw: str) -> Optional[Frame]:
    """非 JSON 或缺少 event 的訊框回傳 None（丟棄，不斷線）"""
    try:
        return Frame.model_validate(json.loads(raw))
    except (ValueError, ValidationError) as e:
        logger.warning(f"Dropped malformed frame: {e}")
        return None


class ConnectionHub:
    """room id -> {連線 ID: WebSocket}"""

    def __init__(self):
        self._rooms: Dict[str, Dict[str, WebSocket]] = {}

    def attach(self, room_id: str, conn_id: str, websocket: WebSocket) -> None:
        self._rooms.setdefault(room_id, {})[conn_id] = websocket

    def detach(self, room_id: str, conn_id: str) -> Optional[WebSocket]:
        sockets = self._rooms.get(room_id)
        if sockets is None:
            return None
        websocket = sockets.pop(conn_id, None)
        if not sockets:
            del self._rooms[room_id]
        return websocket

    def recipients(self, session: Session, target: Target) -> List[WebSocket]:
        sockets = self._rooms.get(session.room_id, {})
        if target == Target.SENDER:
            websocket = sockets.get(session.conn_id)
            return [websocket] if websocket is not None else []
        if target == Target.OTHERS:
            return [ws for conn_id, ws in sockets.items() if conn_id != session.conn_id]
        return list(sockets.values())

    async def dispatch(self, session: Session, events: Iterable[Event]) -> None:
        for event in events:
            frame = event.to_frame()
            for websocket in self.recipients(session, event.target):
                try:
                    await websocket.send_json(frame)
                except Exception as e:
                    # 對方已斷線；它自己的接收迴圈會做清理
                    logger.warning(f"Failed to deliver {event.name}: {e}")

    async def close_orphans(self, room_id: str, conn_ids: Iterable[str]) -> None:
        for conn_id in conn_ids:
            websocket = self.detach(room_id, conn_id)
            if websocket is not None:
                await safe_close(websocket, ROOM_CLOSED_CODE)


@router.websocket("/ws")
async def room_socket(websocket: WebSocket, room: Optional[str] = None, mode: Optional[str] = None):
    """
    房間連線

    Query 參數：
        room: 房間 ID（最長 32 字元，缺少時使用預設房間）
        mode: ledger | reward_pool，只在建立新房間時生效
    """
    settings = websocket.app.state.settings
    engine = websocket.app.state.engine
    hub = websocket.app.state.hub

    await websocket.accept()

    room_id = normalize_room_id(room, settings.default_room, settings.room_id_max_length)
    conn_id = uuid4().hex
    session, events = engine.connect(room_id, conn_id, SettlementMode.parse(mode, None))
    hub.attach(session.room_id, conn_id, websocket)
    await hub.dispatch(session, events)

    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                raise WebSocketDisconnect(message.get("code", ROOM_CLOSED_CODE))
            raw = message.get("text")
            if raw is None:
                logger.warning(f"Dropped non-text frame from {conn_id}")
                continue
            frame = decode_frame(raw)
            if frame is None:
                continue
            await hub.dispatch(session, engine.handle(session, frame.event, frame.data))

    except WebSocketDisconnect:
        pass
    except Exception as e:
        logger.error(f"Connection {conn_id} in room {room_id} failed: {e}", exc_info=True)
        await safe_close(websocket, INTERNAL_ERROR_CODE)
    finally:
        hub.detach(session.room_id, conn_id)
        outcome = engine.disconnect(session)
        await hub.dispatch(session, outcome.events)
        if outcome.discarded:
            await hub.close_orphans(session.room_id, outcome.orphaned)

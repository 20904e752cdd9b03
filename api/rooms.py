"""
Room API Endpoints

職責：
1. 產生房間代碼（房間在第一個連線進來時才真正建立）
2. 查詢目前存在的房間與房間快照
"""
from fastapi import APIRouter, Depends, HTTPException, Request
import logging

from schemas import RoomCodeResponse
from core.exceptions import RoomNotFound
from core.locks import with_room_lock
from core.room_manager import RoomManager
from services.naming_service import generate_room_code

router = APIRouter(prefix="/api/rooms", tags=["rooms"])
logger = logging.getLogger(__name__)


def get_registry(request: Request) -> RoomManager:
    """FastAPI dependency：提供 app 共用的 RoomManager"""
    return request.app.state.engine.registry


@router.post("", response_model=RoomCodeResponse)
def create_room_code(registry: RoomManager = Depends(get_registry)):
    """
    產生一個未被使用的房間代碼

    注意：只是代碼，不會預先建立房間
    """
    code = generate_room_code()
    while code in registry:
        code = generate_room_code()
        logger.warning(f"Room code collision detected, regenerating: {code}")
    return RoomCodeResponse(room=code)


@router.get("")
def list_rooms(registry: RoomManager = Depends(get_registry)):
    return {"rooms": registry.list_rooms()}


@router.get("/{room_id}")
def get_room(room_id: str, registry: RoomManager = Depends(get_registry)):
    """
    取得房間快照

    返回：
        與 WebSocket state:full 相同的快照
    """
    try:
        room = registry.get_room(room_id)
    except RoomNotFound:
        raise HTTPException(status_code=404, detail="Room not found")

    with with_room_lock(room):
        return room.snapshot()

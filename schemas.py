"""
Inbound payload 的宣告形狀

每個指令的 payload 都先經過這裡；驗證失敗時退回 model 的預設值，
絕對不把 ValidationError 丟進傳輸層。
"""
from pydantic import BaseModel, ValidationError
from typing import Any, Optional, Type, TypeVar
import logging

logger = logging.getLogger(__name__)

PayloadT = TypeVar("PayloadT", bound=BaseModel)


class Frame(BaseModel):
    """WebSocket 上的一個訊框：{"event": ..., "data": ...}"""
    event: str
    data: Any = None


class StateSet(BaseModel):
    field: str = ""
    value: Any = None


class PlayerSet(BaseModel):
    key: str = ""
    value: Any = None


class LockSet(BaseModel):
    field: str = ""
    locked: bool = False


class TabSet(BaseModel):
    tab: str = ""


# 獎勵清單可以是 list[str] 或換行分隔的字串，整理交給 payoff_service.clean_reward_list
class WheelSpin(BaseModel):
    items: Optional[Any] = None
    speed: Optional[Any] = None


class TaiXiuRoll(BaseModel):
    pick: Optional[str] = None
    winRewards: Optional[Any] = None
    loseRewards: Optional[Any] = None


class RouletteSpin(BaseModel):
    betType: Optional[str] = None
    betNumber: Optional[Any] = None
    winRewards: Optional[Any] = None
    loseRewards: Optional[Any] = None


class BlackjackAction(BaseModel):
    winRewards: Optional[Any] = None
    loseRewards: Optional[Any] = None
    pushRewards: Optional[Any] = None


class RoomCodeResponse(BaseModel):
    room: str


def parse_payload(model: Type[PayloadT], data: Any) -> PayloadT:
    """
    把任意輸入轉成指定的 payload model

    - 不是 dict：直接用預設值
    - 驗證失敗：記 warning，用預設值
    """
    if not isinstance(data, dict):
        return model()
    try:
        return model.model_validate(data)
    except ValidationError as e:
        logger.warning(f"Malformed {model.__name__} payload, using defaults: {e.error_count()} error(s)")
        return model()

"""
Shared State Store：房間內共享的設定欄位

每個欄位用「點分路徑」定址（例如 players.1.wheelBet），並綁定一個 coercer：
- choice：必須在允許清單內
- int_range：整數，夾在範圍內
- text：字串，限制長度

沒有宣告的欄位一律拒絕寫入（UnknownField）。
鎖的檢查不在這裡，由 Engine 搭配 FieldLockManager 處理。
"""
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, Optional

from models import GameTab, PLAYER_SEATS, RouletteBetType, Seat, TaiXiuPick
from core.exceptions import UnknownField
from services.payoff_service import clamp_int
from services.wheel_service import DEFAULT_SPEED, MAX_SPEED, MIN_SPEED

# Coercer 簽名：(新值, 目前的值) -> 寫入的值
Coercer = Callable[[Any, Any], Any]

SHARED_TEXT_MAX_LENGTH = 2000

SEAT_FIELD_KEYS = ("wheelBet", "txPick", "txBet", "rlBetType", "rlNumber", "rlBet", "bjBet")

REWARD_TEXT_FIELDS = (
    "wheel.items",
    "tx.winRewards",
    "tx.loseRewards",
    "rl.winRewards",
    "rl.loseRewards",
    "bj.winRewards",
    "bj.loseRewards",
    "bj.pushRewards",
)


def choice(allowed: Iterable[str], fallback: Optional[str] = None) -> Coercer:
    """不在清單內時：有 fallback 用 fallback，否則保留目前的值"""
    allowed = tuple(allowed)

    def coerce(value, current):
        if value in allowed:
            return value
        return fallback if fallback is not None else current
    return coerce


def int_range(lo: int, hi: int) -> Coercer:
    def coerce(value, current):
        return clamp_int(value, lo, hi)
    return coerce


def text(max_length: int) -> Coercer:
    def coerce(value, current):
        if value is None:
            return ""
        return str(value)[:max_length]
    return coerce


@dataclass(frozen=True)
class FieldSpec:
    path: str
    default: Any
    coerce: Coercer


def seat_field(seat: Seat, key: str) -> str:
    return f"players.{int(seat)}.{key}"


def build_field_specs(min_bet: int, max_bet: int) -> Dict[str, FieldSpec]:
    """
    建立房間所有可寫欄位的宣告

    - tab：目前顯示的遊戲分頁（共用）
    - players.<seat>.*：每個座位自己的下注設定
    - wheel.* / tx.* / rl.* / bj.*：獎勵池文字與轉盤速度
    """
    specs = [
        FieldSpec("tab", GameTab.WHEEL.value, choice([t.value for t in GameTab])),
        FieldSpec("wheel.speed", DEFAULT_SPEED, int_range(MIN_SPEED, MAX_SPEED)),
    ]

    bet = int_range(min_bet, max_bet)
    for seat in PLAYER_SEATS:
        specs += [
            FieldSpec(seat_field(seat, "wheelBet"), 100, bet),
            FieldSpec(seat_field(seat, "txPick"), TaiXiuPick.TAI.value,
                      choice([TaiXiuPick.TAI.value], fallback=TaiXiuPick.XIU.value)),
            FieldSpec(seat_field(seat, "txBet"), 100, bet),
            FieldSpec(seat_field(seat, "rlBetType"), RouletteBetType.RED.value,
                      choice([t.value for t in RouletteBetType], fallback=RouletteBetType.RED.value)),
            FieldSpec(seat_field(seat, "rlNumber"), 7, int_range(0, 36)),
            FieldSpec(seat_field(seat, "rlBet"), 100, bet),
            FieldSpec(seat_field(seat, "bjBet"), 200, bet),
        ]

    for path in REWARD_TEXT_FIELDS:
        specs.append(FieldSpec(path, "", text(SHARED_TEXT_MAX_LENGTH)))

    return {spec.path: spec for spec in specs}


class SharedStateStore:
    """依欄位路徑存取的共享狀態"""

    def __init__(self, specs: Dict[str, FieldSpec]):
        self.specs = specs
        self.values: Dict[str, Any] = {}
        self.reset()

    def reset(self) -> None:
        self.values = {path: spec.default for path, spec in self.specs.items()}

    def is_declared(self, path: str) -> bool:
        return isinstance(path, str) and path in self.specs

    def get(self, path: str) -> Any:
        if not self.is_declared(path):
            raise UnknownField(path)
        return self.values[path]

    def set(self, path: str, value: Any) -> Any:
        """
        寫入一個欄位

        返回：
            經過 coercer 整理後實際寫入的值

        異常：
            UnknownField: 欄位沒有宣告
        """
        if not self.is_declared(path):
            raise UnknownField(path)
        coerced = self.specs[path].coerce(value, self.values[path])
        self.values[path] = coerced
        return coerced

    def seat_value(self, seat: Seat, key: str) -> Any:
        return self.get(seat_field(seat, key))

    def snapshot(self) -> Dict[str, Any]:
        """把點分路徑展開成巢狀 dict"""
        tree: Dict[str, Any] = {}
        for path, value in self.values.items():
            node = tree
            parts = path.split(".")
            for part in parts[:-1]:
                node = node.setdefault(part, {})
            node[parts[-1]] = value
        return tree

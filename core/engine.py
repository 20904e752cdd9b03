"""
Game Engine：房間指令的單一入口

每個 inbound 指令的處理流程：
1. 用 Session 的連線 ID 在房間座位表查出座位
2. 對房間加鎖（同房間指令依序處理，不交錯）
3. 驗證 payload、座位、回合、欄位鎖、下注
4. 交給對應的遊戲引擎（mini-game resolver 或 Blackjack 狀態機）
5. 回傳要送出的事件清單，由傳輸層負責扇出

錯誤處理：
- RejectedCommand / UnknownField：靜默丟棄，不回任何事件（避免洩漏狀態給試探的客戶端）
- InvalidBet：單播 error:msg 給送出指令的連線，狀態不變
"""
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple

from config import Settings
from models import (
    OutcomeCategory,
    RouletteBetType,
    Seat,
    SettlementMode,
    TaiXiuPick,
)
from schemas import (
    BlackjackAction,
    LockSet,
    PlayerSet,
    RouletteSpin,
    StateSet,
    TabSet,
    TaiXiuRoll,
    WheelSpin,
    parse_payload,
)
from core.exceptions import InvalidBet, RejectedCommand, UnknownField
from core.locks import with_room_lock
from core.room import Room
from core.room_manager import RoomManager
from core.shared_state import SEAT_FIELD_KEYS, seat_field
from services.payoff_service import clamp_int, clean_reward_list
from services.roulette_service import spin_roulette
from services.taixiu_service import roll_taixiu
from services.wheel_service import MAX_SPEED, MIN_SPEED, spin_reward_wheel, spin_wheel

logger = logging.getLogger(__name__)


class Target(str, Enum):
    ROOM = "room"        # 房間內所有連線
    OTHERS = "others"    # 除了送出指令的連線
    SENDER = "sender"    # 只給送出指令的連線


@dataclass
class Event:
    name: str
    payload: Dict[str, Any]
    target: Target = Target.ROOM

    def to_frame(self) -> Dict[str, Any]:
        return {"event": self.name, "data": self.payload}


@dataclass(frozen=True)
class Session:
    """一條連線的身分：連線 ID、所在房間、連線時分配到的座位"""
    conn_id: str
    room_id: str
    seat: Seat


@dataclass
class DisconnectOutcome:
    events: List[Event] = field(default_factory=list)
    discarded: bool = False
    orphaned: List[str] = field(default_factory=list)


Handler = Callable[[Room, Session, Seat, Any], List[Event]]


class GameEngine:
    def __init__(self, registry: RoomManager, settings: Settings):
        self.registry = registry
        self.settings = settings
        self._handlers: Dict[str, Handler] = {
            "state:set": self._on_state_set,
            "player:set": self._on_player_set,
            "lock:set": self._on_lock_set,
            "ui:tab": self._on_ui_tab,
            "room:reset": self._on_room_reset,
            "wheel:spin": self._on_wheel_spin,
            "tx:roll": self._on_tx_roll,
            "rl:spin": self._on_rl_spin,
            "bj:new": self._on_bj_new,
            "bj:deal": self._on_bj_deal,
            "bj:hit": self._on_bj_hit,
            "bj:stand": self._on_bj_stand,
        }

    # ============ 連線生命週期 ============

    def connect(
        self,
        room_id: str,
        conn_id: str,
        mode: Optional[SettlementMode] = None
    ) -> Tuple[Session, List[Event]]:
        """
        新連線進入房間

        返回：
            (Session, 事件)：init 單播給自己；presence 與 state:full 廣播給整個房間
        """
        room, seat = self.registry.join(room_id, conn_id, mode)
        session = Session(conn_id=conn_id, room_id=room.room_id, seat=seat)

        with with_room_lock(room):
            snapshot = room.snapshot()
            events = [
                Event("init", {"playerId": int(seat), **snapshot}, Target.SENDER),
                Event("presence", room.presence()),
                Event("state:full", snapshot),
            ]
        return session, events

    def disconnect(self, session: Session) -> DisconnectOutcome:
        """
        連線斷開：釋放座位、釋放欄位鎖、廣播 presence，最後一個座位離開時銷毀房間
        """
        result = self.registry.leave(session.room_id, session.conn_id)
        if result.room is None or result.seat is None:
            return DisconnectOutcome()

        room = result.room
        with with_room_lock(room):
            events = [Event("presence", room.presence())]
            if result.released_locks:
                events.append(Event("lock:state", {"locks": room.lock_snapshot()}))

        return DisconnectOutcome(
            events=events,
            discarded=result.discarded,
            orphaned=result.orphaned
        )

    # ============ 指令分派 ============

    def handle(self, session: Session, command: str, data: Any = None) -> List[Event]:
        """
        處理一個 inbound 指令

        返回：
            要送出的事件（被拒絕的指令回傳空 list）
        """
        handler = self._handlers.get(command)
        if handler is None:
            logger.debug(f"Dropped unknown command {command!r} from {session.conn_id}")
            return []

        room = self.registry.find(session.room_id)
        if room is None:
            return []

        with with_room_lock(room):
            if not room.is_member(session.conn_id):
                # 房間已被銷毀又重建，舊連線不屬於新房間
                return []
            seat = room.seat_of(session.conn_id)
            try:
                return handler(room, session, seat, data)
            except (RejectedCommand, UnknownField) as e:
                logger.debug(f"Ignored {command} from seat {int(seat)} in room {room.room_id}: {e}")
                return []
            except InvalidBet as e:
                return [Event("error:msg", {"msg": e.msg}, Target.SENDER)]

    # ============ 共用檢查 ============

    @staticmethod
    def _require_player(seat: Seat) -> None:
        if not seat.is_player:
            raise RejectedCommand("spectators cannot act")

    @staticmethod
    def _require_seat1(seat: Seat) -> None:
        if seat != Seat.SEAT1:
            raise RejectedCommand("only seat 1 may reset")

    def _write_field(self, room: Room, session: Session, path: str, value: Any) -> Any:
        """欄位必須宣告過；被鎖住時只有持有者可以寫"""
        if not room.state.is_declared(path):
            raise UnknownField(path)
        if not room.locks.can_write(path, session.conn_id):
            raise RejectedCommand(f"{path} is locked by another connection")
        return room.state.set(path, value)

    def _rewards(self, raw: Any, room: Room, fallback_field: str) -> List[str]:
        """payload 有帶清單就用 payload 的，否則用房間共享欄位的文字"""
        source = raw if raw is not None else room.state.get(fallback_field)
        return clean_reward_list(
            source,
            max_items=self.settings.reward_list_max_items,
            max_length=self.settings.reward_text_max_length
        )

    @staticmethod
    def _bet_payload(room: Room, seat: Seat, bet: int, payout_total: int, result) -> Dict[str, Any]:
        payload = {
            "by": int(seat),
            "bet": bet,
            "payoutTotal": payout_total,
            "profit": payout_total - bet,
        }
        if room.settlement.uses_ledger:
            payload["balances"] = room.balances_snapshot()
        else:
            payload["reward"] = result.reward
        return payload

    # ============ 共享狀態與欄位鎖 ============

    def _on_state_set(self, room: Room, session: Session, seat: Seat, data: Any) -> List[Event]:
        self._require_player(seat)
        payload = parse_payload(StateSet, data)
        value = self._write_field(room, session, payload.field, payload.value)
        return [Event("state:set", {"field": payload.field, "value": value, "by": int(seat)}, Target.OTHERS)]

    def _on_player_set(self, room: Room, session: Session, seat: Seat, data: Any) -> List[Event]:
        self._require_player(seat)
        payload = parse_payload(PlayerSet, data)
        if payload.key == "tab":
            path = "tab"
        elif payload.key in SEAT_FIELD_KEYS:
            path = seat_field(seat, payload.key)
        else:
            raise UnknownField(payload.key)
        value = self._write_field(room, session, path, payload.value)
        return [Event("player:set", {"by": int(seat), "key": payload.key, "value": value})]

    def _on_ui_tab(self, room: Room, session: Session, seat: Seat, data: Any) -> List[Event]:
        self._require_player(seat)
        payload = parse_payload(TabSet, data)
        value = self._write_field(room, session, "tab", payload.tab)
        return [Event("ui:tab", {"tab": value, "by": int(seat)}, Target.OTHERS)]

    def _on_lock_set(self, room: Room, session: Session, seat: Seat, data: Any) -> List[Event]:
        self._require_player(seat)
        payload = parse_payload(LockSet, data)
        if not room.state.is_declared(payload.field):
            raise UnknownField(payload.field)

        if payload.locked:
            changed = room.locks.acquire(payload.field, session.conn_id)
        else:
            changed = room.locks.release(payload.field, session.conn_id)
        if not changed:
            raise RejectedCommand(f"lock change on {payload.field} refused")

        return [Event("lock:state", {"locks": room.lock_snapshot()})]

    def _on_room_reset(self, room: Room, session: Session, seat: Seat, data: Any) -> List[Event]:
        self._require_seat1(seat)
        if not room.settlement.uses_ledger:
            raise RejectedCommand("room:reset is ledger-only")
        room.reset()
        return [
            Event("room:reset", room.snapshot()),
            Event("lock:state", {"locks": room.lock_snapshot()}),
        ]

    # ============ Mini-games ============

    def _on_wheel_spin(self, room: Room, session: Session, seat: Seat, data: Any) -> List[Event]:
        self._require_player(seat)

        if room.settlement.uses_ledger:
            bet = room.settlement.accept_bet(room.balances, seat, room.state.seat_value(seat, "wheelBet"))
            spin = spin_wheel(bet, room.rng)
            result = room.settlement.resolve(room.balances, seat, bet, spin.payout_total)
            payload = self._bet_payload(room, seat, bet, spin.payout_total, result)
            payload.update({"segmentIndex": spin.index, "segment": spin.segment.to_dict()})
            return [Event("wheel:spinResult", payload)]

        # 獎勵池轉盤：盤面就是獎品清單
        request = parse_payload(WheelSpin, data)
        items = self._rewards(request.items, room, "wheel.items")
        speed_source = request.speed if request.speed is not None else room.state.get("wheel.speed")
        index = spin_reward_wheel(items, room.rng)
        reward = items[index] if index is not None else room.settlement.placeholder
        return [Event("wheel:spinResult", {
            "by": int(seat),
            "items": items,
            "speed": clamp_int(speed_source, MIN_SPEED, MAX_SPEED),
            "segmentIndex": index,
            "reward": reward,
        })]

    def _on_tx_roll(self, room: Room, session: Session, seat: Seat, data: Any) -> List[Event]:
        self._require_player(seat)
        request = parse_payload(TaiXiuRoll, data)

        stored_pick = room.state.seat_value(seat, "txPick")
        pick = TaiXiuPick(request.pick if request.pick in (TaiXiuPick.TAI.value, TaiXiuPick.XIU.value) else stored_pick)

        bet = room.settlement.accept_bet(room.balances, seat, room.state.seat_value(seat, "txBet"))
        roll = roll_taixiu(pick, bet, room.rng)

        rewards = None
        if not room.settlement.uses_ledger:
            if roll.win:
                rewards = self._rewards(request.winRewards, room, "tx.winRewards")
            else:
                rewards = self._rewards(request.loseRewards, room, "tx.loseRewards")
        result = room.settlement.resolve(room.balances, seat, bet, roll.payout_total, rewards)

        payload = self._bet_payload(room, seat, bet, roll.payout_total, result)
        d1, d2, d3 = roll.dice
        payload.update({
            "pick": pick.value,
            "d1": d1,
            "d2": d2,
            "d3": d3,
            "sum": roll.total,
            "out": roll.outcome.value,
            "triple": roll.triple,
            "win": roll.win,
        })
        return [Event("tx:result", payload)]

    def _on_rl_spin(self, room: Room, session: Session, seat: Seat, data: Any) -> List[Event]:
        self._require_player(seat)
        request = parse_payload(RouletteSpin, data)

        allowed = [t.value for t in RouletteBetType]
        bet_type_raw = request.betType if request.betType in allowed else room.state.seat_value(seat, "rlBetType")
        bet_type = RouletteBetType(bet_type_raw if bet_type_raw in allowed else RouletteBetType.RED.value)
        number_source = request.betNumber if request.betNumber is not None else room.state.seat_value(seat, "rlNumber")
        bet_number = clamp_int(number_source, 0, 36)

        bet = room.settlement.accept_bet(room.balances, seat, room.state.seat_value(seat, "rlBet"))
        spin = spin_roulette(bet_type, bet_number, bet, room.rng)

        rewards = None
        if not room.settlement.uses_ledger:
            if spin.win:
                rewards = self._rewards(request.winRewards, room, "rl.winRewards")
            else:
                rewards = self._rewards(request.loseRewards, room, "rl.loseRewards")
        result = room.settlement.resolve(room.balances, seat, bet, spin.payout_total, rewards)

        payload = self._bet_payload(room, seat, bet, spin.payout_total, result)
        payload.update({
            "betType": bet_type.value,
            "betNumber": bet_number,
            "rolled": spin.rolled,
            "color": spin.color,
            "win": spin.win,
        })
        return [Event("rl:result", payload)]

    # ============ Blackjack ============

    def _bj_state(self, room: Room) -> Event:
        payload = {"bj": room.bj.snapshot()}
        if room.settlement.uses_ledger:
            payload["balances"] = room.balances_snapshot()
        return Event("bj:state", payload)

    def _bj_rewards(self, room: Room, data: Any) -> Optional[Dict[OutcomeCategory, List[str]]]:
        if room.settlement.uses_ledger:
            return None
        request = parse_payload(BlackjackAction, data)
        return {
            OutcomeCategory.WIN: self._rewards(request.winRewards, room, "bj.winRewards"),
            OutcomeCategory.LOSE: self._rewards(request.loseRewards, room, "bj.loseRewards"),
            OutcomeCategory.PUSH: self._rewards(request.pushRewards, room, "bj.pushRewards"),
        }

    def _on_bj_new(self, room: Room, session: Session, seat: Seat, data: Any) -> List[Event]:
        self._require_seat1(seat)
        room.bj.reset()
        return [self._bj_state(room)]

    def _on_bj_deal(self, room: Room, session: Session, seat: Seat, data: Any) -> List[Event]:
        self._require_player(seat)
        raw_bet = room.state.seat_value(seat, "bjBet")
        room.bj.deal(seat, raw_bet, self._bj_rewards(room, data))
        return [self._bj_state(room)]

    def _on_bj_hit(self, room: Room, session: Session, seat: Seat, data: Any) -> List[Event]:
        room.bj.hit(seat, self._bj_rewards(room, data))
        return [self._bj_state(room)]

    def _on_bj_stand(self, room: Room, session: Session, seat: Seat, data: Any) -> List[Event]:
        room.bj.stand(seat, self._bj_rewards(room, data))
        return [self._bj_state(room)]

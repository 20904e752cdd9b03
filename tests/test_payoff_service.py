import random

import pytest

from models import Seat, SettlementMode
from core.exceptions import InvalidBet
from services.payoff_service import (
    SettlementUnit,
    clamp_int,
    clean_reward_list,
    pick_reward,
    settle,
)
from services.rng_service import RngResolver
from tests.conftest import ScriptedSource

CAP = 10_000_000_000


def ledger_unit(rng=None):
    return SettlementUnit(SettlementMode.LEDGER, rng or RngResolver(), 10, 500000, CAP, "(no reward)")


def reward_unit(rng=None):
    return SettlementUnit(SettlementMode.REWARD_POOL, rng or RngResolver(), 10, 500000, CAP, "(no reward)")


@pytest.mark.parametrize("value,expected", [
    (150, 150),
    ("150", 150),
    (150.9, 150),
    (5, 10),
    (10**9, 500000),
    (None, 10),
    ("abc", 10),
    (float("nan"), 10),
    (float("inf"), 10),
    (True, 10),
])
def test_clamp_int(value, expected):
    assert clamp_int(value, 10, 500000) == expected


def test_settle_formula_and_bounds():
    assert settle(10000, 100, 200, CAP) == 10100
    assert settle(10000, 100, 0, CAP) == 9900
    assert settle(50, 100, 0, CAP) == 0
    assert settle(CAP, 100, 1000, CAP) == CAP


def test_balance_never_leaves_bounds_over_random_sequences():
    rnd = random.Random(99)
    balance = 10000
    for _ in range(5000):
        bet = rnd.randint(0, 600000)
        payout = rnd.choice([0, bet, bet * 2, bet * 36, 10**11])
        balance = settle(balance, bet, payout, CAP)
        assert 0 <= balance <= CAP


def test_accept_bet_clamps_before_balance_check():
    unit = ledger_unit()
    balances = {Seat.SEAT1: 10000}
    assert unit.accept_bet(balances, Seat.SEAT1, 1) == 10
    assert unit.accept_bet(balances, Seat.SEAT1, "250") == 250

    balances[Seat.SEAT1] = 9
    with pytest.raises(InvalidBet):
        unit.accept_bet(balances, Seat.SEAT1, 5)


def test_accept_bet_rejects_rather_than_lowering_to_balance():
    unit = ledger_unit()
    balances = {Seat.SEAT1: 300}
    with pytest.raises(InvalidBet) as exc:
        unit.accept_bet(balances, Seat.SEAT1, 500)
    assert "chips" in exc.value.msg
    assert balances[Seat.SEAT1] == 300


def test_resolve_scenario_bet_100_mult_2():
    unit = ledger_unit()
    balances = {Seat.SEAT1: 10000}
    result = unit.resolve(balances, Seat.SEAT1, 100, 200)
    assert result.payout_total == 200
    assert result.profit == 100
    assert balances[Seat.SEAT1] == 10100
    assert result.balance == 10100
    assert result.reward is None


def test_debit_then_credit_matches_single_resolve():
    unit = ledger_unit()
    split = {Seat.SEAT2: 10000}
    unit.debit(split, Seat.SEAT2, 200)
    assert split[Seat.SEAT2] == 9800
    unit.credit(split, Seat.SEAT2, 500)
    assert split[Seat.SEAT2] == 10300


def test_reward_mode_never_touches_balances():
    unit = reward_unit(RngResolver(ScriptedSource([1])))
    balances = {}
    assert unit.accept_bet(balances, Seat.SEAT1, 10**9) == 500000
    result = unit.resolve(balances, Seat.SEAT1, 100, 200, ["tea", "cake"])
    assert result.reward == "cake"
    assert result.balance is None
    assert balances == {}
    unit.debit(balances, Seat.SEAT1, 100)
    unit.credit(balances, Seat.SEAT1, 250)
    assert balances == {}


def test_pick_reward_placeholder_on_empty_list():
    assert pick_reward([], RngResolver(), "(no reward)") == "(no reward)"


def test_pick_reward_is_uniform_over_entries():
    rng = RngResolver(random.Random(7))
    picks = {pick_reward(["a", "b", "c"], rng, "-") for _ in range(300)}
    assert picks == {"a", "b", "c"}


def test_clean_reward_list_from_text_and_list():
    assert clean_reward_list("  coffee \n\n  \ncake", 50, 64) == ["coffee", "cake"]
    assert clean_reward_list(["a", "", None, " b "], 50, 64) == ["a", "b"]
    assert clean_reward_list(None, 50, 64) == []
    assert clean_reward_list(["x" * 100], 50, 10) == ["x" * 10]
    assert len(clean_reward_list([str(i) for i in range(80)], 50, 64)) == 50

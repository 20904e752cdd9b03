import random
from collections import Counter

import pytest

from services.rng_service import RngResolver
from services.wheel_service import WHEEL_SEGMENTS
from tests.conftest import ScriptedSource


def test_weighted_pick_walks_segments_until_remainder_goes_negative():
    source = ScriptedSource([0, 19, 20, 99])
    rng = RngResolver(source)
    weights = [0, 20, 20, 20, 20, 20]

    assert rng.weighted_pick(weights) == 1
    assert rng.weighted_pick(weights) == 1
    assert rng.weighted_pick(weights) == 2
    assert rng.weighted_pick(weights) == 5
    # 每次都在 [0, totalWeight) 內抽
    assert source.calls == [100, 100, 100, 100]


def test_zero_weight_segment_is_never_selected():
    rng = RngResolver()
    picks = Counter(rng.weighted_pick(WHEEL_SEGMENTS) for _ in range(2000))
    assert picks[0] == 0
    assert set(picks) <= {1, 2, 3, 4, 5}


def test_weighted_pick_accepts_segment_objects():
    rng = RngResolver(ScriptedSource([45]))
    assert rng.weighted_pick(WHEEL_SEGMENTS) == 3


def test_weighted_pick_roughly_matches_declared_weights():
    rng = RngResolver(random.Random(1234))
    picks = Counter(rng.weighted_pick([1, 3]) for _ in range(8000))
    share = picks[1] / 8000
    assert 0.70 < share < 0.80


def test_uniform_stays_in_range():
    rng = RngResolver()
    draws = {rng.uniform(37) for _ in range(3000)}
    assert min(draws) >= 0 and max(draws) <= 36


def test_invalid_ranges_raise():
    rng = RngResolver()
    with pytest.raises(ValueError):
        rng.uniform(0)
    with pytest.raises(ValueError):
        rng.weighted_pick([0, 0])
    with pytest.raises(ValueError):
        rng.weighted_pick([5, -1])


def test_default_source_is_system_random():
    assert isinstance(RngResolver().source, random.SystemRandom)

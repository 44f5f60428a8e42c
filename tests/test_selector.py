from __future__ import annotations

import random
from collections import Counter
from dataclasses import dataclass

import pytest

from clubwheel.errors import NoPrizesAvailable
from clubwheel.services.selector import qualifying_pool, select_prize


@dataclass
class FakePrize:
    name: str
    drop_chance: float
    slot_index: int
    is_active: bool = True
    total_quantity: int | None = None
    remaining_quantity: int | None = None


def test_frequencies_converge_to_weights():
    prizes = [
        FakePrize("big", 5, 0),
        FakePrize("mid", 25, 1),
        FakePrize("small", 70, 2),
        FakePrize("odd", 12.5, 3),
    ]
    total = sum(p.drop_chance for p in prizes)
    rng = random.Random(12345)
    n = 100_000

    counts = Counter(select_prize(prizes, rng).name for _ in range(n))

    for p in prizes:
        assert counts[p.name] / n == pytest.approx(p.drop_chance / total, abs=0.01)


def test_weights_do_not_need_to_sum_to_100():
    prizes = [FakePrize("a", 1, 0), FakePrize("b", 3, 1)]
    rng = random.Random(1)
    n = 100_000
    counts = Counter(select_prize(prizes, rng).name for _ in range(n))
    assert counts["b"] / n == pytest.approx(0.75, abs=0.01)


def test_exhausted_prize_never_selected_while_others_remain():
    prizes = [
        FakePrize("gone", 99, 0, total_quantity=5, remaining_quantity=0),
        FakePrize("left", 1, 1),
    ]
    rng = random.Random(3)
    assert all(select_prize(prizes, rng).name == "left" for _ in range(2_000))


def test_falls_back_to_all_active_when_nothing_in_stock():
    prizes = [
        FakePrize("a", 10, 0, total_quantity=1, remaining_quantity=0),
        FakePrize("b", 10, 1, total_quantity=1, remaining_quantity=0),
    ]
    pool = qualifying_pool(prizes)
    assert [p.name for p in pool] == ["a", "b"]
    assert select_prize(prizes, random.Random(0)).name in {"a", "b"}


def test_zero_total_weight_returns_first_by_slot():
    prizes = [FakePrize("second", 0, 4), FakePrize("first", 0, 2)]
    for seed in range(20):
        assert select_prize(prizes, random.Random(seed)).name == "first"


def test_inactive_prizes_are_ignored():
    prizes = [FakePrize("off", 100, 0, is_active=False), FakePrize("on", 1, 1)]
    assert select_prize(prizes, random.Random(0)).name == "on"


def test_empty_active_set_raises():
    with pytest.raises(NoPrizesAvailable):
        select_prize([FakePrize("off", 100, 0, is_active=False)])
    with pytest.raises(NoPrizesAvailable):
        select_prize([])


def test_cumulative_order_follows_slot_index():
    class EdgeRng:
        def __init__(self, value: float) -> None:
            self.value = value

        def random(self) -> float:
            return self.value

    prizes = [FakePrize("c", 10, 7), FakePrize("a", 10, 1), FakePrize("b", 10, 3)]
    # total 30: r=0 -> slot 1, r=18 -> slot 3, r=29.7 -> slot 7
    assert select_prize(prizes, EdgeRng(0.0)).name == "a"
    assert select_prize(prizes, EdgeRng(0.6)).name == "b"
    assert select_prize(prizes, EdgeRng(0.99)).name == "c"

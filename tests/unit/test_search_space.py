"""Unit tests for the optimizer search spaces."""

import itertools

import pytest

from backtester.backtest.search_space import EmptySearchSpace, GridSearch, Params, RandomSearch


def test_grid_enumerates_cartesian_product_in_order():
    space = GridSearch()
    space.add_range("fast", 1, 3)
    space.add("slow", [10, 20])
    points = [dict(p) for p in space]
    assert len(space) == 6
    assert points == [
        {"fast": 1, "slow": 10},
        {"fast": 1, "slow": 20},
        {"fast": 2, "slow": 10},
        {"fast": 2, "slow": 20},
        {"fast": 3, "slow": 10},
        {"fast": 3, "slow": 20},
    ]
    assert space.names == ["fast", "slow"]


def test_grid_range_with_step_is_inclusive():
    space = GridSearch()
    space.add_range("x", 0, 10, 5)
    assert [p["x"] for p in space] == [0, 5, 10]


def test_grid_rejects_empty_values():
    space = GridSearch()
    with pytest.raises(ValueError):
        space.add("x", [])
    with pytest.raises(ValueError):
        space.add_range("x", 1, 5, 0)


def test_empty_space_has_one_point():
    points = list(EmptySearchSpace())
    assert points == [Params()]
    assert len(EmptySearchSpace()) == 1


def test_random_search_with_seed_is_replayable():
    space = RandomSearch(size=5, seed=7)
    space.add("window", 2, 20)
    space.add("threshold", 0.1, 0.5)
    space.add_choice("mode", ["long", "short"])
    first = list(space)
    second = list(space)
    assert first == second
    assert len(first) == len(space) == 5
    for params in first:
        assert isinstance(params["window"], int)
        assert 2 <= params["window"] <= 20
        assert 0.1 <= params["threshold"] <= 0.5
        assert params["mode"] in {"long", "short"}


def test_unbounded_random_search():
    space = RandomSearch(seed=1)
    space.add("x", 0, 100)
    assert not space.is_finite
    assert len(list(itertools.islice(space, 50))) == 50
    with pytest.raises(TypeError):
        len(space)


def test_params_accessors():
    params = Params(fast="5", ratio=1, name=3)
    assert params.get_int("fast") == 5
    assert params.get_float("ratio") == 1.0
    assert params.get_str("name") == "3"

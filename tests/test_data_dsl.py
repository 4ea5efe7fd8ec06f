from __future__ import annotations

import random
import re

import pytest

from pyedunit.dsl import DataGenerator, assert_equals, cases, repr_value, t


@pytest.fixture()
def data() -> DataGenerator:
    return DataGenerator(seed=1234)


def test_s_concatenates_one_match_per_pattern(data: DataGenerator) -> None:
    for _ in range(50):
        value = data.s("[A-Z]{2}", "-", "[0-9]{3}")
        assert re.fullmatch(r"[A-Z]{2}-[0-9]{3}", value)


def test_s_range_respects_length_bounds(data: DataGenerator) -> None:
    lengths = set()
    for _ in range(200):
        value = data.s_range(2, 4)
        assert re.fullmatch(r"[a-zA-Z]{2,4}", value)
        lengths.add(len(value))
    assert lengths == {2, 3, 4}

    with pytest.raises(ValueError):
        data.s_range(5, 1)


def test_c_returns_a_single_matching_character(data: DataGenerator) -> None:
    for _ in range(50):
        assert re.fullmatch(r"[xyz]", data.c("[xyz]"))
        assert re.fullmatch(r"[a-zA-Z]", data.c())


def test_i_bounds(data: DataGenerator) -> None:
    assert all(0 <= data.i(5) < 5 for _ in range(200))
    assert all(-3 <= data.i(-3, 3) < 3 for _ in range(200))
    assert all(-(2**31) <= data.i() < 2**31 for _ in range(50))
    assert {data.i(2, 4) for _ in range(200)} == {2, 3}
    with pytest.raises(TypeError):
        data.i(1, 2, 3)


def test_d_bounds(data: DataGenerator) -> None:
    assert all(0.0 <= data.d() < 1.0 for _ in range(100))
    assert all(0.0 <= data.d(2.5) < 2.5 for _ in range(100))
    assert all(-1.0 <= data.d(-1.0, 1.0) < 1.0 for _ in range(100))


def test_b_produces_both_values(data: DataGenerator) -> None:
    assert {data.b() for _ in range(100)} == {True, False}


def test_l_length_is_inclusive(data: DataGenerator) -> None:
    lengths = {len(data.l(1, 3, lambda: data.i(10))) for _ in range(200)}
    assert lengths == {1, 2, 3}
    assert data.l_fixed(4, lambda: "x") == ["x", "x", "x", "x"]
    assert data.l(0, 0, data.b) == []


def test_same_seed_same_sequence() -> None:
    first = DataGenerator(seed=7)
    second = DataGenerator(random.Random(7))

    def draws(gen: DataGenerator) -> tuple:
        return gen.i(100), gen.s("[a-z]{4}"), gen.d(), gen.l(1, 5, gen.b)

    assert [draws(first) for _ in range(10)] == [draws(second) for _ in range(10)]


def test_t_arity_and_cases() -> None:
    assert t(1, 2) == (1, 2)
    assert len(t(*range(8))) == 8
    with pytest.raises(TypeError):
        t(1)
    with pytest.raises(TypeError):
        t(*range(9))
    assert cases(t(1, "a"), t(2, "b")) == [(1, "a"), (2, "b")]


def test_repr_value_makes_whitespace_visible() -> None:
    assert repr_value("a b\tc\n") == '"a⎵b⇥c↩\n"'
    assert repr_value([1, "x"]) == '[1, "x"]'
    assert repr_value(t(1, 2)) == "(1, 2)"
    assert repr_value({"b": 2, "a": 1}) == '{"a": 1, "b": 2}'


def test_assert_equals_ignores_mapping_order() -> None:
    assert assert_equals({"a": 1, "b": 2}, {"b": 2, "a": 1})
    assert assert_equals(3, "3")
    assert not assert_equals([1, 2], [2, 1])
    assert not assert_equals({"a": 1}, {"a": 2})

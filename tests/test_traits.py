"""Tests for trait modifier resolution."""

import pytest

from cognition_kernel.models.goals import ModifierEffect
from cognition_kernel.traits.modifiers import goal_keys, input_keys, resolve_modifiers


def _make_matrix():
    return {
        "brave": {
            "Goal:safety": ModifierEffect(multiplier=0.5),
            "Goal:*": ModifierEffect(bonus=1.0),
        },
        "anxious": {
            "Goal:safety": ModifierEffect(multiplier=1.5, bonus=0.4),
        },
        "stoic": {
            "Input:*": ModifierEffect(multiplier=0.8),
        },
    }


class TestResolveModifiers:
    def test_interpolates_by_strength(self):
        res = resolve_modifiers(goal_keys("safety"), {"anxious": 0.5}, _make_matrix())
        assert res.multiplier == pytest.approx(1.25)
        assert res.bonus == pytest.approx(0.2)
        assert res.apply(2.0) == pytest.approx(2.7)

    def test_zero_strength_is_identity(self):
        res = resolve_modifiers(goal_keys("safety"), {"anxious": 0.0}, _make_matrix())
        assert res.multiplier == pytest.approx(1.0)
        assert res.bonus == pytest.approx(0.0)

    def test_first_matching_key_applies_once(self):
        res = resolve_modifiers(goal_keys("safety"), {"brave": 1.0}, _make_matrix())
        assert res.multiplier == pytest.approx(0.5)
        assert res.bonus == pytest.approx(0.0)
        assert [e.key for e in res.breakdown] == ["Goal:safety"]

    def test_wildcard_fallback(self):
        res = resolve_modifiers(goal_keys("rest"), {"brave": 1.0}, _make_matrix())
        assert res.bonus == pytest.approx(1.0)
        assert res.breakdown[0].key == "Goal:*"

    def test_multipliers_compose_by_product_bonuses_by_sum(self):
        res = resolve_modifiers(goal_keys("safety"), {"brave": 1.0, "anxious": 1.0}, _make_matrix())
        assert res.multiplier == pytest.approx(0.75)
        assert res.bonus == pytest.approx(0.4)
        assert len(res.breakdown) == 2

    def test_unmatched_traits_reported(self):
        res = resolve_modifiers(input_keys("danger"), {"brave": 1.0, "curious": 0.7, "stoic": 1.0}, _make_matrix())
        assert res.unmatched == ["brave", "curious"]
        assert res.multiplier == pytest.approx(0.8)

    def test_no_traits(self):
        res = resolve_modifiers(goal_keys("safety"), {}, _make_matrix())
        assert res.is_identity()
        assert res.apply(0.3) == pytest.approx(0.3)

    def test_strength_clamped(self):
        res = resolve_modifiers(goal_keys("safety"), {"anxious": 3.0}, _make_matrix())
        assert res.multiplier == pytest.approx(1.5)

from __future__ import annotations

import pytest

from promorang.sampling.visibility import visibility_rules

ADVANCED_FLAGS = (
    "show_analytics",
    "show_forecasting",
    "show_optimization",
    "show_targeting",
    "show_scaling",
    "show_multiple_campaigns",
)


def test_new_merchant_can_only_create_activation() -> None:
    rules = visibility_rules("NEW")

    assert rules["create_activation"] is True
    assert rules["view_participations"] is False
    assert rules["view_redemptions"] is False
    assert rules["view_basic_metrics"] is False
    assert not any(rules[flag] for flag in ADVANCED_FLAGS)
    assert rules["show_upgrade_options"] is False
    assert rules["show_paid_features"] is False


def test_sampling_merchant_sees_basic_views_but_no_advanced_tools() -> None:
    rules = visibility_rules("SAMPLING")

    assert rules["create_activation"] is False
    assert rules["view_participations"] is True
    assert rules["view_basic_metrics"] is True
    assert not any(rules[flag] for flag in ADVANCED_FLAGS)
    assert rules["show_upgrade_options"] is False


@pytest.mark.parametrize(
    ("state", "upgrade_options", "paid_features"),
    [("GRADUATED", True, False), ("PAID", False, True)],
)
def test_post_sampling_states_unlock_advanced_tools(
    state: str,
    upgrade_options: bool,
    paid_features: bool,
) -> None:
    rules = visibility_rules(state)

    assert rules["create_activation"] is False
    assert all(rules[flag] for flag in ADVANCED_FLAGS)
    assert rules["show_upgrade_options"] is upgrade_options
    assert rules["show_paid_features"] is paid_features


def test_visibility_rules_expose_fixed_flag_set() -> None:
    assert set(visibility_rules("NEW")) == set(visibility_rules("PAID"))
    assert len(visibility_rules("NEW")) == 12

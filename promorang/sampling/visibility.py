from __future__ import annotations

from promorang.sampling.constants import STATE_GRADUATED, STATE_NEW, STATE_PAID, STATE_SAMPLING


def visibility_rules(state: str) -> dict[str, bool]:
    """Dashboard feature flags for a merchant state; advanced tools stay hidden until graduation."""
    is_new = state == STATE_NEW
    advanced = not is_new and state != STATE_SAMPLING
    return {
        "create_activation": is_new,
        "view_participations": not is_new,
        "view_redemptions": not is_new,
        "view_basic_metrics": not is_new,
        "show_analytics": advanced,
        "show_forecasting": advanced,
        "show_optimization": advanced,
        "show_targeting": advanced,
        "show_scaling": advanced,
        "show_multiple_campaigns": advanced,
        "show_upgrade_options": state == STATE_GRADUATED,
        "show_paid_features": state == STATE_PAID,
    }

from __future__ import annotations

from datetime import timedelta

import pytest

from promorang.sampling.metrics import days_remaining, get_sampling_metrics
from tests.sampling.sampling_fixtures import NOW_UTC


def test_days_remaining_rounds_up_partial_days() -> None:
    assert days_remaining(NOW_UTC + timedelta(days=2, hours=1), NOW_UTC) == 3
    assert days_remaining(NOW_UTC + timedelta(days=2), NOW_UTC) == 2
    assert days_remaining(NOW_UTC - timedelta(hours=1), NOW_UTC) == 0


@pytest.mark.asyncio
async def test_no_activation_has_no_metrics(store, session) -> None:
    assert await get_sampling_metrics(session, "adv-1", now_utc=NOW_UTC) is None


@pytest.mark.asyncio
async def test_metrics_summarize_latest_activation(store, session) -> None:
    store.add_profile("adv-1", state="SAMPLING")
    activation = store.add_activation(
        "adv-1",
        max_redemptions=10,
        current_redemptions=2,
        include_in_events=True,
    )
    store.add_participation(activation, user_id="user-1", action_type="claim", verified=True)
    store.add_participation(activation, user_id="user-1", action_type="share", redeemed=True)
    store.add_participation(activation, user_id="user-2", user_maturity_state=4, redeemed=True)

    metrics = await get_sampling_metrics(session, "adv-1", now_utc=NOW_UTC)

    assert metrics is not None
    assert metrics.activation_id == activation.id
    assert metrics.redemption_rate == pytest.approx(0.2)
    assert metrics.total_participations == 3
    assert metrics.unique_participants == 2
    assert metrics.verified_actions == 1
    assert metrics.redeemed_participations == 2
    assert metrics.entry_user_participants == 2
    assert metrics.entry_user_ratio == pytest.approx(2 / 3)
    assert metrics.days_remaining == 6
    assert metrics.surfaces == ["deals", "events"]
    assert metrics.graduation_triggered is False


@pytest.mark.asyncio
async def test_storage_failure_hides_metrics(store, session) -> None:
    store.add_activation("adv-1")
    store.fail_metrics_reads = True

    assert await get_sampling_metrics(session, "adv-1", now_utc=NOW_UTC) is None

from __future__ import annotations

from datetime import timedelta
from uuid import uuid4

import pytest

from promorang.sampling.errors import (
    MerchantStateConflictError,
    SamplingActivationInactiveError,
    SamplingValidationError,
)
from promorang.sampling.graduation import (
    check_graduation_triggers,
    request_graduation,
    resolve_graduation_trigger,
    upgrade_to_paid,
)
from promorang.sampling.types import GraduationMetrics, GraduationThresholds
from tests.sampling.sampling_fixtures import NOW_UTC

THRESHOLDS = GraduationThresholds(
    redemption_rate_threshold=0.30,
    verified_actions_threshold=25,
    entry_user_ratio_threshold=0.60,
)


def _metrics(**overrides) -> GraduationMetrics:
    values = {
        "redemption_rate": 0.0,
        "verified_actions": 0,
        "entry_user_participants": 0,
        "entry_user_ratio": 0.0,
        "window_expired": False,
    }
    values.update(overrides)
    return GraduationMetrics(**values)


def test_no_trigger_below_thresholds() -> None:
    assert resolve_graduation_trigger(_metrics(redemption_rate=0.29, verified_actions=24), THRESHOLDS) is None


def test_window_expiry_wins_over_other_triggers() -> None:
    metrics = _metrics(window_expired=True, redemption_rate=1.0, verified_actions=99)

    assert resolve_graduation_trigger(metrics, THRESHOLDS) == "window_expired"


def test_verified_actions_win_over_redemption_rate() -> None:
    metrics = _metrics(redemption_rate=0.5, verified_actions=25)

    assert resolve_graduation_trigger(metrics, THRESHOLDS) == "verified_actions_threshold"


def test_redemption_rate_threshold_is_inclusive() -> None:
    assert resolve_graduation_trigger(_metrics(redemption_rate=0.30), THRESHOLDS) == (
        "redemption_rate_threshold"
    )


def test_entry_user_ratio_does_not_gate_graduation() -> None:
    metrics = _metrics(entry_user_participants=10, entry_user_ratio=1.0)

    assert resolve_graduation_trigger(metrics, THRESHOLDS) is None


@pytest.mark.parametrize("state", ["NEW", "GRADUATED", "PAID"])
@pytest.mark.asyncio
async def test_only_sampling_merchants_are_evaluated(store, session, state: str) -> None:
    store.add_profile("adv-1", state=state)
    activation = store.add_activation("adv-1", current_redemptions=10, max_redemptions=10)

    result = await check_graduation_triggers(
        session,
        advertiser_id="adv-1",
        activation_id=activation.id,
        now_utc=NOW_UTC,
    )

    assert (result.graduated, result.reason) == (False, None)
    assert activation.graduation_triggered is False


@pytest.mark.asyncio
async def test_missing_activation_does_not_graduate(store, session) -> None:
    store.add_profile("adv-1", state="SAMPLING")

    result = await check_graduation_triggers(
        session,
        advertiser_id="adv-1",
        activation_id=uuid4(),
        now_utc=NOW_UTC,
    )

    assert result.graduated is False
    assert store.state_of("adv-1") == "SAMPLING"


@pytest.mark.asyncio
async def test_no_trigger_leaves_everything_unchanged(store, session) -> None:
    store.add_profile("adv-1", state="SAMPLING")
    activation = store.add_activation("adv-1", max_redemptions=10, current_redemptions=2)

    result = await check_graduation_triggers(
        session,
        advertiser_id="adv-1",
        activation_id=activation.id,
        now_utc=NOW_UTC,
    )

    assert result.graduated is False
    assert activation.status == "active"
    assert store.transitions == []


@pytest.mark.asyncio
async def test_graduation_records_metrics_in_transition(store, session) -> None:
    store.add_profile("adv-1", state="SAMPLING")
    activation = store.add_activation("adv-1", max_redemptions=10, current_redemptions=4)
    store.add_participation(activation, user_id="user-1", user_maturity_state=1, verified=True)
    store.add_participation(activation, user_id="user-2", user_maturity_state=5)

    result = await check_graduation_triggers(
        session,
        advertiser_id="adv-1",
        activation_id=activation.id,
        now_utc=NOW_UTC,
    )

    assert (result.graduated, result.reason) == (True, "redemption_rate_threshold")
    assert activation.graduation_triggered is True
    assert activation.graduation_triggered_at == NOW_UTC
    assert activation.status == "completed"
    [transition] = store.transitions_for("adv-1")
    assert transition.to_state == "GRADUATED"
    assert transition.trigger_metadata == {
        "activation_id": str(activation.id),
        "redemption_rate": pytest.approx(0.4),
        "verified_actions": 1,
        "entry_user_participants": 1,
        "entry_user_ratio": pytest.approx(0.5),
    }


@pytest.mark.asyncio
async def test_repeated_checks_write_one_transition(store, session) -> None:
    store.add_profile("adv-1", state="SAMPLING")
    activation = store.add_activation("adv-1", max_redemptions=10, current_redemptions=5)

    first = await check_graduation_triggers(
        session,
        advertiser_id="adv-1",
        activation_id=activation.id,
        now_utc=NOW_UTC,
    )
    second = await check_graduation_triggers(
        session,
        advertiser_id="adv-1",
        activation_id=activation.id,
        now_utc=NOW_UTC,
    )

    assert first.graduated is True
    assert second.graduated is False
    assert len(store.transitions_for("adv-1")) == 1


@pytest.mark.asyncio
async def test_already_triggered_activation_reports_stored_reason(store, session) -> None:
    store.add_profile("adv-1", state="SAMPLING")
    activation = store.add_activation(
        "adv-1",
        graduation_triggered=True,
        graduation_reason="verified_actions_threshold",
    )

    result = await check_graduation_triggers(
        session,
        advertiser_id="adv-1",
        activation_id=activation.id,
        now_utc=NOW_UTC,
    )

    assert (result.graduated, result.reason) == (True, "verified_actions_threshold")
    assert store.transitions == []


@pytest.mark.asyncio
async def test_expired_window_graduates_and_keeps_expired_status(store, session) -> None:
    store.add_profile("adv-1", state="SAMPLING")
    activation = store.add_activation(
        "adv-1",
        status="expired",
        starts_at=NOW_UTC - timedelta(days=8),
        current_redemptions=9,
        max_redemptions=10,
    )

    result = await check_graduation_triggers(
        session,
        advertiser_id="adv-1",
        activation_id=activation.id,
        now_utc=NOW_UTC,
    )

    assert result.reason == "window_expired"
    assert activation.status == "expired"
    assert store.state_of("adv-1") == "GRADUATED"


@pytest.mark.asyncio
async def test_stored_thresholds_are_applied(store, session) -> None:
    store.config["graduation_triggers"] = {"verified_actions_threshold": 2}
    store.add_profile("adv-1", state="SAMPLING")
    activation = store.add_activation("adv-1")
    store.add_participation(activation, user_id="user-1", verified=True)
    store.add_participation(activation, user_id="user-2", verified=True)

    result = await check_graduation_triggers(
        session,
        advertiser_id="adv-1",
        activation_id=activation.id,
        now_utc=NOW_UTC,
    )

    assert result.reason == "verified_actions_threshold"


@pytest.mark.asyncio
async def test_merchant_request_graduates_immediately(store, session) -> None:
    store.add_profile("adv-1", state="SAMPLING")
    activation = store.add_activation("adv-1")

    result = await request_graduation(
        session,
        advertiser_id="adv-1",
        request_type="targeting",
        now_utc=NOW_UTC,
    )

    assert result.reason == "merchant_request_targeting"
    assert activation.status == "completed"
    assert activation.graduation_triggered is True
    assert activation.graduation_reason == "merchant_request_targeting"
    [transition] = store.transitions_for("adv-1")
    assert transition.trigger_reason == "merchant_request_targeting"
    assert transition.trigger_metadata == {
        "activation_id": str(activation.id),
        "request_type": "targeting",
    }
    assert store.state_of("adv-1") == "GRADUATED"


@pytest.mark.asyncio
async def test_merchant_request_requires_sampling_state(store, session) -> None:
    store.add_profile("adv-1", state="GRADUATED")

    with pytest.raises(MerchantStateConflictError) as exc_info:
        await request_graduation(
            session,
            advertiser_id="adv-1",
            request_type="analytics",
            now_utc=NOW_UTC,
        )

    assert str(exc_info.value) == "Not in sampling state"


@pytest.mark.asyncio
async def test_merchant_request_requires_active_activation(store, session) -> None:
    store.add_profile("adv-1", state="SAMPLING")
    store.add_activation("adv-1", status="expired")

    with pytest.raises(SamplingActivationInactiveError) as exc_info:
        await request_graduation(
            session,
            advertiser_id="adv-1",
            request_type="scaling",
            now_utc=NOW_UTC,
        )

    assert str(exc_info.value) == "No active sampling activation found"
    assert store.state_of("adv-1") == "SAMPLING"


@pytest.mark.asyncio
async def test_unknown_request_type_is_rejected(store, session) -> None:
    store.add_profile("adv-1", state="SAMPLING")

    with pytest.raises(SamplingValidationError):
        await request_graduation(
            session,
            advertiser_id="adv-1",
            request_type="free_money",
            now_utc=NOW_UTC,
        )


@pytest.mark.asyncio
async def test_upgrade_moves_graduated_merchant_to_paid(store, session) -> None:
    store.add_profile("adv-1", state="GRADUATED")

    await upgrade_to_paid(
        session,
        advertiser_id="adv-1",
        plan_details={"plan_id": "growth", "seats": 3},
        now_utc=NOW_UTC,
    )

    assert store.state_of("adv-1") == "PAID"
    assert store.profiles["adv-1"].paid_at == NOW_UTC
    [transition] = store.transitions_for("adv-1")
    assert transition.trigger_reason == "upgraded_to_paid"
    assert transition.trigger_metadata == {"plan_id": "growth", "seats": 3}


@pytest.mark.parametrize("state", ["NEW", "SAMPLING", "PAID"])
@pytest.mark.asyncio
async def test_upgrade_requires_graduated_state(store, session, state: str) -> None:
    store.add_profile("adv-1", state=state)

    with pytest.raises(MerchantStateConflictError) as exc_info:
        await upgrade_to_paid(session, advertiser_id="adv-1", now_utc=NOW_UTC)

    assert str(exc_info.value) == "Must be in GRADUATED state to upgrade"
    assert store.state_of("adv-1") == state

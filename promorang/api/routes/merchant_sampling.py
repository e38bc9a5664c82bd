from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from typing import Any

from fastapi import APIRouter, Request

from promorang.db.session import SessionLocal
from promorang.sampling.activation import check_eligibility, create_activation
from promorang.sampling.config import get_sampling_config
from promorang.sampling.constants import (
    CONFIG_KEY_LIMITS,
    DEFAULT_VERIFICATION_METHOD,
    GRADUATION_REQUEST_TYPES,
    STATE_GRADUATED,
    VALID_SURFACES,
)
from promorang.sampling.graduation import request_graduation, upgrade_to_paid
from promorang.sampling.metrics import get_sampling_metrics
from promorang.sampling.participation import (
    record_participation,
    record_redemption,
    verify_participation,
)
from promorang.sampling.state import get_merchant_state
from promorang.sampling.surfaces import get_active_for_surface
from promorang.sampling.types import ActivationDraft
from promorang.sampling.visibility import visibility_rules

from .merchant_sampling_helpers import (
    MerchantSamplingApiError,
    activation_response,
    get_cache,
    metrics_response,
    participation_response,
    profile_response,
    require_user_id,
    sampling_errors,
    surface_activation_response,
)
from .merchant_sampling_models import (
    ActivationCreatedData,
    ActivationCreatedResponse,
    ActivationCreateRequest,
    ActivationMetricsData,
    ActivationMetricsResponse,
    EligibilityData,
    EligibilityResponse,
    GraduationOptionResponse,
    GraduationOptionsData,
    GraduationOptionsResponse,
    GraduationRequest,
    GraduationRequestedData,
    GraduationRequestedResponse,
    MerchantStateData,
    MerchantStateResponse,
    MessageData,
    NextStepResponse,
    ParticipateRequest,
    ParticipationData,
    ParticipationEnvelopeResponse,
    RedeemRequest,
    SamplingErrorResponse,
    SurfaceActivationsData,
    SurfaceActivationsResponse,
    UpgradeRequest,
    UpgradeResponse,
    VerifyRequest,
)

router = APIRouter(
    prefix="/api/merchant-sampling",
    tags=["merchant-sampling"],
    responses={
        400: {"model": SamplingErrorResponse},
        401: {"model": SamplingErrorResponse},
        404: {"model": SamplingErrorResponse},
        500: {"model": SamplingErrorResponse},
    },
)

ACTIVATION_CREATED_MESSAGE = "Sampling activation created successfully. Your promotion is now live!"
GRADUATED_MESSAGE = "You have graduated from the sampling program. Choose your next step."
UPGRADED_MESSAGE = "Welcome to Promorang! Your paid features are now unlocked."
GRADUATION_OPTIONS_UNAVAILABLE_MESSAGE = "Graduation options only available after sampling"

GRADUATION_NEXT_STEPS: tuple[dict[str, str], ...] = (
    {
        "id": "walk_away",
        "label": "Walk away (no penalty)",
        "description": "Thank you for trying Promorang!",
    },
    {
        "id": "paid_activation",
        "label": "Run a paid activation",
        "description": "Same structure, higher limits",
    },
    {
        "id": "subscribe",
        "label": "Subscribe and scale",
        "description": "Unlock advanced tools",
    },
)
GRADUATION_OPTIONS: tuple[dict[str, str | None], ...] = (
    {
        "id": "walk_away",
        "label": "Walk Away",
        "description": "No penalty, no pressure. Thank you for trying Promorang!",
        "action": None,
    },
    {
        "id": "paid_activation",
        "label": "Run a Paid Activation",
        "description": "Same structure as sampling, but with higher limits and guaranteed reach.",
        "action": "/advertiser/campaigns/new",
    },
    {
        "id": "subscribe",
        "label": "Subscribe & Scale",
        "description": (
            "Unlock advanced tools: targeting, analytics, optimization, multiple campaigns."
        ),
        "action": "/advertiser/subscribe",
    },
)


@router.get("/state", response_model=MerchantStateResponse)
async def get_state(request: Request) -> MerchantStateResponse:
    advertiser_id = require_user_id(request)
    with sampling_errors("Failed to get merchant state", operation="get_state"):
        async with SessionLocal.begin() as session:
            view = await get_merchant_state(session, advertiser_id)
            profile = profile_response(view.profile)

    return MerchantStateResponse(
        data=MerchantStateData(
            merchant_state=view.state,
            profile=profile,
            visibility=visibility_rules(view.state),
        )
    )


@router.get("/eligibility", response_model=EligibilityResponse)
async def get_eligibility(request: Request) -> EligibilityResponse:
    advertiser_id = require_user_id(request)
    cache = get_cache(request)
    with sampling_errors("Failed to check eligibility", operation="get_eligibility"):
        async with SessionLocal.begin() as session:
            eligibility = await check_eligibility(session, advertiser_id, cache=cache)
            limits = await get_sampling_config(session, CONFIG_KEY_LIMITS, cache=cache)

    return EligibilityResponse(
        data=EligibilityData(allowed=eligibility.allowed, reason=eligibility.reason, limits=limits)
    )


@router.post("/activation", response_model=ActivationCreatedResponse)
async def post_activation(
    request: Request,
    payload: ActivationCreateRequest | None = None,
) -> ActivationCreatedResponse:
    advertiser_id = require_user_id(request)
    payload = payload or ActivationCreateRequest()
    if not payload.name or not payload.value_type or not payload.value_amount:
        raise MerchantSamplingApiError(400, "Missing required fields: name, value_type, value_amount")

    draft = ActivationDraft(
        name=payload.name,
        description=payload.description,
        value_type=payload.value_type,
        value_amount=payload.value_amount,
        value_unit=payload.value_unit,
        max_redemptions=payload.max_redemptions,
        duration_days=payload.duration_days,
        include_in_deals=payload.include_in_deals,
        include_in_events=payload.include_in_events,
        include_in_post_proof=payload.include_in_post_proof,
    )
    now_utc = datetime.now(timezone.utc)
    with sampling_errors("Failed to create sampling activation", operation="create_activation"):
        async with SessionLocal.begin() as session:
            activation = await create_activation(
                session,
                advertiser_id,
                draft,
                now_utc=now_utc,
                cache=get_cache(request),
            )
            activation_payload = activation_response(activation)

    return ActivationCreatedResponse(
        data=ActivationCreatedData(
            activation=activation_payload,
            message=ACTIVATION_CREATED_MESSAGE,
        )
    )


@router.get("/activation", response_model=ActivationMetricsResponse)
async def get_activation(request: Request) -> ActivationMetricsResponse:
    advertiser_id = require_user_id(request)
    now_utc = datetime.now(timezone.utc)
    with sampling_errors("Failed to get activation", operation="get_activation"):
        async with SessionLocal.begin() as session:
            metrics = await get_sampling_metrics(session, advertiser_id, now_utc=now_utc)

    return ActivationMetricsResponse(
        data=ActivationMetricsData(
            has_activation=metrics is not None,
            metrics=metrics_response(metrics),
        )
    )


@router.post("/participate", response_model=ParticipationEnvelopeResponse)
async def post_participate(
    request: Request,
    payload: ParticipateRequest | None = None,
) -> ParticipationEnvelopeResponse:
    user_id = require_user_id(request)
    payload = payload or ParticipateRequest()
    if payload.activation_id is None or not payload.action_type:
        raise MerchantSamplingApiError(400, "Missing required fields: activation_id, action_type")

    now_utc = datetime.now(timezone.utc)
    with sampling_errors("Failed to record participation", operation="record_participation"):
        async with SessionLocal.begin() as session:
            participation = await record_participation(
                session,
                activation_id=payload.activation_id,
                user_id=user_id,
                action_type=payload.action_type,
                user_maturity_state=payload.user_maturity_state or 0,
                metadata=payload.metadata or {},
                now_utc=now_utc,
                cache=get_cache(request),
            )
            participation_payload = participation_response(participation)

    return ParticipationEnvelopeResponse(
        data=ParticipationData(participation=participation_payload)
    )


@router.post("/verify", response_model=ParticipationEnvelopeResponse)
async def post_verify(
    request: Request,
    payload: VerifyRequest | None = None,
) -> ParticipationEnvelopeResponse:
    require_user_id(request)
    payload = payload or VerifyRequest()
    if payload.participation_id is None:
        raise MerchantSamplingApiError(400, "Missing required field: participation_id")

    now_utc = datetime.now(timezone.utc)
    with sampling_errors("Failed to verify participation", operation="verify_participation"):
        async with SessionLocal.begin() as session:
            participation = await verify_participation(
                session,
                participation_id=payload.participation_id,
                verification_method=payload.verification_method or DEFAULT_VERIFICATION_METHOD,
                now_utc=now_utc,
                cache=get_cache(request),
            )
            participation_payload = participation_response(participation)

    return ParticipationEnvelopeResponse(
        data=ParticipationData(participation=participation_payload)
    )


@router.post("/redeem", response_model=ParticipationEnvelopeResponse)
async def post_redeem(
    request: Request,
    payload: RedeemRequest | None = None,
) -> ParticipationEnvelopeResponse:
    require_user_id(request)
    payload = payload or RedeemRequest()
    if payload.participation_id is None:
        raise MerchantSamplingApiError(400, "Missing required field: participation_id")

    now_utc = datetime.now(timezone.utc)
    with sampling_errors("Failed to record redemption", operation="record_redemption"):
        async with SessionLocal.begin() as session:
            participation = await record_redemption(
                session,
                participation_id=payload.participation_id,
                redemption_value=payload.redemption_value or Decimal("0"),
                now_utc=now_utc,
                cache=get_cache(request),
            )
            participation_payload = participation_response(participation)

    return ParticipationEnvelopeResponse(
        data=ParticipationData(participation=participation_payload)
    )


@router.post("/request-graduation", response_model=GraduationRequestedResponse)
async def post_request_graduation(
    request: Request,
    payload: GraduationRequest | None = None,
) -> GraduationRequestedResponse:
    advertiser_id = require_user_id(request)
    payload = payload or GraduationRequest()
    if payload.request_type not in GRADUATION_REQUEST_TYPES:
        raise MerchantSamplingApiError(
            400,
            "Invalid request_type",
            valid_types=list(GRADUATION_REQUEST_TYPES),
        )

    now_utc = datetime.now(timezone.utc)
    with sampling_errors("Failed to process graduation request", operation="request_graduation"):
        async with SessionLocal.begin() as session:
            await request_graduation(
                session,
                advertiser_id=advertiser_id,
                request_type=payload.request_type,
                now_utc=now_utc,
            )

    return GraduationRequestedResponse(
        data=GraduationRequestedData(
            message=GRADUATED_MESSAGE,
            next_steps=[NextStepResponse(**step) for step in GRADUATION_NEXT_STEPS],
        )
    )


@router.post("/upgrade", response_model=UpgradeResponse)
async def post_upgrade(
    request: Request,
    payload: UpgradeRequest | None = None,
) -> UpgradeResponse:
    advertiser_id = require_user_id(request)
    payload = payload or UpgradeRequest()
    plan_details: dict[str, Any] = {"plan_id": payload.plan_id, **(payload.plan_details or {})}

    now_utc = datetime.now(timezone.utc)
    with sampling_errors("Failed to upgrade", operation="upgrade_to_paid"):
        async with SessionLocal.begin() as session:
            await upgrade_to_paid(
                session,
                advertiser_id=advertiser_id,
                plan_details=plan_details,
                now_utc=now_utc,
            )

    return UpgradeResponse(data=MessageData(message=UPGRADED_MESSAGE))


@router.get("/active-for-surface/{surface}", response_model=SurfaceActivationsResponse)
async def get_active_sampling_for_surface(surface: str) -> SurfaceActivationsResponse:
    if surface not in VALID_SURFACES:
        raise MerchantSamplingApiError(
            400,
            "Invalid surface",
            valid_surfaces=list(VALID_SURFACES),
        )

    # Read on every request: a redemption can complete an activation at any moment.
    with sampling_errors("Failed to get active sampling", operation="active_for_surface"):
        async with SessionLocal.begin() as session:
            items = await get_active_for_surface(session, surface)
            activations = [surface_activation_response(item) for item in items]

    return SurfaceActivationsResponse(data=SurfaceActivationsData(activations=activations))


@router.get("/graduation-options", response_model=GraduationOptionsResponse)
async def get_graduation_options(request: Request) -> GraduationOptionsResponse:
    advertiser_id = require_user_id(request)
    now_utc = datetime.now(timezone.utc)
    with sampling_errors("Failed to get graduation options", operation="graduation_options"):
        async with SessionLocal.begin() as session:
            view = await get_merchant_state(session, advertiser_id)
            if view.state != STATE_GRADUATED:
                raise MerchantSamplingApiError(400, GRADUATION_OPTIONS_UNAVAILABLE_MESSAGE)
            metrics = await get_sampling_metrics(session, advertiser_id, now_utc=now_utc)

    return GraduationOptionsResponse(
        data=GraduationOptionsData(
            sampling_results=metrics_response(metrics),
            options=[GraduationOptionResponse(**option) for option in GRADUATION_OPTIONS],
        )
    )

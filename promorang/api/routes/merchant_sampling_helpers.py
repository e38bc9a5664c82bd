from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import asdict
from typing import Any

import structlog
from fastapi import Request
from sqlalchemy.exc import SQLAlchemyError

from promorang.core.cache import TTLCache
from promorang.core.config import get_settings
from promorang.db.models.advertiser_profiles import AdvertiserProfile
from promorang.db.models.sampling_activations import SamplingActivation
from promorang.db.models.sampling_participations import SamplingParticipation
from promorang.sampling.errors import (
    SamplingActivationNotFoundError,
    SamplingError,
    SamplingParticipationNotFoundError,
)
from promorang.sampling.types import SamplingMetrics, SurfaceActivation
from promorang.services.request_auth import resolve_authenticated_user_id

from .merchant_sampling_models import (
    ActivationResponse,
    AdvertiserProfileResponse,
    ParticipationResponse,
    SamplingMetricsResponse,
    SurfaceActivationResponse,
    SurfaceAdvertiserResponse,
)

logger = structlog.get_logger(__name__)

AUTH_REQUIRED_MESSAGE = "Authentication required"
NOT_FOUND_ERRORS: tuple[type[SamplingError], ...] = (
    SamplingActivationNotFoundError,
    SamplingParticipationNotFoundError,
)


class MerchantSamplingApiError(Exception):
    def __init__(self, status_code: int, message: str, **extra: Any) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.message = message
        self.extra = extra

    def as_content(self) -> dict[str, Any]:
        return {"success": False, "error": self.message, **self.extra}


def require_user_id(request: Request) -> str:
    user_id = resolve_authenticated_user_id(
        request,
        expected_token=get_settings().internal_api_token,
    )
    if user_id is None:
        raise MerchantSamplingApiError(401, AUTH_REQUIRED_MESSAGE)
    return user_id


def get_cache(request: Request) -> TTLCache | None:
    return getattr(request.app.state, "cache", None)


def error_from_domain(exc: SamplingError) -> MerchantSamplingApiError:
    status_code = 404 if isinstance(exc, NOT_FOUND_ERRORS) else 400
    return MerchantSamplingApiError(status_code, str(exc))


@contextmanager
def sampling_errors(failure_message: str, *, operation: str) -> Iterator[None]:
    """Translates domain errors to envelopes and hides storage failures behind a generic message."""
    try:
        yield
    except MerchantSamplingApiError:
        raise
    except SamplingError as exc:
        raise error_from_domain(exc) from exc
    except SQLAlchemyError as exc:
        logger.error(
            "merchant_sampling_storage_failed",
            operation=operation,
            error_type=type(exc).__name__,
            exc_info=True,
        )
        raise MerchantSamplingApiError(500, failure_message) from exc
    except Exception as exc:
        logger.exception("merchant_sampling_request_failed", operation=operation)
        raise MerchantSamplingApiError(500, failure_message) from exc


def profile_response(profile: AdvertiserProfile | None) -> AdvertiserProfileResponse | None:
    if profile is None:
        return None
    return AdvertiserProfileResponse(
        advertiser_id=profile.advertiser_id,
        company_name=profile.company_name,
        merchant_state=profile.merchant_state,
        sampling_started_at=profile.sampling_started_at,
        graduated_at=profile.graduated_at,
        paid_at=profile.paid_at,
    )


def _activation_fields(activation: SamplingActivation) -> dict[str, Any]:
    return {
        "id": activation.id,
        "advertiser_id": activation.advertiser_id,
        "name": activation.name,
        "description": activation.description,
        "value_type": activation.value_type,
        "value_amount": activation.value_amount,
        "value_unit": activation.value_unit,
        "max_redemptions": activation.max_redemptions,
        "current_redemptions": activation.current_redemptions,
        "duration_days": activation.duration_days,
        "starts_at": activation.starts_at,
        "expires_at": activation.expires_at,
        "status": activation.status,
        "include_in_deals": activation.include_in_deals,
        "include_in_events": activation.include_in_events,
        "include_in_post_proof": activation.include_in_post_proof,
        "promoshare_enabled": activation.promoshare_enabled,
        "social_shield_required": activation.social_shield_required,
        "graduation_triggered": activation.graduation_triggered,
        "graduation_reason": activation.graduation_reason,
        "graduation_triggered_at": activation.graduation_triggered_at,
        "created_at": activation.created_at,
        "updated_at": activation.updated_at,
    }


def activation_response(activation: SamplingActivation) -> ActivationResponse:
    return ActivationResponse(**_activation_fields(activation))


def surface_activation_response(item: SurfaceActivation) -> SurfaceActivationResponse:
    return SurfaceActivationResponse(
        **_activation_fields(item.activation),
        advertiser_profiles=SurfaceAdvertiserResponse(
            company_name=item.company_name,
            company_website=item.company_website,
        ),
    )


def participation_response(participation: SamplingParticipation) -> ParticipationResponse:
    return ParticipationResponse(
        id=participation.id,
        activation_id=participation.activation_id,
        user_id=participation.user_id,
        action_type=participation.action_type,
        user_maturity_state=participation.user_maturity_state,
        metadata=participation.action_metadata or {},
        verified=participation.verified,
        verified_at=participation.verified_at,
        verification_method=participation.verification_method,
        redeemed=participation.redeemed,
        redeemed_at=participation.redeemed_at,
        redemption_value=participation.redemption_value,
        created_at=participation.created_at,
        updated_at=participation.updated_at,
    )


def metrics_response(metrics: SamplingMetrics | None) -> SamplingMetricsResponse | None:
    if metrics is None:
        return None
    return SamplingMetricsResponse(**asdict(metrics))

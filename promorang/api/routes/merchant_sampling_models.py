from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field


class ActivationCreateRequest(BaseModel):
    name: str | None = Field(default=None, max_length=160)
    description: str | None = Field(default=None, max_length=2000)
    value_type: str | None = Field(default=None, max_length=16)
    value_amount: Decimal | None = Field(default=None, ge=0, max_digits=12, decimal_places=2)
    value_unit: str | None = Field(default=None, max_length=16)
    max_redemptions: int | None = Field(default=None, ge=1, le=1_000_000)
    duration_days: int | None = Field(default=None, ge=1, le=365)
    include_in_deals: bool | None = None
    include_in_events: bool | None = None
    include_in_post_proof: bool | None = None


class ParticipateRequest(BaseModel):
    activation_id: UUID | None = None
    action_type: str | None = Field(default=None, max_length=32)
    user_maturity_state: int | None = Field(default=None, ge=0, le=32767)
    metadata: dict[str, Any] | None = None


class VerifyRequest(BaseModel):
    participation_id: UUID | None = None
    verification_method: str | None = Field(default=None, max_length=32)


class RedeemRequest(BaseModel):
    participation_id: UUID | None = None
    redemption_value: Decimal | None = Field(default=None, ge=0, max_digits=12, decimal_places=2)


class GraduationRequest(BaseModel):
    request_type: str | None = None


class UpgradeRequest(BaseModel):
    plan_id: str | None = Field(default=None, max_length=64)
    plan_details: dict[str, Any] | None = None


class SamplingErrorResponse(BaseModel):
    success: bool = False
    error: str
    valid_types: list[str] | None = None
    valid_surfaces: list[str] | None = None


class AdvertiserProfileResponse(BaseModel):
    advertiser_id: str
    company_name: str | None = None
    merchant_state: str
    sampling_started_at: datetime | None = None
    graduated_at: datetime | None = None
    paid_at: datetime | None = None


class ActivationResponse(BaseModel):
    id: UUID
    advertiser_id: str
    name: str
    description: str | None = None
    value_type: str
    value_amount: float = Field(ge=0.0)
    value_unit: str
    max_redemptions: int = Field(ge=0)
    current_redemptions: int = Field(ge=0)
    duration_days: int = Field(ge=0)
    starts_at: datetime
    expires_at: datetime
    status: str
    include_in_deals: bool
    include_in_events: bool
    include_in_post_proof: bool
    promoshare_enabled: bool
    social_shield_required: bool
    graduation_triggered: bool
    graduation_reason: str | None = None
    graduation_triggered_at: datetime | None = None
    created_at: datetime
    updated_at: datetime


class SurfaceAdvertiserResponse(BaseModel):
    company_name: str | None = None
    company_website: str | None = None


class SurfaceActivationResponse(ActivationResponse):
    advertiser_profiles: SurfaceAdvertiserResponse


class ParticipationResponse(BaseModel):
    id: UUID
    activation_id: UUID
    user_id: str
    action_type: str
    user_maturity_state: int = Field(ge=0)
    metadata: dict[str, Any]
    verified: bool
    verified_at: datetime | None = None
    verification_method: str | None = None
    redeemed: bool
    redeemed_at: datetime | None = None
    redemption_value: float | None = None
    created_at: datetime
    updated_at: datetime


class SamplingMetricsResponse(BaseModel):
    activation_id: UUID
    advertiser_id: str
    name: str
    description: str | None = None
    value_type: str
    value_amount: float = Field(ge=0.0)
    value_unit: str
    status: str
    starts_at: datetime
    expires_at: datetime
    current_redemptions: int = Field(ge=0)
    max_redemptions: int = Field(ge=0)
    redemption_rate: float = Field(ge=0.0)
    total_participations: int = Field(ge=0)
    unique_participants: int = Field(ge=0)
    verified_actions: int = Field(ge=0)
    redeemed_participations: int = Field(ge=0)
    entry_user_participants: int = Field(ge=0)
    entry_user_ratio: float = Field(ge=0.0)
    days_remaining: int = Field(ge=0)
    graduation_triggered: bool
    graduation_reason: str | None = None
    graduation_triggered_at: datetime | None = None
    surfaces: list[str]


class NextStepResponse(BaseModel):
    id: str
    label: str
    description: str


class GraduationOptionResponse(NextStepResponse):
    action: str | None = None


class MerchantStateData(BaseModel):
    merchant_state: str
    profile: AdvertiserProfileResponse | None = None
    visibility: dict[str, bool]


class MerchantStateResponse(BaseModel):
    success: bool = True
    data: MerchantStateData


class EligibilityData(BaseModel):
    allowed: bool
    reason: str | None = None
    limits: dict[str, Any]


class EligibilityResponse(BaseModel):
    success: bool = True
    data: EligibilityData


class ActivationCreatedData(BaseModel):
    activation: ActivationResponse
    message: str


class ActivationCreatedResponse(BaseModel):
    success: bool = True
    data: ActivationCreatedData


class ActivationMetricsData(BaseModel):
    has_activation: bool
    metrics: SamplingMetricsResponse | None = None


class ActivationMetricsResponse(BaseModel):
    success: bool = True
    data: ActivationMetricsData


class ParticipationData(BaseModel):
    participation: ParticipationResponse


class ParticipationEnvelopeResponse(BaseModel):
    success: bool = True
    data: ParticipationData


class GraduationRequestedData(BaseModel):
    message: str
    next_steps: list[NextStepResponse]


class GraduationRequestedResponse(BaseModel):
    success: bool = True
    data: GraduationRequestedData


class MessageData(BaseModel):
    message: str


class UpgradeResponse(BaseModel):
    success: bool = True
    data: MessageData


class SurfaceActivationsData(BaseModel):
    activations: list[SurfaceActivationResponse]


class SurfaceActivationsResponse(BaseModel):
    success: bool = True
    data: SurfaceActivationsData


class GraduationOptionsData(BaseModel):
    sampling_results: SamplingMetricsResponse | None = None
    options: list[GraduationOptionResponse]


class GraduationOptionsResponse(BaseModel):
    success: bool = True
    data: GraduationOptionsData

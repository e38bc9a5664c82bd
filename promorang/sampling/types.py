from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from uuid import UUID

from promorang.db.models.advertiser_profiles import AdvertiserProfile
from promorang.db.models.sampling_activations import SamplingActivation


@dataclass(frozen=True, slots=True)
class SamplingLimits:
    max_activations_per_merchant: int
    min_duration_days: int
    max_duration_days: int
    max_product_units: int
    max_voucher_redemptions: int
    max_cash_prize_usd: Decimal


@dataclass(frozen=True, slots=True)
class GraduationThresholds:
    redemption_rate_threshold: float
    verified_actions_threshold: int
    entry_user_ratio_threshold: float


@dataclass(slots=True)
class MerchantStateView:
    state: str
    profile: AdvertiserProfile | None = None


@dataclass(frozen=True, slots=True)
class Eligibility:
    allowed: bool
    reason: str | None = None


@dataclass(slots=True)
class ActivationDraft:
    name: str
    value_type: str
    value_amount: Decimal
    description: str | None = None
    value_unit: str | None = None
    max_redemptions: int | None = None
    duration_days: int | None = None
    include_in_deals: bool | None = None
    include_in_events: bool | None = None
    include_in_post_proof: bool | None = None


@dataclass(frozen=True, slots=True)
class GraduationMetrics:
    redemption_rate: float
    verified_actions: int
    entry_user_participants: int
    entry_user_ratio: float
    window_expired: bool


@dataclass(frozen=True, slots=True)
class GraduationResult:
    graduated: bool
    reason: str | None = None


@dataclass(frozen=True, slots=True)
class SurfaceActivation:
    activation: SamplingActivation
    company_name: str | None
    company_website: str | None


@dataclass(slots=True)
class SamplingMetrics:
    activation_id: UUID
    advertiser_id: str
    name: str
    description: str | None
    value_type: str
    value_amount: Decimal
    value_unit: str
    status: str
    starts_at: datetime
    expires_at: datetime
    current_redemptions: int
    max_redemptions: int
    redemption_rate: float
    total_participations: int
    unique_participants: int
    verified_actions: int
    redeemed_participations: int
    entry_user_participants: int
    entry_user_ratio: float
    days_remaining: int
    graduation_triggered: bool
    graduation_reason: str | None = None
    graduation_triggered_at: datetime | None = None
    surfaces: list[str] = field(default_factory=list)

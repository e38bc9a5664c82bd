from __future__ import annotations

STATE_NEW = "NEW"
STATE_SAMPLING = "SAMPLING"
STATE_GRADUATED = "GRADUATED"
STATE_PAID = "PAID"

MERCHANT_STATES: tuple[str, ...] = (STATE_NEW, STATE_SAMPLING, STATE_GRADUATED, STATE_PAID)
ALLOWED_TRANSITIONS: frozenset[tuple[str, str]] = frozenset(
    {
        (STATE_NEW, STATE_SAMPLING),
        (STATE_SAMPLING, STATE_GRADUATED),
        (STATE_GRADUATED, STATE_PAID),
    }
)

VALUE_TYPE_COUPON = "coupon"
VALUE_TYPE_PRODUCT = "product"
VALUE_TYPE_VOUCHER = "voucher"
VALUE_TYPE_EXPERIENCE = "experience"
VALUE_TYPE_CASH_PRIZE = "cash_prize"
VALUE_TYPES: tuple[str, ...] = (
    VALUE_TYPE_COUPON,
    VALUE_TYPE_PRODUCT,
    VALUE_TYPE_VOUCHER,
    VALUE_TYPE_EXPERIENCE,
    VALUE_TYPE_CASH_PRIZE,
)

ACTIVATION_STATUS_ACTIVE = "active"
ACTIVATION_STATUS_EXPIRED = "expired"
ACTIVATION_STATUS_COMPLETED = "completed"

SURFACE_FLAG_COLUMNS: dict[str, str] = {
    "deals": "include_in_deals",
    "events": "include_in_events",
    "post": "include_in_post_proof",
}
VALID_SURFACES: tuple[str, ...] = tuple(SURFACE_FLAG_COLUMNS)

GRADUATION_REQUEST_TYPES: tuple[str, ...] = (
    "another_activation",
    "higher_limits",
    "targeting",
    "scheduling",
    "scaling",
    "analytics",
    "optimization",
)

TRG_WINDOW_EXPIRED = "window_expired"
TRG_VERIFIED_ACTIONS = "verified_actions_threshold"
TRG_REDEMPTION_RATE = "redemption_rate_threshold"

# First match wins.
GRADUATION_TRIGGER_ORDER: tuple[str, ...] = (
    TRG_WINDOW_EXPIRED,
    TRG_VERIFIED_ACTIONS,
    TRG_REDEMPTION_RATE,
)

REASON_ACTIVATION_CREATED = "sampling_activation_created"
REASON_UPGRADED_TO_PAID = "upgraded_to_paid"
MERCHANT_REQUEST_REASON_PREFIX = "merchant_request_"

CONFIG_KEY_LIMITS = "limits"
CONFIG_KEY_GRADUATION_TRIGGERS = "graduation_triggers"

DEFAULT_LIMITS: dict[str, object] = {
    "max_activations_per_merchant": 1,
    "min_duration_days": 7,
    "max_duration_days": 14,
    "max_product_units": 20,
    "max_voucher_redemptions": 20,
    "max_cash_prize_usd": 100,
}
DEFAULT_GRADUATION_TRIGGERS: dict[str, object] = {
    "redemption_rate_threshold": 0.30,
    "verified_actions_threshold": 25,
    "entry_user_ratio_threshold": 0.60,
}
DEFAULT_CONFIG: dict[str, dict[str, object]] = {
    CONFIG_KEY_LIMITS: DEFAULT_LIMITS,
    CONFIG_KEY_GRADUATION_TRIGGERS: DEFAULT_GRADUATION_TRIGGERS,
}

DEFAULT_DURATION_DAYS = 7
DEFAULT_MAX_REDEMPTIONS = 20
DEFAULT_VALUE_UNIT = "usd"
DEFAULT_VERIFICATION_METHOD = "social_shield"

MSG_ALREADY_SAMPLING = "You already have an active sampling activation"
MSG_ALREADY_GRADUATED = "Your sampling period has ended. Choose your next step."
MSG_ALREADY_PAID = "You are already on a paid plan"
MSG_SAMPLING_USED = (
    "You have already used your sampling activation. No second sampling is permitted."
)
MSG_ELIGIBILITY_UNKNOWN = "Unable to verify eligibility"
MSG_ACTIVATION_NOT_ACTIVE = "Activation not found or not active"
MSG_ACTIVATION_EXPIRED = "Activation has expired"
MSG_NOT_SAMPLING = "Not in sampling state"
MSG_NO_ACTIVE_ACTIVATION = "No active sampling activation found"
MSG_UPGRADE_REQUIRES_GRADUATED = "Must be in GRADUATED state to upgrade"
MSG_PARTICIPATION_NOT_FOUND = "Participation not found"
MSG_REDEMPTION_LIMIT_REACHED = "Maximum redemptions reached for this activation"
MSG_STATE_CHANGED = "Merchant state changed, please retry"

INELIGIBLE_STATE_MESSAGES: dict[str, str] = {
    STATE_SAMPLING: MSG_ALREADY_SAMPLING,
    STATE_GRADUATED: MSG_ALREADY_GRADUATED,
    STATE_PAID: MSG_ALREADY_PAID,
}

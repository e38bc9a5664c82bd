class SamplingError(Exception):
    pass


class SamplingValidationError(SamplingError):
    pass


class SamplingNotEligibleError(SamplingError):
    pass


class MerchantStateConflictError(SamplingError):
    pass


class InvalidMerchantTransitionError(SamplingError):
    pass


class SamplingActivationNotFoundError(SamplingError):
    pass


class SamplingActivationInactiveError(SamplingError):
    pass


class SamplingActivationExpiredError(SamplingError):
    pass


class SamplingParticipationNotFoundError(SamplingError):
    pass


class SamplingRedemptionLimitError(SamplingError):
    pass

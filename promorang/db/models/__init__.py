from promorang.db.models.advertiser_profiles import AdvertiserProfile
from promorang.db.models.merchant_state_transitions import MerchantStateTransition
from promorang.db.models.sampling_activations import SamplingActivation
from promorang.db.models.sampling_config import SamplingConfigEntry
from promorang.db.models.sampling_participations import SamplingParticipation

__all__ = [
    "AdvertiserProfile",
    "MerchantStateTransition",
    "SamplingActivation",
    "SamplingConfigEntry",
    "SamplingParticipation",
]

from promorang.db.repo.merchant_profiles_repo import MerchantProfilesRepo
from promorang.db.repo.merchant_transitions_repo import MerchantTransitionsRepo
from promorang.db.repo.sampling_activations_repo import SamplingActivationsRepo
from promorang.db.repo.sampling_config_repo import SamplingConfigRepo
from promorang.db.repo.sampling_participations_repo import SamplingParticipationsRepo

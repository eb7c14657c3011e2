"""
Profile Validation
Accepts a requested profile when the platform supports it, otherwise falls back to the
codec's minimal default profile
"""

import logging
from typing import FrozenSet, Iterable

from .codec_types import Codec, Profile, is_valid_profile_for_codec
from .errors import ProfileUnsupportedError

logger = logging.getLogger(__name__)

PROFILE_FIELD = "profile_level.profile"

DEFAULT_MIN_PROFILES = {
    Codec.H264: Profile.AVC_BASELINE,
    Codec.VP8: Profile.VP8_0,
    Codec.VP9: Profile.VP9_0,
}


class ProfileValidator:
    """Validates profiles against the codec range and the platform's supported list"""

    def __init__(self, codec: Codec, supported_profiles: Iterable[Profile]):
        self.codec = codec
        self.default_profile = DEFAULT_MIN_PROFILES[codec]
        self.supported_profiles: FrozenSet[Profile] = frozenset(
            profile for profile in supported_profiles
            if is_valid_profile_for_codec(codec, profile)
        )

    def supports(self, profile: Profile) -> bool:
        return profile in self.supported_profiles

    def validate(self, requested: Profile) -> Profile:
        """
        Return the profile to use for a request.

        The request is kept when supported and not below the default minimum.
        Otherwise the default profile is substituted if the platform supports
        it; if not, ProfileUnsupportedError is raised.
        """
        if self.supports(requested) and requested >= self.default_profile:
            return requested

        if self.supports(self.default_profile):
            logger.warning(f"Profile {getattr(requested, 'name', requested)} not usable for "
                           f"{self.codec.value}, using default {self.default_profile.name} instead")
            return self.default_profile

        logger.error(f"Unable to set either requested profile ({getattr(requested, 'name', requested)}) "
                     f"or default profile ({self.default_profile.name})")
        raise ProfileUnsupportedError(
            f"Neither requested profile nor default profile {self.default_profile.name} is supported",
            field=PROFILE_FIELD,
            value=requested,
        )

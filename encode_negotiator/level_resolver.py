"""
Profile/Level Resolution
Per-codec strategies that turn a requested profile/level into one that fits the current
picture size, frame rate and bitrate
"""

import logging
from dataclasses import dataclass
from typing import FrozenSet, Iterable, Optional

from .codec_types import Codec, Level, PictureSize, Profile, ProfileLevel, level_label
from .errors import FieldOutOfRangeError, LevelInfeasibleError
from .feasibility import compute_targets, is_level_feasible
from .level_limits import H264_LEVEL_LIMITS
from .profile_validator import ProfileValidator

logger = logging.getLogger(__name__)

LEVEL_FIELD = "profile_level.level"


@dataclass
class ResolverMemory:
    """
    Convergence cache for H.264 level resolution.

    Field updates are applied one at a time, so on first configuration the
    profile/level field can be resolved while size, frame rate and bitrate
    still hold their defaults. A low requested level then gets bumped to a
    higher one. The requested level is remembered here and fed back into the
    next resolution, which lowers the level again once the other fields
    have caught up. This is a fixed-point iteration over successive config
    calls, not a closed-form solution.

    The remembered level only ever decreases. It lives as long as the
    interface that owns it.
    """
    level: Optional[Level] = None

    def remember(self, level: Level):
        # UNUSED carries no level to seed from
        self.level = None if level == Level.UNUSED else level

    def seed_for(self, level: Level) -> Level:
        """Level the search should start from for a request"""
        if self.level is None or self.level == Level.UNUSED:
            return level
        return min(self.level, level)

    def reset(self):
        self.level = None


class LevelResolver:
    """Base strategy; one instance is selected per interface at construction"""

    codec: Codec

    def __init__(self, profile_validator: ProfileValidator, supported_levels: Iterable[Level]):
        self.profile_validator = profile_validator
        self.supported_levels: FrozenSet[Level] = frozenset(supported_levels)

    def supports_level(self, level: Level) -> bool:
        return level in self.supported_levels

    def resolve(self, requested: ProfileLevel, size: PictureSize, frame_rate: float,
                bitrate: int) -> ProfileLevel:
        raise NotImplementedError


class H264LevelResolver(LevelResolver):
    """Finds the lowest H.264 level whose limits cover the current configuration"""

    codec = Codec.H264

    def __init__(self, profile_validator: ProfileValidator, supported_levels: Iterable[Level],
                 memory: Optional[ResolverMemory] = None):
        super().__init__(profile_validator, supported_levels)
        self.memory = memory if memory is not None else ResolverMemory()

    def resolve(self, requested: ProfileLevel, size: PictureSize, frame_rate: float,
                bitrate: int) -> ProfileLevel:
        profile = self.profile_validator.validate(requested.profile)
        level = requested.level
        targets = compute_targets(size, frame_rate, bitrate)

        seeded = self.memory.seed_for(level)
        if seeded != level:
            logger.debug(f"Seeding level search with remembered level {level_label(seeded)} "
                         f"instead of {level_label(level)}")
            level = seeded

        # A supported level is kept if a feasible row is found before the scan
        # passes it. Otherwise the first feasible row replaces it.
        needs_update = not self.supports_level(level)
        for limits in H264_LEVEL_LIMITS:
            if not self.supports_level(limits.level):
                continue

            if is_level_feasible(targets, limits, profile):
                if needs_update:
                    self.memory.remember(level)
                    logger.warning(f"Level {level_label(level)} does not cover {size}@{frame_rate:g}fps "
                                   f"{bitrate}bps: adjusting to {level_label(limits.level)}")
                    level = limits.level
                return ProfileLevel(profile=profile, level=level)

            logger.debug(f"Level {level_label(limits.level)} rejected: {targets.frame_size_macroblocks} MBs, "
                         f"{targets.macroblocks_per_second:g} MB/s, {bitrate}bps")
            if level <= limits.level:
                needs_update = True

        logger.error(f"Unable to find proper level with current config, requested level "
                     f"({level_label(requested.level)})")
        raise LevelInfeasibleError(
            f"No supported level covers {size}@{frame_rate:g}fps at {bitrate}bps",
            field=LEVEL_FIELD,
            value=requested.level,
            frame_size_macroblocks=targets.frame_size_macroblocks,
            macroblocks_per_second=targets.macroblocks_per_second,
            bitrate=bitrate,
        )


class VP9LevelResolver(LevelResolver):
    """Profile substitution only; levels come from the allow-list without a limit check"""

    codec = Codec.VP9

    def resolve(self, requested: ProfileLevel, size: PictureSize, frame_rate: float,
                bitrate: int) -> ProfileLevel:
        profile = self.profile_validator.validate(requested.profile)
        if not self.supports_level(requested.level):
            raise FieldOutOfRangeError(
                f"Level {requested.level!r} is not a supported VP9 level",
                field=LEVEL_FIELD,
                value=requested.level,
            )
        return ProfileLevel(profile=profile, level=requested.level)


class VP8LevelResolver(LevelResolver):
    """VP8 has no profile hierarchy: the profile/level pair is a constant"""

    codec = Codec.VP8
    FIXED = ProfileLevel(profile=Profile.VP8_0, level=Level.UNUSED)

    def __init__(self, profile_validator: ProfileValidator):
        super().__init__(profile_validator, (Level.UNUSED,))

    def resolve(self, requested: ProfileLevel, size: PictureSize, frame_rate: float,
                bitrate: int) -> ProfileLevel:
        if requested != self.FIXED:
            logger.debug(f"Ignoring VP8 profile/level request {requested}; the pair is fixed")
        return self.FIXED


def create_level_resolver(codec: Codec, profile_validator: ProfileValidator,
                          supported_levels: Iterable[Level],
                          memory: Optional[ResolverMemory] = None) -> LevelResolver:
    """Select the resolution strategy for a codec"""
    if codec == Codec.H264:
        return H264LevelResolver(profile_validator, supported_levels, memory)
    if codec == Codec.VP9:
        return VP9LevelResolver(profile_validator, supported_levels)
    if codec == Codec.VP8:
        return VP8LevelResolver(profile_validator)
    raise ValueError(f"No level resolver for codec {codec}")

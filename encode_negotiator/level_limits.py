"""
H.264 Level Limits
Static level-limit table (Table A-1) and the profile bitrate factors (Table A-2)
"""

from dataclasses import dataclass
from typing import Tuple

from .codec_types import Level, Profile


@dataclass(frozen=True)
class LevelLimits:
    """One row of the level-limit table"""
    level: Level
    max_macroblocks_per_second: float
    max_frame_size_macroblocks: int
    max_bitrate: int  # bits per second, Baseline/Main/Extended profiles


# Rows are ordered by increasing level.
H264_LEVEL_LIMITS: Tuple[LevelLimits, ...] = (
    LevelLimits(Level.AVC_1, 1485, 99, 64000),
    LevelLimits(Level.AVC_1B, 1485, 99, 128000),
    LevelLimits(Level.AVC_1_1, 3000, 396, 192000),
    LevelLimits(Level.AVC_1_2, 6000, 396, 384000),
    LevelLimits(Level.AVC_1_3, 11880, 396, 768000),
    LevelLimits(Level.AVC_2, 11880, 396, 2000000),
    LevelLimits(Level.AVC_2_1, 19800, 792, 4000000),
    LevelLimits(Level.AVC_2_2, 20250, 1620, 4000000),
    LevelLimits(Level.AVC_3, 40500, 1620, 10000000),
    LevelLimits(Level.AVC_3_1, 108000, 3600, 14000000),
    LevelLimits(Level.AVC_3_2, 216000, 5120, 20000000),
    LevelLimits(Level.AVC_4, 245760, 8192, 20000000),
    LevelLimits(Level.AVC_4_1, 245760, 8192, 50000000),
    LevelLimits(Level.AVC_4_2, 522240, 8704, 50000000),
    LevelLimits(Level.AVC_5, 589824, 22080, 135000000),
    LevelLimits(Level.AVC_5_1, 983040, 36864, 240000000),
    LevelLimits(Level.AVC_5_2, 2073600, 36864, 240000000),
)

# Levels the encoder advertises until the device can be asked for them.
H264_SUPPORTED_LEVELS: Tuple[Level, ...] = (
    Level.AVC_1, Level.AVC_1B, Level.AVC_1_1, Level.AVC_1_2,
    Level.AVC_1_3, Level.AVC_2, Level.AVC_2_1, Level.AVC_2_2,
    Level.AVC_3, Level.AVC_3_1, Level.AVC_3_2, Level.AVC_4,
    Level.AVC_4_1, Level.AVC_4_2, Level.AVC_5, Level.AVC_5_1,
)

VP9_SUPPORTED_LEVELS: Tuple[Level, ...] = (
    Level.VP9_1, Level.VP9_1_1, Level.VP9_2, Level.VP9_2_1,
    Level.VP9_3, Level.VP9_3_1, Level.VP9_4, Level.VP9_4_1,
    Level.VP9_5, Level.VP9_5_1, Level.VP9_5_2, Level.VP9_6,
    Level.VP9_6_1, Level.VP9_6_2,
)


def h264_bitrate_factor(profile: Profile) -> float:
    """
    Max bitrate multiplier for an H.264 profile.

    High is 1.25x the Baseline/Main/Extended limit, High 10 is 3x and
    High 4:2:2 / 4:4:4 and every profile numbered after them are 4x.
    """
    if profile >= Profile.AVC_HIGH_422:
        return 4.0
    if profile >= Profile.AVC_HIGH_10:
        return 3.0
    if profile >= Profile.AVC_HIGH:
        return 1.25
    return 1.0


def max_bitrate_for_profile(limits: LevelLimits, profile: Profile) -> int:
    """Level bitrate ceiling after applying the profile factor, in whole bits per second"""
    return int(limits.max_bitrate * h264_bitrate_factor(profile))


def limits_for_level(level: Level) -> LevelLimits:
    for limits in H264_LEVEL_LIMITS:
        if limits.level == level:
            return limits
    raise KeyError(f"No H.264 level limits for {level.name}")

"""
Level Feasibility Evaluation
Computes macroblock targets for a picture size and frame rate and checks them against a level row
"""

from dataclasses import dataclass

from .codec_types import PictureSize, Profile
from .level_limits import LevelLimits, max_bitrate_for_profile

MACROBLOCK_SIZE = 16


@dataclass(frozen=True)
class EncodeTargets:
    """Per-configuration demands a level has to accommodate"""
    frame_size_macroblocks: int
    macroblocks_per_second: float
    bitrate: int


def frame_size_in_macroblocks(size: PictureSize) -> int:
    """Number of 16x16 macroblocks covering the picture, partial blocks rounded up"""
    mb_width = (size.width + MACROBLOCK_SIZE - 1) // MACROBLOCK_SIZE
    mb_height = (size.height + MACROBLOCK_SIZE - 1) // MACROBLOCK_SIZE
    return mb_width * mb_height


def compute_targets(size: PictureSize, frame_rate: float, bitrate: int) -> EncodeTargets:
    frame_size = frame_size_in_macroblocks(size)
    return EncodeTargets(
        frame_size_macroblocks=frame_size,
        macroblocks_per_second=float(frame_size) * frame_rate,
        bitrate=bitrate,
    )


def is_level_feasible(targets: EncodeTargets, limits: LevelLimits, profile: Profile) -> bool:
    """Check whether a level row accommodates the targets under the given profile"""
    return (targets.frame_size_macroblocks <= limits.max_frame_size_macroblocks
            and targets.macroblocks_per_second <= limits.max_macroblocks_per_second
            and targets.bitrate <= max_bitrate_for_profile(limits, profile))

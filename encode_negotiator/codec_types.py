"""
Codec Types for the Encode Negotiator
Codec, profile and level enumerations plus the small value types shared by every module
"""

import logging
from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Optional, Union

logger = logging.getLogger(__name__)

# Profile and level values share one numbering space per codec family, so
# ordering comparisons between members of the same codec are meaningful.
_AVC_BASE = 0x2000
_VP8_BASE = 0x8000
_VP9_BASE = 0x9000


class Codec(Enum):
    """Video codecs an encode interface can be bound to"""
    H264 = "h264"
    VP8 = "vp8"
    VP9 = "vp9"


class ComponentName:
    """Component identifiers recognised at construction time"""
    H264_ENCODER = "c2.v4l2.avc.encoder"
    VP8_ENCODER = "c2.v4l2.vp8.encoder"
    VP9_ENCODER = "c2.v4l2.vp9.encoder"


class MediaType:
    RAW = "video/raw"
    AVC = "video/avc"
    VP8 = "video/x-vnd.on2.vp8"
    VP9 = "video/x-vnd.on2.vp9"


class Profile(IntEnum):
    """Codec profiles, ordered within each codec"""
    UNUSED = 0

    AVC_BASELINE = _AVC_BASE
    AVC_CONSTRAINED_BASELINE = _AVC_BASE + 1
    AVC_MAIN = _AVC_BASE + 2
    AVC_EXTENDED = _AVC_BASE + 3
    AVC_HIGH = _AVC_BASE + 4
    AVC_PROGRESSIVE_HIGH = _AVC_BASE + 5
    AVC_CONSTRAINED_HIGH = _AVC_BASE + 6
    AVC_HIGH_10 = _AVC_BASE + 7
    AVC_PROGRESSIVE_HIGH_10 = _AVC_BASE + 8
    AVC_HIGH_422 = _AVC_BASE + 9
    AVC_HIGH_444_PREDICTIVE = _AVC_BASE + 10
    AVC_HIGH_10_INTRA = _AVC_BASE + 11
    AVC_HIGH_422_INTRA = _AVC_BASE + 12
    AVC_HIGH_444_INTRA = _AVC_BASE + 13
    AVC_CAVLC_444_INTRA = _AVC_BASE + 14
    AVC_SCALABLE_BASELINE = _AVC_BASE + 0x100
    AVC_SCALABLE_CONSTRAINED_BASELINE = _AVC_BASE + 0x101
    AVC_SCALABLE_HIGH = _AVC_BASE + 0x102
    AVC_SCALABLE_CONSTRAINED_HIGH = _AVC_BASE + 0x103
    AVC_SCALABLE_HIGH_INTRA = _AVC_BASE + 0x104
    AVC_MULTIVIEW_HIGH = _AVC_BASE + 0x200
    AVC_STEREO_HIGH = _AVC_BASE + 0x201
    AVC_MFC_HIGH = _AVC_BASE + 0x202
    AVC_MULTIVIEW_DEPTH_HIGH = _AVC_BASE + 0x300
    AVC_MFC_DEPTH_HIGH = _AVC_BASE + 0x301
    AVC_ENHANCED_MULTIVIEW_DEPTH_HIGH = _AVC_BASE + 0x400

    VP8_0 = _VP8_BASE
    VP8_1 = _VP8_BASE + 1
    VP8_2 = _VP8_BASE + 2
    VP8_3 = _VP8_BASE + 3

    VP9_0 = _VP9_BASE
    VP9_1 = _VP9_BASE + 1
    VP9_2 = _VP9_BASE + 2
    VP9_3 = _VP9_BASE + 3


class Level(IntEnum):
    """Codec levels, ordered within each codec"""
    UNUSED = 0

    AVC_1 = _AVC_BASE
    AVC_1B = _AVC_BASE + 1
    AVC_1_1 = _AVC_BASE + 2
    AVC_1_2 = _AVC_BASE + 3
    AVC_1_3 = _AVC_BASE + 4
    AVC_2 = _AVC_BASE + 5
    AVC_2_1 = _AVC_BASE + 6
    AVC_2_2 = _AVC_BASE + 7
    AVC_3 = _AVC_BASE + 8
    AVC_3_1 = _AVC_BASE + 9
    AVC_3_2 = _AVC_BASE + 10
    AVC_4 = _AVC_BASE + 11
    AVC_4_1 = _AVC_BASE + 12
    AVC_4_2 = _AVC_BASE + 13
    AVC_5 = _AVC_BASE + 14
    AVC_5_1 = _AVC_BASE + 15
    AVC_5_2 = _AVC_BASE + 16
    AVC_6 = _AVC_BASE + 17
    AVC_6_1 = _AVC_BASE + 18
    AVC_6_2 = _AVC_BASE + 19

    VP9_1 = _VP9_BASE
    VP9_1_1 = _VP9_BASE + 1
    VP9_2 = _VP9_BASE + 2
    VP9_2_1 = _VP9_BASE + 3
    VP9_3 = _VP9_BASE + 4
    VP9_3_1 = _VP9_BASE + 5
    VP9_4 = _VP9_BASE + 6
    VP9_4_1 = _VP9_BASE + 7
    VP9_5 = _VP9_BASE + 8
    VP9_5_1 = _VP9_BASE + 9
    VP9_5_2 = _VP9_BASE + 10
    VP9_6 = _VP9_BASE + 11
    VP9_6_1 = _VP9_BASE + 12
    VP9_6_2 = _VP9_BASE + 13


class BitrateMode(Enum):
    """Rate control modes; only CONST and VARIABLE are accepted by the encoder"""
    CONST = "const"
    VARIABLE = "variable"
    CONST_SKIP_ALLOWED = "const_skip_allowed"
    VARIABLE_SKIP_ALLOWED = "variable_skip_allowed"
    IGNORE = "ignore"


class IntraRefreshMode(Enum):
    DISABLED = "disabled"
    ARBITRARY = "arbitrary"


@dataclass(frozen=True)
class PictureSize:
    """Input picture size in pixels"""
    width: int
    height: int

    def __str__(self) -> str:
        return f"{self.width}x{self.height}"


@dataclass(frozen=True)
class IntraRefresh:
    mode: IntraRefreshMode
    period: float


@dataclass(frozen=True)
class ProfileLevel:
    """Resolved profile/level pair stored in the profile-level field"""
    profile: Profile
    level: Level


_PROFILE_RANGES = {
    Codec.H264: (Profile.AVC_BASELINE, Profile.AVC_ENHANCED_MULTIVIEW_DEPTH_HIGH),
    Codec.VP8: (Profile.VP8_0, Profile.VP8_3),
    Codec.VP9: (Profile.VP9_0, Profile.VP9_3),
}

_CODECS_BY_COMPONENT = {
    ComponentName.H264_ENCODER: Codec.H264,
    ComponentName.VP8_ENCODER: Codec.VP8,
    ComponentName.VP9_ENCODER: Codec.VP9,
}

_OUTPUT_MEDIA_TYPES = {
    Codec.H264: MediaType.AVC,
    Codec.VP8: MediaType.VP8,
    Codec.VP9: MediaType.VP9,
}

_LEVEL_PREFIXES = {
    Codec.H264: "AVC_",
    Codec.VP9: "VP9_",
}


def codec_from_component_name(name: str) -> Optional[Codec]:
    """Map a component name to its codec, or None when the name is unknown"""
    codec = _CODECS_BY_COMPONENT.get(name)
    if codec is None:
        logger.error(f"Unknown component name: {name}")
    return codec


def output_media_type(codec: Codec) -> str:
    return _OUTPUT_MEDIA_TYPES[codec]


def is_valid_profile_for_codec(codec: Codec, profile: int) -> bool:
    """Check whether a profile value falls in the codec's standard profile range"""
    bounds = _PROFILE_RANGES.get(codec)
    if bounds is None:
        return False
    low, high = bounds
    return low <= profile <= high


def parse_profile(value: Union[str, int, Profile]) -> Profile:
    """
    Parse a profile from an enum member, a raw value or a name.

    Names are case-insensitive and may omit the PROFILE_ prefix,
    e.g. 'avc_high', 'PROFILE_VP9_0' or 'AVC_BASELINE'.
    """
    if isinstance(value, Profile):
        return value
    if isinstance(value, int) and value in Profile._value2member_map_:
        return Profile(value)
    name = str(value).strip().upper()
    if name.startswith("PROFILE_"):
        name = name[len("PROFILE_"):]
    try:
        return Profile[name]
    except KeyError:
        raise ValueError(f"Unknown profile: {value}") from None


def parse_level(value: Union[str, int, float, Level], codec: Optional[Codec] = None) -> Level:
    """
    Parse a level from an enum member, a raw value, a name or a dotted number.

    Dotted numbers such as '4.1' or '1b' need the codec to pick the family.
    """
    if isinstance(value, Level):
        return value
    if isinstance(value, int) and value in Level._value2member_map_:
        return Level(value)
    name = str(value).strip().upper()
    if name.startswith("LEVEL_"):
        name = name[len("LEVEL_"):]
    if name in Level.__members__:
        return Level[name]

    prefix = _LEVEL_PREFIXES.get(codec) if codec else None
    if prefix:
        candidate = prefix + name.replace(".", "_")
        if candidate in Level.__members__:
            return Level[candidate]
    raise ValueError(f"Unknown level for {codec.value if codec else 'any codec'}: {value}")


def level_label(level: Level) -> str:
    """Human readable level label, e.g. Level.AVC_4_1 -> '4.1'"""
    if level == Level.UNUSED:
        return "unused"
    return level.name.split("_", 1)[1].replace("_", ".").lower()

"""
Field Setters
Single-field validation and clamping for the encoder configuration fields
"""

import logging
import math
from typing import Any, Union

from .codec_types import BitrateMode, IntraRefresh, IntraRefreshMode, PictureSize
from .errors import FieldOutOfRangeError

logger = logging.getLogger(__name__)

PICTURE_SIZE = "picture_size"
FRAME_RATE = "frame_rate"
BITRATE = "bitrate"
BITRATE_MODE = "bitrate_mode"
PROFILE_LEVEL = "profile_level"
INTRA_REFRESH = "intra_refresh"
REQUEST_KEY_FRAME = "request_key_frame"
KEY_FRAME_PERIOD_US = "key_frame_period_us"

MIN_DIMENSION = 2
DIMENSION_STEP = 2
UINT32_MAX = 2 ** 32 - 1
INT64_MAX = 2 ** 63 - 1

SUPPORTED_BITRATE_MODES = (BitrateMode.CONST, BitrateMode.VARIABLE)


def _as_number(field_name: str, value: Any) -> Union[int, float]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        try:
            value = float(value)
        except (TypeError, ValueError):
            raise FieldOutOfRangeError(f"{field_name} must be numeric", field=field_name,
                                       value=value) from None
    if isinstance(value, float) and math.isnan(value):
        raise FieldOutOfRangeError(f"{field_name} must not be NaN", field=field_name, value=value)
    return value


def clamp_to_range(value: int, low: int, high: int, step: int = 1) -> int:
    """Clamp into [low, high] and snap down onto the low + k*step grid"""
    value = max(low, min(value, high))
    return low + ((value - low) // step) * step


def clamp_dimension(field_name: str, value: Any, maximum: int) -> int:
    number = _as_number(field_name, value)
    if math.isinf(number):
        number = maximum if number > 0 else MIN_DIMENSION
    clamped = clamp_to_range(int(number), MIN_DIMENSION, maximum, DIMENSION_STEP)
    if clamped != number:
        logger.debug(f"{field_name} {value} clamped to {clamped}")
    return clamped


def clamp_picture_size(size: PictureSize, max_width: int, max_height: int) -> PictureSize:
    """Clamp width and height independently into [2, max] in steps of 2"""
    return PictureSize(
        width=clamp_dimension(f"{PICTURE_SIZE}.width", size.width, max_width),
        height=clamp_dimension(f"{PICTURE_SIZE}.height", size.height, max_height),
    )


def validate_frame_rate(value: Any) -> float:
    """Frame rates must be positive and finite; invalid values are rejected, not clamped"""
    number = _as_number(FRAME_RATE, value)
    if number <= 0 or math.isinf(number):
        raise FieldOutOfRangeError(f"Frame rate must be greater than 0, got {value}",
                                   field=FRAME_RATE, value=value)
    return float(number)


def clamp_bitrate(value: Any, max_bitrate: int) -> int:
    number = _as_number(BITRATE, value)
    if math.isinf(number):
        clamped = max_bitrate if number > 0 else 0
    else:
        clamped = max(0, min(int(number), max_bitrate))
    if clamped != number:
        logger.debug(f"Bitrate {value} clamped to {clamped}")
    return clamped


def validate_bitrate_mode(value: Any) -> BitrateMode:
    try:
        mode = value if isinstance(value, BitrateMode) else BitrateMode(str(value).strip().lower())
    except ValueError:
        raise FieldOutOfRangeError(f"Unknown bitrate mode: {value}", field=BITRATE_MODE,
                                   value=value) from None
    if mode not in SUPPORTED_BITRATE_MODES:
        raise FieldOutOfRangeError(f"Bitrate mode {mode.value} is not supported",
                                   field=BITRATE_MODE, value=value)
    return mode


def apply_intra_refresh(requested: Any) -> IntraRefresh:
    """
    Normalize an intra refresh request.

    A period below 1 disables intra refresh. Any other period selects
    arbitrary (cyclic) mode, the only refresh mode the encoder implements,
    whatever mode was asked for.
    """
    period = requested.period if isinstance(requested, IntraRefresh) else requested
    period = _as_number(f"{INTRA_REFRESH}.period", period)
    if period < 1:
        return IntraRefresh(mode=IntraRefreshMode.DISABLED, period=0.0)
    return IntraRefresh(mode=IntraRefreshMode.ARBITRARY, period=float(period))


def coerce_request_key_frame(value: Any) -> bool:
    return bool(value)


def normalize_key_frame_period_us(value: Any) -> Union[int, float]:
    """Any numeric period is accepted; infinities are kept as 'no periodic key frames'"""
    number = _as_number(KEY_FRAME_PERIOD_US, value)
    if math.isinf(number):
        return number
    return int(number)


def key_frame_period_in_frames(period_us: Union[int, float], frame_rate: float) -> int:
    """
    Number of frames between key frames.

    Negative or infinite periods mean no periodic key frames and give 0.
    Otherwise the period is rounded to whole frames and clamped to
    [1, UINT32_MAX].
    """
    if period_us < 0 or period_us >= INT64_MAX:
        return 0
    frames = period_us / 1e6 * frame_rate
    return int(max(min(math.floor(frames + 0.5), UINT32_MAX), 1))

"""
Negotiation Error Handling
Exception taxonomy for interface construction and field updates, plus the structured
rejections handed back to callers of EncodeInterface.config()
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, Optional

logger = logging.getLogger(__name__)


class InitStatus(Enum):
    """Construction outcome of an encode interface"""
    OK = "ok"
    DEVICE_UNAVAILABLE = "device_unavailable"
    INVALID_CODEC = "invalid_codec"
    NO_SUPPORTED_PROFILES = "no_supported_profiles"


class ErrorCategory(Enum):
    """Categories of rejected field updates"""
    PROFILE_UNSUPPORTED = "profile_unsupported"
    LEVEL_INFEASIBLE = "level_infeasible"
    FIELD_OUT_OF_RANGE = "field_out_of_range"
    GENERAL = "general"


class NegotiationError(Exception):
    """Base class for every error raised while negotiating encoder parameters"""

    category = ErrorCategory.GENERAL

    def __init__(self, message: str, field: Optional[str] = None, value: Any = None):
        super().__init__(message)
        self.field = field
        self.value = value

    def get_short_message(self) -> str:
        if self.field:
            return f"{self.field}={self.value!r}: {self}"
        return str(self)


class InitializationError(NegotiationError):
    """Raised by every query against an interface whose construction failed"""

    def __init__(self, status: InitStatus, message: Optional[str] = None):
        super().__init__(message or f"Encode interface failed to initialize: {status.value}")
        self.status = status


class ProfileUnsupportedError(NegotiationError):
    """Neither the requested profile nor the codec's default profile is supported"""
    category = ErrorCategory.PROFILE_UNSUPPORTED


class LevelInfeasibleError(NegotiationError):
    """No supported level accommodates the current size, frame rate and bitrate"""
    category = ErrorCategory.LEVEL_INFEASIBLE

    def __init__(self, message: str, field: Optional[str] = None, value: Any = None,
                 frame_size_macroblocks: int = 0, macroblocks_per_second: float = 0.0,
                 bitrate: int = 0):
        super().__init__(message, field, value)
        self.frame_size_macroblocks = frame_size_macroblocks
        self.macroblocks_per_second = macroblocks_per_second
        self.bitrate = bitrate

    def get_detailed_message(self) -> str:
        """Error message with the demands no level could satisfy"""
        return (f"{self.get_short_message()}\n"
                f"Frame size: {self.frame_size_macroblocks} MBs, "
                f"rate: {self.macroblocks_per_second:.0f} MB/s, "
                f"bitrate: {self.bitrate} bps")


class FieldOutOfRangeError(NegotiationError):
    """A value outside the field's allowed range or allow-list"""
    category = ErrorCategory.FIELD_OUT_OF_RANGE


class ConfigurationError(Exception):
    """Invalid encoder settings loaded from configuration"""


@dataclass
class SettingFailure:
    """Structured rejection of one field value"""
    field: str
    value: Any
    category: ErrorCategory
    message: str

    @classmethod
    def from_exception(cls, exc: NegotiationError, field_name: Optional[str] = None) -> 'SettingFailure':
        return cls(
            field=exc.field or field_name or "unknown",
            value=exc.value,
            category=exc.category,
            message=str(exc),
        )

    def get_short_description(self) -> str:
        return f"{self.category.value}: {self.field}={self.value!r} ({self.message})"


@dataclass
class ConfigResult:
    """Outcome of one configuration update"""
    success: bool
    failures: List[SettingFailure] = field(default_factory=list)
    changed: List[str] = field(default_factory=list)

    def failure_for(self, field_name: str) -> Optional[SettingFailure]:
        for failure in self.failures:
            if failure.field == field_name:
                return failure
        return None

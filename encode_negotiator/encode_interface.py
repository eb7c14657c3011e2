"""
Encode Interface
Binds one codec and one device capability set to a dependency-ordered parameter store and
negotiates picture size, frame rate, bitrate, profile and level for the encoder
"""

import logging
from typing import Any, Callable, Dict, List, Optional, Tuple

from .codec_types import (Codec, IntraRefresh, IntraRefreshMode, Level, MediaType, PictureSize,
                          Profile, ProfileLevel, codec_from_component_name, is_valid_profile_for_codec,
                          level_label, output_media_type, parse_level, parse_profile)
from .config_manager import EncoderSettings
from .errors import ConfigResult, FieldOutOfRangeError, InitializationError, InitStatus
from .field_setters import (BITRATE, BITRATE_MODE, FRAME_RATE, INTRA_REFRESH, KEY_FRAME_PERIOD_US,
                            PICTURE_SIZE, PROFILE_LEVEL, REQUEST_KEY_FRAME, apply_intra_refresh,
                            clamp_bitrate, clamp_picture_size, coerce_request_key_frame,
                            key_frame_period_in_frames, normalize_key_frame_period_us,
                            validate_bitrate_mode, validate_frame_rate)
from .hardware_detector import EncodeDevice
from .level_resolver import LevelResolver, ResolverMemory, VP8LevelResolver, create_level_resolver
from .parameter_store import ConfigurationField, ParameterStore
from .profile_validator import ProfileValidator

logger = logging.getLogger(__name__)

INPUT_MEDIA_TYPE = "input_media_type"
OUTPUT_MEDIA_TYPE = "output_media_type"

DeviceFactory = Callable[[], Optional[EncodeDevice]]


class EncodeInterface:
    """
    Parameter negotiation for one encoder instance.

    Construction never raises for device, codec or capability problems;
    it records init_status instead and every later query raises the
    matching InitializationError.
    """

    def __init__(self, name: str, device_factory: DeviceFactory,
                 settings: Optional[EncoderSettings] = None):
        self.name = name
        self.settings = settings or EncoderSettings()
        self.init_status = InitStatus.OK
        self.codec: Optional[Codec] = None
        self.supported_profiles: List[Profile] = []
        self.max_size: Optional[PictureSize] = None
        self.memory = ResolverMemory()
        self._store = ParameterStore()
        self._resolver: Optional[LevelResolver] = None

        logger.debug(f"Creating encode interface {name}")
        self._initialize(device_factory)

    def _fail(self, status: InitStatus, message: str):
        logger.error(message)
        self.init_status = status

    def _initialize(self, device_factory: DeviceFactory):
        device = device_factory()
        if device is None:
            self._fail(InitStatus.DEVICE_UNAVAILABLE, "Failed to create encode device")
            return

        codec = codec_from_component_name(self.name)
        if codec is None:
            self._fail(InitStatus.INVALID_CODEC, f"Invalid component name: {self.name}")
            return

        profiles, max_width, max_height = self._collect_profiles(codec, device)
        if not profiles:
            self._fail(InitStatus.NO_SUPPORTED_PROFILES, f"No supported {codec.value} profiles")
            return

        self.codec = codec
        self.supported_profiles = profiles
        self.max_size = PictureSize(max_width, max_height)

        validator = ProfileValidator(codec, profiles)
        self._resolver = create_level_resolver(
            codec, validator, self.settings.supported_levels(codec), self.memory)
        self._define_fields()

        logger.info(f"Encode interface {self.name} ready: {len(profiles)} {codec.value} profile(s), "
                    f"max size {self.max_size}")

    @staticmethod
    def _collect_profiles(codec: Codec, device: EncodeDevice) -> Tuple[List[Profile], int, int]:
        """Keep the profiles valid for the codec; max size is the elementwise maximum over them"""
        profiles: List[Profile] = []
        max_width = max_height = 0
        for supported in device.get_supported_encode_profiles():
            if not is_valid_profile_for_codec(codec, supported.profile):
                continue
            logger.debug(f"Queried profile {supported.profile.name}: "
                         f"max size {supported.max_width}x{supported.max_height}")
            profiles.append(supported.profile)
            max_width = max(max_width, supported.max_width)
            max_height = max(max_height, supported.max_height)
        return profiles, max_width, max_height

    def _define_fields(self):
        settings = self.settings
        max_size = self.max_size

        self._store.add_field(ConfigurationField(
            name=PICTURE_SIZE,
            default=clamp_picture_size(PictureSize(settings.default_width, settings.default_height),
                                       max_size.width, max_size.height),
            setter=lambda proposed: clamp_picture_size(
                _as_picture_size(proposed), max_size.width, max_size.height),
        ))
        self._store.add_field(ConfigurationField(
            name=FRAME_RATE,
            default=settings.default_frame_rate,
            setter=validate_frame_rate,
        ))
        self._store.add_field(ConfigurationField(
            name=BITRATE,
            default=settings.default_bitrate,
            setter=lambda proposed: clamp_bitrate(proposed, settings.max_bitrate),
        ))
        self._store.add_field(ConfigurationField(
            name=BITRATE_MODE,
            default=settings.default_bitrate_mode,
            setter=validate_bitrate_mode,
        ))
        self._store.add_field(ConfigurationField(
            name=PROFILE_LEVEL,
            default=self._default_profile_level(),
            setter=self._set_profile_level,
            depends_on=(PICTURE_SIZE, FRAME_RATE, BITRATE),
        ))
        self._store.add_field(ConfigurationField(
            name=INTRA_REFRESH,
            default=IntraRefresh(IntraRefreshMode.DISABLED, 0.0),
            setter=apply_intra_refresh,
        ))
        self._store.add_field(ConfigurationField(
            name=REQUEST_KEY_FRAME,
            default=False,
            setter=coerce_request_key_frame,
        ))
        self._store.add_field(ConfigurationField(
            name=KEY_FRAME_PERIOD_US,
            default=settings.default_key_frame_period_us,
            setter=normalize_key_frame_period_us,
        ))
        self._store.add_field(ConfigurationField(
            name=INPUT_MEDIA_TYPE, default=MediaType.RAW, read_only=True))
        self._store.add_field(ConfigurationField(
            name=OUTPUT_MEDIA_TYPE, default=output_media_type(self.codec), read_only=True))

    def _default_profile_level(self) -> ProfileLevel:
        if self.codec == Codec.VP8:
            return VP8LevelResolver.FIXED
        return ProfileLevel(profile=min(self.supported_profiles),
                            level=self.settings.default_level(self.codec))

    def _set_profile_level(self, proposed: Any, size: PictureSize, frame_rate: float,
                           bitrate: int) -> ProfileLevel:
        if self.codec == Codec.VP8:
            # Fixed pair; the request is not even parsed
            if proposed != VP8LevelResolver.FIXED:
                logger.debug(f"Ignoring VP8 profile/level request {proposed!r}")
            return self._resolver.resolve(VP8LevelResolver.FIXED, size, frame_rate, bitrate)
        requested = self._as_profile_level(proposed)
        resolved = self._resolver.resolve(requested, size, frame_rate, bitrate)
        logger.debug(f"Profile/level {requested.profile.name}/{level_label(requested.level)} "
                     f"resolved to {resolved.profile.name}/{level_label(resolved.level)}")
        return resolved

    def _as_profile_level(self, proposed: Any) -> ProfileLevel:
        """Accept a ProfileLevel, a (profile, level) pair or a partial dict merged with the current value"""
        if isinstance(proposed, ProfileLevel):
            return proposed
        current = self._store.get(PROFILE_LEVEL)
        try:
            if isinstance(proposed, dict):
                profile = proposed.get('profile', current.profile)
                level = proposed.get('level', current.level)
            else:
                profile, level = proposed
            return ProfileLevel(profile=parse_profile(profile), level=parse_level(level, self.codec))
        except (TypeError, ValueError) as e:
            raise FieldOutOfRangeError(f"Invalid profile/level request: {e}", field=PROFILE_LEVEL,
                                       value=proposed) from e

    def _check_initialized(self):
        if self.init_status != InitStatus.OK:
            raise InitializationError(self.init_status)

    def config(self, updates: Dict[str, Any]) -> ConfigResult:
        """
        Propose new field values.

        All proposals and their dependent fields are resolved together; a
        rejected field leaves every value, and the level convergence cache,
        as it was before the call.
        """
        self._check_initialized()
        remembered = self.memory.level
        result = self._store.apply(updates)
        if not result.success:
            self.memory.level = remembered
        return result

    def get(self, name: str) -> Any:
        self._check_initialized()
        return self._store.get(name)

    def get_resolved_profile(self) -> Profile:
        return self.get(PROFILE_LEVEL).profile

    def get_resolved_level(self) -> Level:
        return self.get(PROFILE_LEVEL).level

    def get_picture_size(self) -> PictureSize:
        return self.get(PICTURE_SIZE)

    def get_frame_rate(self) -> float:
        return self.get(FRAME_RATE)

    def get_bitrate(self) -> int:
        return self.get(BITRATE)

    def get_intra_refresh(self) -> IntraRefresh:
        return self.get(INTRA_REFRESH)

    def is_key_frame_requested(self) -> bool:
        return self.get(REQUEST_KEY_FRAME)

    def get_output_media_type(self) -> str:
        return self.get(OUTPUT_MEDIA_TYPE)

    def get_key_frame_period(self) -> int:
        """Frames between key frames, derived from the period in microseconds and the frame rate"""
        return key_frame_period_in_frames(self.get(KEY_FRAME_PERIOD_US), self.get(FRAME_RATE))

    def snapshot(self) -> Dict[str, Any]:
        """Every current field value as plain data"""
        self._check_initialized()
        values = self._store.values()
        size = values[PICTURE_SIZE]
        profile_level = values[PROFILE_LEVEL]
        intra_refresh = values[INTRA_REFRESH]
        return {
            'component': self.name,
            'codec': self.codec.value,
            'picture_size': {'width': size.width, 'height': size.height},
            'frame_rate': values[FRAME_RATE],
            'bitrate': values[BITRATE],
            'bitrate_mode': values[BITRATE_MODE].value,
            'profile': profile_level.profile.name,
            'level': level_label(profile_level.level),
            'intra_refresh': {'mode': intra_refresh.mode.value, 'period': intra_refresh.period},
            'request_key_frame': values[REQUEST_KEY_FRAME],
            'key_frame_period_us': values[KEY_FRAME_PERIOD_US],
            'key_frame_period_frames': self.get_key_frame_period(),
            'input_media_type': values[INPUT_MEDIA_TYPE],
            'output_media_type': values[OUTPUT_MEDIA_TYPE],
        }


def _as_picture_size(proposed: Any) -> PictureSize:
    if isinstance(proposed, PictureSize):
        return proposed
    try:
        if isinstance(proposed, dict):
            return PictureSize(proposed['width'], proposed['height'])
        width, height = proposed
        return PictureSize(width, height)
    except (KeyError, TypeError, ValueError) as e:
        raise FieldOutOfRangeError(f"Invalid picture size: {proposed!r}", field=PICTURE_SIZE,
                                   value=proposed) from e

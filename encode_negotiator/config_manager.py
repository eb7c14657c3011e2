"""
Configuration Manager for the Encode Negotiator
Handles loading and managing configuration from YAML files and CLI arguments
"""

import logging
import os
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

import yaml

from .codec_types import BitrateMode, Codec, Level, parse_level
from .errors import ConfigurationError
from .field_setters import SUPPORTED_BITRATE_MODES
from .level_limits import H264_SUPPORTED_LEVELS, VP9_SUPPORTED_LEVELS

logger = logging.getLogger(__name__)

CONFIG_FILES = (
    'encoder_interface.yaml',
    'logging.yaml',
)


class ConfigManager:
    def __init__(self, config_dir: str = "config"):
        self.config_dir = config_dir
        self.config: Dict[str, Any] = {}
        self._load_all_configs()

    def _load_all_configs(self):
        """Load all configuration files, preferring config_dir over packaged defaults"""
        package_dir = os.path.abspath(os.path.dirname(__file__))
        for config_file in CONFIG_FILES:
            candidates = [
                os.path.join(self.config_dir, config_file),
                os.path.join(package_dir, 'config', config_file),
            ]
            for config_path in candidates:
                if not os.path.exists(config_path):
                    continue
                try:
                    with open(config_path, 'r', encoding='utf-8') as file:
                        config_data = yaml.safe_load(file)
                except yaml.YAMLError as e:
                    logger.error(f"Error loading configuration {config_path}: {e}")
                    raise ConfigurationError(f"Invalid YAML in {config_path}: {e}") from e
                if config_data:
                    self.config.update(config_data)
                logger.debug(f"Loaded config from {config_path}")
                break
            else:
                logger.warning(f"Config file not found in '{self.config_dir}' or packaged defaults: {config_file}")

    def get(self, key_path: str, default: Any = None) -> Any:
        """
        Get configuration value using dot notation
        Example: get('encoder_interface.defaults.bitrate')
        """
        value = self.config
        try:
            for key in key_path.split('.'):
                value = value[key]
            return value
        except (KeyError, TypeError):
            logger.debug(f"Configuration key '{key_path}' not found, using default: {default}")
            return default

    def update_from_args(self, args_dict: Dict[str, Any]):
        """Update configuration with command line arguments"""
        applied = 0
        for key, value in args_dict.items():
            if value is None:
                continue
            old_value = self.get(key)
            self._set_nested_value(key, value)
            applied += 1
            logger.info(f"Configuration override applied: {key} = {value} (was: {old_value})")

        if not applied:
            logger.debug("No CLI configuration overrides to apply")

    def _set_nested_value(self, key_path: str, value: Any):
        """Set nested configuration value using dot notation"""
        keys = key_path.split('.')
        config_section = self.config
        for key in keys[:-1]:
            if not isinstance(config_section.get(key), dict):
                config_section[key] = {}
            config_section = config_section[key]
        config_section[keys[-1]] = value

    def validate_config(self) -> bool:
        """Validate that the encoder settings and device section are usable"""
        try:
            EncoderSettings.from_config(self)
        except ConfigurationError as e:
            logger.error(f"Invalid encoder settings: {e}")
            return False

        backend = self.get('device.backend', 'v4l2')
        if backend not in ('v4l2', 'static'):
            logger.error(f"Invalid device.backend: {backend} (must be 'v4l2' or 'static')")
            return False

        if backend == 'static':
            entries = self.get('device.static_profiles', [])
            if not isinstance(entries, list) or not entries:
                logger.error("device.static_profiles must be a non-empty list when backend is 'static'")
                return False
            for entry in entries:
                if not isinstance(entry, dict) or not {'profile', 'max_width', 'max_height'} <= set(entry):
                    logger.error(f"Invalid static profile entry: {entry} (needs profile, max_width, max_height)")
                    return False

        timeout = self.get('device.probe_timeout')
        if timeout is not None and (not isinstance(timeout, (int, float)) or timeout <= 0):
            logger.error(f"Invalid device.probe_timeout: {timeout} (must be positive number)")
            return False

        logger.info("Configuration validation passed")
        return True


@dataclass
class EncoderSettings:
    """Platform constants and field defaults for an encode interface"""
    default_width: int = 320
    default_height: int = 240
    default_frame_rate: float = 30.0
    # Max bitrate of AVC level 1.
    default_bitrate: int = 64000
    # Max bitrate of AVC level 4.1.
    max_bitrate: int = 50000000
    default_bitrate_mode: BitrateMode = BitrateMode.CONST
    default_key_frame_period_us: int = 1000000
    h264_default_level: Level = Level.AVC_4_1
    h264_supported_levels: Tuple[Level, ...] = H264_SUPPORTED_LEVELS
    vp9_default_level: Level = Level.VP9_1
    vp9_supported_levels: Tuple[Level, ...] = VP9_SUPPORTED_LEVELS

    def __post_init__(self):
        if self.default_frame_rate <= 0:
            raise ConfigurationError(f"Default frame rate must be positive: {self.default_frame_rate}")
        if self.max_bitrate < 0:
            raise ConfigurationError(f"Max bitrate must not be negative: {self.max_bitrate}")
        if not 0 <= self.default_bitrate <= self.max_bitrate:
            raise ConfigurationError(
                f"Default bitrate {self.default_bitrate} outside [0, {self.max_bitrate}]")
        if self.default_width < 2 or self.default_height < 2:
            raise ConfigurationError(
                f"Default picture size {self.default_width}x{self.default_height} below 2x2")
        if self.default_bitrate_mode not in SUPPORTED_BITRATE_MODES:
            raise ConfigurationError(
                f"Default bitrate mode {self.default_bitrate_mode.value} is not supported")
        if self.h264_default_level not in self.h264_supported_levels:
            raise ConfigurationError(f"H.264 default level {self.h264_default_level.name} is not supported")
        if self.vp9_default_level not in self.vp9_supported_levels:
            raise ConfigurationError(f"VP9 default level {self.vp9_default_level.name} is not supported")

    def default_level(self, codec: Codec) -> Level:
        if codec == Codec.H264:
            return self.h264_default_level
        if codec == Codec.VP9:
            return self.vp9_default_level
        return Level.UNUSED

    def supported_levels(self, codec: Codec) -> Tuple[Level, ...]:
        if codec == Codec.H264:
            return self.h264_supported_levels
        if codec == Codec.VP9:
            return self.vp9_supported_levels
        return (Level.UNUSED,)

    @classmethod
    def from_config(cls, config: Optional[ConfigManager]) -> 'EncoderSettings':
        """Build settings from the 'encoder_interface' section, defaults for missing keys"""
        if config is None:
            return cls()

        defaults = cls()
        prefix = 'encoder_interface'
        try:
            width, height = config.get(f'{prefix}.defaults.picture_size',
                                       [defaults.default_width, defaults.default_height])
            return cls(
                default_width=int(width),
                default_height=int(height),
                default_frame_rate=float(config.get(f'{prefix}.defaults.frame_rate', defaults.default_frame_rate)),
                default_bitrate=int(config.get(f'{prefix}.defaults.bitrate', defaults.default_bitrate)),
                max_bitrate=int(config.get(f'{prefix}.max_bitrate', defaults.max_bitrate)),
                default_bitrate_mode=BitrateMode(
                    config.get(f'{prefix}.defaults.bitrate_mode', defaults.default_bitrate_mode.value)),
                default_key_frame_period_us=int(
                    config.get(f'{prefix}.defaults.key_frame_period_us', defaults.default_key_frame_period_us)),
                h264_default_level=parse_level(
                    config.get(f'{prefix}.h264.default_level', defaults.h264_default_level), Codec.H264),
                h264_supported_levels=tuple(
                    parse_level(level, Codec.H264)
                    for level in config.get(f'{prefix}.h264.supported_levels', defaults.h264_supported_levels)),
                vp9_default_level=parse_level(
                    config.get(f'{prefix}.vp9.default_level', defaults.vp9_default_level), Codec.VP9),
                vp9_supported_levels=tuple(
                    parse_level(level, Codec.VP9)
                    for level in config.get(f'{prefix}.vp9.supported_levels', defaults.vp9_supported_levels)),
            )
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"Invalid encoder_interface settings: {e}") from e

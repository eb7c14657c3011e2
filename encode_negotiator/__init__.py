"""Encode negotiator package root.

Export primary classes and CLI for convenience when installed via pip.
"""

from .cli import main as cli_main  # noqa: F401
from .codec_types import BitrateMode, Codec, ComponentName, Level, PictureSize, Profile, ProfileLevel  # noqa: F401
from .config_manager import ConfigManager, EncoderSettings  # noqa: F401
from .encode_interface import EncodeInterface  # noqa: F401
from .errors import ConfigResult, InitializationError, InitStatus, NegotiationError, SettingFailure  # noqa: F401
from .hardware_detector import EncodeDevice, StaticEncodeDevice, SupportedEncodeProfile  # noqa: F401
from .level_resolver import ResolverMemory, create_level_resolver  # noqa: F401

"""
Hardware Detection for the Encode Negotiator
Queries V4L2 memory-to-memory encoders for their supported profiles and maximum resolutions
"""

import logging
import platform
import re
import subprocess
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Tuple

import psutil

from .codec_types import Codec, Profile, parse_profile

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SupportedEncodeProfile:
    """One entry of the device's encode capability list"""
    profile: Profile
    max_width: int
    max_height: int


class EncodeDevice:
    """Encode capability backend"""

    def get_supported_encode_profiles(self) -> List[SupportedEncodeProfile]:
        raise NotImplementedError


class StaticEncodeDevice(EncodeDevice):
    """Fixed capability list, from configuration or code"""

    def __init__(self, profiles: Iterable[SupportedEncodeProfile]):
        self.profiles = list(profiles)

    @classmethod
    def from_config(cls, entries: List[Dict[str, Any]]) -> 'StaticEncodeDevice':
        profiles = []
        for entry in entries or []:
            try:
                profiles.append(SupportedEncodeProfile(
                    profile=parse_profile(entry['profile']),
                    max_width=int(entry['max_width']),
                    max_height=int(entry['max_height']),
                ))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Ignoring invalid static profile entry {entry}: {e}")
        return cls(profiles)

    def get_supported_encode_profiles(self) -> List[SupportedEncodeProfile]:
        return list(self.profiles)


# V4L2 control menu entries, keyed by control name then menu label.
_H264_MENU_PROFILES = {
    'baseline': Profile.AVC_BASELINE,
    'constrained baseline': Profile.AVC_CONSTRAINED_BASELINE,
    'main': Profile.AVC_MAIN,
    'extended': Profile.AVC_EXTENDED,
    'high': Profile.AVC_HIGH,
    'high 10': Profile.AVC_HIGH_10,
    'high 422': Profile.AVC_HIGH_422,
    'high 444 predictive': Profile.AVC_HIGH_444_PREDICTIVE,
    'high 10 intra': Profile.AVC_HIGH_10_INTRA,
    'high 422 intra': Profile.AVC_HIGH_422_INTRA,
    'high 444 intra': Profile.AVC_HIGH_444_INTRA,
    'cavlc 444 intra': Profile.AVC_CAVLC_444_INTRA,
    'scalable baseline': Profile.AVC_SCALABLE_BASELINE,
    'scalable high': Profile.AVC_SCALABLE_HIGH,
    'scalable high intra': Profile.AVC_SCALABLE_HIGH_INTRA,
    'stereo high': Profile.AVC_STEREO_HIGH,
    'multiview high': Profile.AVC_MULTIVIEW_HIGH,
    'constrained high': Profile.AVC_CONSTRAINED_HIGH,
}

_PROFILE_CONTROLS = {
    'h264_profile': (Codec.H264, _H264_MENU_PROFILES),
    'vp8_profile': (Codec.VP8, {str(i): Profile(Profile.VP8_0 + i) for i in range(4)}),
    'vp9_profile': (Codec.VP9, {str(i): Profile(Profile.VP9_0 + i) for i in range(4)}),
}

_CODEC_FOURCCS = {
    Codec.H264: 'H264',
    Codec.VP8: 'VP80',
    Codec.VP9: 'VP90',
}

_CONTROL_LINE = re.compile(r'^\s*(\w+)\s+0x[0-9a-fA-F]+\s+\((\w+)\)')
_MENU_ENTRY = re.compile(r'^\s*(\d+):\s*(.+?)\s*$')
_SIZE = re.compile(r'(\d+)x(\d+)')


def parse_profile_menus(output: str) -> Dict[Codec, List[Profile]]:
    """Extract supported profiles per codec from `v4l2-ctl --list-ctrls-menus` output"""
    profiles: Dict[Codec, List[Profile]] = {}
    current = None
    for line in output.splitlines():
        control = _CONTROL_LINE.match(line)
        if control:
            current = _PROFILE_CONTROLS.get(control.group(1)) if control.group(2) == 'menu' else None
            continue
        if current is None:
            continue
        entry = _MENU_ENTRY.match(line)
        if not entry:
            continue
        codec, labels = current
        profile = labels.get(entry.group(2).lower())
        if profile is None:
            logger.debug(f"Unrecognized {codec.value} profile menu entry: {entry.group(2)}")
            continue
        profiles.setdefault(codec, []).append(profile)
    return profiles


def parse_max_frame_size(output: str) -> Optional[Tuple[int, int]]:
    """Elementwise maximum of every WxH in `v4l2-ctl --list-framesizes` output"""
    sizes = [(int(w), int(h)) for w, h in _SIZE.findall(output)]
    if not sizes:
        return None
    return max(w for w, _ in sizes), max(h for _, h in sizes)


class V4L2EncodeDevice(EncodeDevice):
    """One V4L2 encoder node queried through v4l2-ctl"""

    def __init__(self, device_path: str, timeout: float = 10):
        self.device_path = device_path
        self.timeout = timeout

    def _run(self, *args: str) -> Optional[str]:
        cmd = ['v4l2-ctl', '-d', self.device_path, *args]
        try:
            result = subprocess.run(cmd, capture_output=True, text=True, timeout=self.timeout)
        except (subprocess.TimeoutExpired, FileNotFoundError) as e:
            logger.warning(f"v4l2-ctl query failed for {self.device_path}: {e}")
            return None
        if result.returncode != 0:
            logger.warning(f"v4l2-ctl {' '.join(args)} failed on {self.device_path}: {result.stderr.strip()[:200]}")
            return None
        return result.stdout

    def get_supported_encode_profiles(self) -> List[SupportedEncodeProfile]:
        menus = self._run('--list-ctrls-menus')
        if menus is None:
            return []

        supported = []
        for codec, profiles in parse_profile_menus(menus).items():
            framesizes = self._run(f'--list-framesizes={_CODEC_FOURCCS[codec]}')
            max_size = parse_max_frame_size(framesizes) if framesizes else None
            if max_size is None:
                logger.debug(f"No frame sizes reported for {codec.value} on {self.device_path}")
                continue
            for profile in profiles:
                logger.debug(f"Queried profile {profile.name}: max size {max_size[0]}x{max_size[1]}")
                supported.append(SupportedEncodeProfile(profile, max_size[0], max_size[1]))
        return supported


class EncodeCapabilityDetector:
    """Locates an encoder device and reports host information"""

    def __init__(self, device_path: Optional[str] = None, timeout: float = 10):
        self.device_path = device_path
        self.timeout = timeout
        self.system_info = self._get_system_info()

    def _get_system_info(self) -> Dict[str, Any]:
        """Get basic system information"""
        return {
            'platform': platform.system(),
            'architecture': platform.machine(),
            'cpu_count': psutil.cpu_count(),
            'memory_gb': round(psutil.virtual_memory().total / (1024 ** 3), 2),
        }

    def _list_encoder_nodes(self) -> List[str]:
        """Device nodes of every V4L2 driver whose name marks it as an encoder"""
        try:
            result = subprocess.run(['v4l2-ctl', '--list-devices'],
                                    capture_output=True, text=True, timeout=self.timeout)
        except (subprocess.TimeoutExpired, FileNotFoundError):
            logger.debug("v4l2-ctl not available")
            return []
        # v4l2-ctl exits non-zero when some nodes can't be opened but still lists the rest.
        nodes = []
        is_encoder = False
        for line in result.stdout.splitlines():
            if not line.strip():
                continue
            if not line[0].isspace():
                is_encoder = 'enc' in line.lower()
                continue
            node = line.strip()
            if is_encoder and node.startswith('/dev/video'):
                nodes.append(node)
        return nodes

    def create_device(self) -> Optional[EncodeDevice]:
        """Return the encoder device, or None when no device can be created"""
        if self.device_path:
            return V4L2EncodeDevice(self.device_path, self.timeout)

        nodes = self._list_encoder_nodes()
        if not nodes:
            logger.warning("No V4L2 encoder device found")
            return None
        logger.info(f"Using V4L2 encoder device {nodes[0]}")
        return V4L2EncodeDevice(nodes[0], self.timeout)


def create_encode_device(config) -> Optional[EncodeDevice]:
    """Build the capability backend selected by the 'device' configuration section"""
    backend = config.get('device.backend', 'v4l2')
    if backend == 'static':
        return StaticEncodeDevice.from_config(config.get('device.static_profiles', []))
    if backend == 'v4l2':
        detector = EncodeCapabilityDetector(
            device_path=config.get('device.path'),
            timeout=config.get('device.probe_timeout', 10),
        )
        return detector.create_device()
    logger.error(f"Unknown device backend: {backend}")
    return None

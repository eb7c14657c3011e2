"""
Command Line Interface for the Encode Negotiator
Main entry point with argument parsing and command execution
"""

import argparse
import json
import logging
import sys
from typing import Any, Dict, List, Optional

from .codec_types import ComponentName, level_label
from .config_manager import ConfigManager, EncoderSettings
from .encode_interface import EncodeInterface
from .errors import ConfigurationError, InitializationError
from .field_setters import (BITRATE, BITRATE_MODE, FRAME_RATE, INTRA_REFRESH, KEY_FRAME_PERIOD_US,
                            PICTURE_SIZE, PROFILE_LEVEL)
from .hardware_detector import EncodeCapabilityDetector, create_encode_device
from .level_limits import H264_LEVEL_LIMITS
from .logger_setup import setup_logging

logger = logging.getLogger(__name__)

COMPONENT_ALIASES = {
    'h264': ComponentName.H264_ENCODER,
    'avc': ComponentName.H264_ENCODER,
    'vp8': ComponentName.VP8_ENCODER,
    'vp9': ComponentName.VP9_ENCODER,
}


class EncodeNegotiatorCLI:
    def __init__(self):
        self.config: Optional[ConfigManager] = None
        self.settings: Optional[EncoderSettings] = None

    def main(self, argv: Optional[List[str]] = None) -> int:
        """Main entry point; returns the process exit code"""
        args = self._parse_arguments(argv)
        effective_level = 'DEBUG' if args.debug else args.log_level
        setup_logging(config_path=f"{args.config_dir}/logging.yaml", log_level=effective_level)

        try:
            self._initialize_components(args)
            return self._execute_command(args)
        except ConfigurationError as e:
            logger.error(f"Configuration error: {e}")
            print(f"Error: {e}", file=sys.stderr)
            return 2
        except KeyboardInterrupt:
            logger.info("Operation cancelled by user")
            return 1

    def _parse_arguments(self, argv: Optional[List[str]]) -> argparse.Namespace:
        parser = argparse.ArgumentParser(
            prog='encode-negotiator',
            description='Negotiate consistent encoder parameters (profile, level, size, rate, bitrate)',
            epilog="""
Examples:
  encode-negotiator negotiate h264 --width 176 --height 144 --fps 15 --bitrate 64000 --level 1
  encode-negotiator negotiate c2.v4l2.vp9.encoder --profile vp9_0 --json
  encode-negotiator --backend static capabilities
  encode-negotiator levels
            """,
            formatter_class=argparse.RawDescriptionHelpFormatter
        )
        parser.add_argument('--config-dir', default='config',
                            help='Configuration directory (default: ./config, then packaged defaults)')
        parser.add_argument('--log-level', choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
                            help='Console log level')
        parser.add_argument('-v', '--debug', action='store_true', help='Verbose console logging')
        parser.add_argument('--backend', choices=['v4l2', 'static'],
                            help='Capability backend (overrides device.backend)')
        parser.add_argument('--device', help='V4L2 encoder device node (overrides device.path)')

        subparsers = parser.add_subparsers(dest='command', help='Available commands')

        negotiate_parser = subparsers.add_parser('negotiate', help='Resolve a configuration request')
        negotiate_parser.add_argument('component',
                                      help='Component name or alias (h264, vp8, vp9)')
        negotiate_parser.add_argument('--width', type=int, help='Input picture width')
        negotiate_parser.add_argument('--height', type=int, help='Input picture height')
        negotiate_parser.add_argument('-f', '--fps', type=float, help='Frame rate')
        negotiate_parser.add_argument('-b', '--bitrate', type=int, help='Bitrate in bits per second')
        negotiate_parser.add_argument('--bitrate-mode', help='const or variable')
        negotiate_parser.add_argument('-p', '--profile', help='Profile, e.g. avc_high or vp9_0')
        negotiate_parser.add_argument('-l', '--level', help='Level, e.g. 3.1')
        negotiate_parser.add_argument('--intra-refresh-period', type=float, metavar='FRAMES',
                                      help='Intra refresh period (below 1 disables)')
        negotiate_parser.add_argument('--key-frame-period-us', type=int, metavar='US',
                                      help='Key frame period in microseconds (negative disables)')
        negotiate_parser.add_argument('--json', action='store_true', help='Print the result as JSON')

        subparsers.add_parser('levels', help='Print the H.264 level limit table')
        subparsers.add_parser('capabilities', help='Print the device encode capabilities')

        args = parser.parse_args(argv)
        if not args.command:
            parser.print_help()
            parser.exit(1)
        return args

    def _initialize_components(self, args: argparse.Namespace):
        self.config = ConfigManager(args.config_dir)
        self.config.update_from_args({
            'device.backend': args.backend,
            'device.path': args.device,
        })
        if not self.config.validate_config():
            raise ConfigurationError("Configuration validation failed")
        self.settings = EncoderSettings.from_config(self.config)

    def _execute_command(self, args: argparse.Namespace) -> int:
        if args.command == 'negotiate':
            return self._negotiate(args)
        if args.command == 'levels':
            return self._print_levels()
        if args.command == 'capabilities':
            return self._print_capabilities()
        logger.error(f"Unknown command: {args.command}")
        return 1

    def _build_updates(self, args: argparse.Namespace, interface: EncodeInterface) -> Dict[str, Any]:
        updates: Dict[str, Any] = {}
        if args.width is not None or args.height is not None:
            current = interface.get_picture_size()
            updates[PICTURE_SIZE] = (args.width if args.width is not None else current.width,
                                     args.height if args.height is not None else current.height)
        if args.fps is not None:
            updates[FRAME_RATE] = args.fps
        if args.bitrate is not None:
            updates[BITRATE] = args.bitrate
        if args.bitrate_mode is not None:
            updates[BITRATE_MODE] = args.bitrate_mode
        profile_level = {}
        if args.profile is not None:
            profile_level['profile'] = args.profile
        if args.level is not None:
            profile_level['level'] = args.level
        if profile_level:
            updates[PROFILE_LEVEL] = profile_level
        if args.intra_refresh_period is not None:
            updates[INTRA_REFRESH] = args.intra_refresh_period
        if args.key_frame_period_us is not None:
            updates[KEY_FRAME_PERIOD_US] = args.key_frame_period_us
        return updates

    def _negotiate(self, args: argparse.Namespace) -> int:
        component = COMPONENT_ALIASES.get(args.component.lower(), args.component)
        interface = EncodeInterface(component, lambda: create_encode_device(self.config), self.settings)
        try:
            updates = self._build_updates(args, interface)
            result = interface.config(updates) if updates else None
            snapshot = interface.snapshot()
        except InitializationError as e:
            print(f"Error: {e} ({e.status.value})", file=sys.stderr)
            return 1

        if args.json:
            payload = {'success': result is None or result.success, 'resolved': snapshot}
            if result is not None and result.failures:
                payload['failures'] = [
                    {'field': f.field, 'value': str(f.value), 'category': f.category.value, 'message': f.message}
                    for f in result.failures
                ]
            print(json.dumps(payload, indent=2))
        else:
            if result is not None and not result.success:
                print("Configuration rejected:")
                for failure in result.failures:
                    print(f"  • {failure.get_short_description()}")
                print("\nCurrent configuration:")
            for key, value in snapshot.items():
                print(f"{key:>24}: {value}")

        return 0 if result is None or result.success else 1

    def _print_levels(self) -> int:
        print(f"{'Level':>6}  {'Max MB/s':>10}  {'Max FS (MBs)':>12}  {'Max bitrate':>12}")
        for limits in H264_LEVEL_LIMITS:
            print(f"{level_label(limits.level):>6}  {limits.max_macroblocks_per_second:>10.0f}  "
                  f"{limits.max_frame_size_macroblocks:>12}  {limits.max_bitrate:>12}")
        return 0

    def _print_capabilities(self) -> int:
        if self.config.get('device.backend', 'v4l2') == 'v4l2':
            detector = EncodeCapabilityDetector(self.config.get('device.path'),
                                                self.config.get('device.probe_timeout', 10))
            for key, value in detector.system_info.items():
                print(f"{key:>16}: {value}")

        device = create_encode_device(self.config)
        if device is None:
            print("Error: encode device unavailable", file=sys.stderr)
            return 1

        profiles = device.get_supported_encode_profiles()
        if not profiles:
            print("No supported encode profiles reported")
            return 1
        for supported in profiles:
            print(f"{supported.profile.name:<36} max {supported.max_width}x{supported.max_height}")
        return 0


def main(argv: Optional[List[str]] = None):
    sys.exit(EncodeNegotiatorCLI().main(argv))

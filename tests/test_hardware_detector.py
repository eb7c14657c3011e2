"""
Unit tests for encode capability detection
Tests v4l2-ctl output parsing, device probing and backend selection
"""

import subprocess
import unittest
from unittest.mock import Mock, patch

from encode_negotiator.codec_types import Codec, Profile
from encode_negotiator.hardware_detector import (EncodeCapabilityDetector, StaticEncodeDevice,
                                                 SupportedEncodeProfile, V4L2EncodeDevice,
                                                 create_encode_device, parse_max_frame_size,
                                                 parse_profile_menus)

CTRLS_MENUS = """
Codec Controls

                 video_bitrate_mode 0x009909ce (menu)   : min=0 max=1 default=0 value=0 flags=update
                                0: Variable Bitrate
                                1: Constant Bitrate
                      video_bitrate 0x009909cf (int)    : min=10000 max=100000000 step=1 default=1000000 value=1000000
                      h264_profile 0x00990a6b (menu)   : min=0 max=4 default=4 value=4
                                0: Baseline
                                1: Constrained Baseline
                                2: Main
                                4: High
                        vp8_profile 0x00990a7f (menu)   : min=0 max=3 default=0 value=0
                                0: 0
                                1: 1
"""

FRAMESIZES = """ioctl: VIDIOC_ENUM_FRAMESIZES
\tSize: Stepwise 96x96 - 1920x1088 with step 16/16
"""


def completed(stdout="", returncode=0, stderr=""):
    return Mock(stdout=stdout, returncode=returncode, stderr=stderr)


class TestParsing(unittest.TestCase):

    def test_profile_menus(self):
        profiles = parse_profile_menus(CTRLS_MENUS)

        self.assertEqual(profiles[Codec.H264], [
            Profile.AVC_BASELINE, Profile.AVC_CONSTRAINED_BASELINE, Profile.AVC_MAIN, Profile.AVC_HIGH])
        self.assertEqual(profiles[Codec.VP8], [Profile.VP8_0, Profile.VP8_1])
        self.assertNotIn(Codec.VP9, profiles)

    def test_max_frame_size(self):
        self.assertEqual(parse_max_frame_size(FRAMESIZES), (1920, 1088))
        self.assertEqual(parse_max_frame_size("Size: Discrete 640x480\nSize: Discrete 320x720"), (640, 720))
        self.assertIsNone(parse_max_frame_size("no sizes"))


class TestV4L2EncodeDevice(unittest.TestCase):

    @patch('encode_negotiator.hardware_detector.subprocess.run')
    def test_supported_profiles(self, mock_run):
        def fake_run(cmd, **kwargs):
            if '--list-ctrls-menus' in cmd:
                return completed(CTRLS_MENUS)
            if '--list-framesizes=H264' in cmd:
                return completed(FRAMESIZES)
            return completed(returncode=1, stderr="unsupported format")

        mock_run.side_effect = fake_run
        device = V4L2EncodeDevice('/dev/video11')

        profiles = device.get_supported_encode_profiles()

        self.assertEqual(len(profiles), 4)
        self.assertIn(SupportedEncodeProfile(Profile.AVC_HIGH, 1920, 1088), profiles)
        self.assertTrue(all(p.profile != Profile.VP8_0 for p in profiles))
        first_cmd = mock_run.call_args_list[0][0][0]
        self.assertEqual(first_cmd[:3], ['v4l2-ctl', '-d', '/dev/video11'])

    @patch('encode_negotiator.hardware_detector.subprocess.run')
    def test_missing_tool_reports_nothing(self, mock_run):
        mock_run.side_effect = FileNotFoundError("v4l2-ctl")
        self.assertEqual(V4L2EncodeDevice('/dev/video11').get_supported_encode_profiles(), [])

    @patch('encode_negotiator.hardware_detector.subprocess.run')
    def test_timeout_reports_nothing(self, mock_run):
        mock_run.side_effect = subprocess.TimeoutExpired(cmd='v4l2-ctl', timeout=1)
        self.assertEqual(V4L2EncodeDevice('/dev/video11', timeout=1).get_supported_encode_profiles(), [])


class TestEncodeCapabilityDetector(unittest.TestCase):

    def test_system_info(self):
        detector = EncodeCapabilityDetector()
        self.assertIn('platform', detector.system_info)
        self.assertGreater(detector.system_info['cpu_count'], 0)

    def test_explicit_device_path(self):
        device = EncodeCapabilityDetector('/dev/video42').create_device()
        self.assertIsInstance(device, V4L2EncodeDevice)
        self.assertEqual(device.device_path, '/dev/video42')

    @patch('encode_negotiator.hardware_detector.subprocess.run')
    def test_encoder_node_discovery(self, mock_run):
        mock_run.return_value = completed(
            "bcm2835-codec-decode (platform:bcm2835-codec):\n"
            "\t/dev/video10\n"
            "\n"
            "bcm2835-codec-encode (platform:bcm2835-codec):\n"
            "\t/dev/video11\n"
            "\t/dev/media2\n",
            returncode=1,
        )

        device = EncodeCapabilityDetector().create_device()

        self.assertEqual(device.device_path, '/dev/video11')

    @patch('encode_negotiator.hardware_detector.subprocess.run')
    def test_no_encoder_node(self, mock_run):
        mock_run.side_effect = FileNotFoundError("v4l2-ctl")
        self.assertIsNone(EncodeCapabilityDetector().create_device())


class TestBackendSelection(unittest.TestCase):

    def _config(self, values):
        config = Mock()
        config.get.side_effect = lambda key, default=None: values.get(key, default)
        return config

    def test_static_backend(self):
        device = create_encode_device(self._config({
            'device.backend': 'static',
            'device.static_profiles': [
                {'profile': 'avc_high', 'max_width': 1280, 'max_height': 720},
                {'profile': 'not_a_profile', 'max_width': 1, 'max_height': 1},
                {'profile': 'vp9_0'},
            ],
        }))

        self.assertIsInstance(device, StaticEncodeDevice)
        self.assertEqual(device.get_supported_encode_profiles(),
                         [SupportedEncodeProfile(Profile.AVC_HIGH, 1280, 720)])

    def test_v4l2_backend_with_path(self):
        device = create_encode_device(self._config({'device.backend': 'v4l2', 'device.path': '/dev/video11'}))
        self.assertIsInstance(device, V4L2EncodeDevice)

    def test_unknown_backend(self):
        self.assertIsNone(create_encode_device(self._config({'device.backend': 'gpu'})))


if __name__ == '__main__':
    unittest.main()

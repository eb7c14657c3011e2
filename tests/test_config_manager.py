"""
Unit tests for ConfigManager and EncoderSettings
Tests YAML loading, packaged fallbacks, CLI overrides and settings validation
"""

import os
import shutil
import tempfile
import unittest

import yaml

from encode_negotiator.codec_types import BitrateMode, Codec, Level
from encode_negotiator.config_manager import ConfigManager, EncoderSettings
from encode_negotiator.errors import ConfigurationError
from encode_negotiator.level_limits import H264_SUPPORTED_LEVELS


class TestConfigManager(unittest.TestCase):

    def setUp(self):
        self.temp_dir = tempfile.mkdtemp()

    def tearDown(self):
        shutil.rmtree(self.temp_dir)

    def _write_config(self, data, name='encoder_interface.yaml'):
        with open(os.path.join(self.temp_dir, name), 'w') as f:
            yaml.dump(data, f)

    def test_packaged_defaults_used_when_directory_empty(self):
        config = ConfigManager(self.temp_dir)

        self.assertEqual(config.get('encoder_interface.defaults.bitrate'), 64000)
        self.assertEqual(config.get('device.backend'), 'v4l2')
        self.assertIsNotNone(config.get('logging.handlers.console'))
        self.assertTrue(config.validate_config())

    def test_directory_file_overrides_packaged_file(self):
        self._write_config({
            'encoder_interface': {'defaults': {'picture_size': [176, 144], 'frame_rate': 15}},
            'device': {'backend': 'static', 'static_profiles': [
                {'profile': 'avc_baseline', 'max_width': 640, 'max_height': 480}]},
        })

        config = ConfigManager(self.temp_dir)
        settings = EncoderSettings.from_config(config)

        self.assertEqual(config.get('device.backend'), 'static')
        self.assertEqual((settings.default_width, settings.default_height), (176, 144))
        self.assertEqual(settings.default_frame_rate, 15.0)
        self.assertEqual(settings.default_bitrate, 64000)
        self.assertTrue(config.validate_config())

    def test_missing_key_returns_default(self):
        config = ConfigManager(self.temp_dir)
        self.assertEqual(config.get('encoder_interface.nothing.here', 'fallback'), 'fallback')
        self.assertIsNone(config.get('device.backend.nested'))

    def test_invalid_yaml_raises(self):
        with open(os.path.join(self.temp_dir, 'encoder_interface.yaml'), 'w') as f:
            f.write("encoder_interface: [unclosed\n")
        with self.assertRaises(ConfigurationError):
            ConfigManager(self.temp_dir)

    def test_update_from_args_skips_none(self):
        config = ConfigManager(self.temp_dir)
        config.update_from_args({'device.backend': 'static', 'device.path': None, 'new.section.key': 3})

        self.assertEqual(config.get('device.backend'), 'static')
        self.assertIsNone(config.get('device.path'))
        self.assertEqual(config.get('new.section.key'), 3)

    def test_validation_failures(self):
        config = ConfigManager(self.temp_dir)

        config.update_from_args({'device.backend': 'gpu'})
        self.assertFalse(config.validate_config())

        config.update_from_args({'device.backend': 'static', 'device.static_profiles': [{'profile': 'avc_main'}]})
        self.assertFalse(config.validate_config())

        config.update_from_args({'device.backend': 'v4l2', 'device.probe_timeout': -1})
        self.assertFalse(config.validate_config())

        config.update_from_args({'device.probe_timeout': 5, 'encoder_interface.defaults.frame_rate': 0})
        self.assertFalse(config.validate_config())


class TestEncoderSettings(unittest.TestCase):

    def test_defaults(self):
        settings = EncoderSettings()

        self.assertEqual(settings.default_bitrate_mode, BitrateMode.CONST)
        self.assertEqual(settings.default_level(Codec.H264), Level.AVC_4_1)
        self.assertEqual(settings.default_level(Codec.VP9), Level.VP9_1)
        self.assertEqual(settings.default_level(Codec.VP8), Level.UNUSED)
        self.assertEqual(settings.supported_levels(Codec.H264), H264_SUPPORTED_LEVELS)

    def test_none_config_gives_defaults(self):
        self.assertEqual(EncoderSettings.from_config(None), EncoderSettings())

    def test_packaged_yaml_matches_defaults(self):
        temp_dir = tempfile.mkdtemp()
        try:
            self.assertEqual(EncoderSettings.from_config(ConfigManager(temp_dir)), EncoderSettings())
        finally:
            shutil.rmtree(temp_dir)

    def test_invalid_values_rejected(self):
        with self.assertRaises(ConfigurationError):
            EncoderSettings(default_frame_rate=0)
        with self.assertRaises(ConfigurationError):
            EncoderSettings(default_bitrate=60000000)
        with self.assertRaises(ConfigurationError):
            EncoderSettings(default_width=1)
        with self.assertRaises(ConfigurationError):
            EncoderSettings(h264_default_level=Level.AVC_5_2)

    def test_unsupported_default_bitrate_mode_rejected(self):
        with self.assertRaises(ConfigurationError):
            EncoderSettings(default_bitrate_mode=BitrateMode.CONST_SKIP_ALLOWED)

        temp_dir = tempfile.mkdtemp()
        try:
            config = ConfigManager(temp_dir)
            config.update_from_args({'encoder_interface.defaults.bitrate_mode': 'variable_skip_allowed'})
            with self.assertRaises(ConfigurationError):
                EncoderSettings.from_config(config)
            self.assertFalse(config.validate_config())
        finally:
            shutil.rmtree(temp_dir)

    def test_unparseable_level_rejected(self):
        temp_dir = tempfile.mkdtemp()
        try:
            config = ConfigManager(temp_dir)
            config.update_from_args({'encoder_interface.h264.default_level': '9.9'})
            with self.assertRaises(ConfigurationError):
                EncoderSettings.from_config(config)
        finally:
            shutil.rmtree(temp_dir)


if __name__ == '__main__':
    unittest.main()

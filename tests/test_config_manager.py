"""Tests for configuration management."""

import json
import os
import shutil
import tempfile
import unittest

import yaml

from pesa_ledger.utils.config_manager import ConfigManager
from pesa_ledger.models.core import LedgerConfig


class TestConfigManager(unittest.TestCase):
    """Test cases for ConfigManager"""

    def setUp(self):
        """Set up test fixtures"""
        self.temp_dir = tempfile.mkdtemp()
        self.config_file = os.path.join(self.temp_dir, 'test_config.json')

    def tearDown(self):
        """Clean up test fixtures"""
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def test_default_config_loading(self):
        """Test loading default configuration when no file exists"""
        manager = ConfigManager(config_path="nonexistent_file.json")
        config = manager.load_config()

        self.assertIsInstance(config, LedgerConfig)
        self.assertEqual(config.state_file, "ledger_state.json")
        self.assertEqual(config.sync_window_days, 30)
        self.assertEqual(config.enabled_providers, ["mpesa", "im_bank", "fuliza"])
        self.assertEqual(config.fee_counterparty, "FULIZA M-PESA")
        self.assertIsNone(config.fee_bands)

    def test_json_config_loading(self):
        """Test loading configuration from JSON file"""
        with open(self.config_file, 'w') as f:
            json.dump({
                "state_file": "custom_state.json",
                "sync_window_days": 7,
                "enabled_providers": ["mpesa"],
                "fee_bands": [[100, 0], [None, 10]]
            }, f)

        config = ConfigManager(config_path=self.config_file).load_config()

        self.assertEqual(config.state_file, "custom_state.json")
        self.assertEqual(config.sync_window_days, 7)
        self.assertEqual(config.enabled_providers, ["mpesa"])
        self.assertEqual(config.fee_bands, [[100, 0], [None, 10]])

    def test_yaml_config_loading(self):
        """Test loading configuration from YAML file"""
        yaml_file = os.path.join(self.temp_dir, 'config.yml')
        with open(yaml_file, 'w') as f:
            yaml.dump({"export_directory": "exports", "log_directory": "logs"}, f)

        config = ConfigManager(config_path=yaml_file).load_config()

        self.assertEqual(config.export_directory, "exports")
        self.assertEqual(config.log_directory, "logs")

    def test_invalid_config_falls_back_to_defaults(self):
        """Test invalid values are rejected as a whole"""
        for bad in ({"sync_window_days": -1},
                    {"enabled_providers": ["mpesa", "paypal"]},
                    {"fee_bands": [[100]]},
                    {"state_file": ""}):
            with open(self.config_file, 'w') as f:
                json.dump(bad, f)

            config = ConfigManager(config_path=self.config_file).load_config()

            self.assertEqual(config, LedgerConfig(), bad)

    def test_malformed_yaml_falls_back_to_defaults(self):
        yaml_file = os.path.join(self.temp_dir, 'broken.yaml')
        with open(yaml_file, 'w') as f:
            f.write("state_file: [unclosed\n")

        config = ConfigManager(config_path=yaml_file).load_config()

        self.assertEqual(config.state_file, "ledger_state.json")

    def test_config_caching(self):
        manager = ConfigManager(config_path="nonexistent_file.json")

        self.assertIs(manager.load_config(), manager.load_config())
        first = manager.load_config()
        manager.reset_config()
        self.assertIsNot(manager.load_config(), first)

    def test_update_config(self):
        manager = ConfigManager(config_path="nonexistent_file.json")
        manager.update_config({"sync_window_days": 90, "unknown_key": True})

        config = manager.load_config()
        self.assertEqual(config.sync_window_days, 90)
        self.assertFalse(hasattr(config, "unknown_key"))

    def test_save_config_template_round_trip(self):
        """Test templates in both formats load back cleanly"""
        for name in ('template.json', 'template.yaml'):
            path = os.path.join(self.temp_dir, 'nested', name)
            ConfigManager().save_config_template(path)

            config = ConfigManager(config_path=path).load_config()

            self.assertEqual(config.log_directory, "logs")
            self.assertEqual(config.fee_bands[-1], [None, 30])


if __name__ == '__main__':
    unittest.main()

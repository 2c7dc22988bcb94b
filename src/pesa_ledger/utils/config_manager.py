"""Configuration management for the message ledger."""

import json
import os
import yaml
from typing import Dict, Any, Optional
import logging

from ..models.core import LedgerConfig


logger = logging.getLogger(__name__)

KNOWN_PROVIDERS = ('mpesa', 'im_bank', 'fuliza')


class ConfigManager:
    """Manages loading and validation of ledger configuration"""

    def __init__(self, config_path: Optional[str] = None):
        """Initialize configuration manager

        Args:
            config_path: Path to configuration file. If None, searches for default locations.
        """
        self.config_path = config_path
        self._config_cache: Optional[LedgerConfig] = None

    def load_config(self, force_reload: bool = False) -> LedgerConfig:
        """Load ledger configuration from file or return default

        Args:
            force_reload: Force reload from file even if cached

        Returns:
            LedgerConfig instance with loaded or default configuration
        """
        if self._config_cache is not None and not force_reload:
            return self._config_cache

        config_data = self._load_config_file()

        self._config_cache = LedgerConfig(
            state_file=config_data.get('state_file', 'ledger_state.json'),
            export_directory=config_data.get('export_directory', 'data'),
            log_directory=config_data.get('log_directory'),
            sync_window_days=config_data.get('sync_window_days', 30),
            enabled_providers=config_data.get('enabled_providers'),
            fee_bands=config_data.get('fee_bands'),
            fee_counterparty=config_data.get('fee_counterparty', 'FULIZA M-PESA')
        )
        logger.debug(f"Configuration loaded from {self._find_config_file() or 'defaults'}")
        return self._config_cache

    def _load_config_file(self) -> Dict[str, Any]:
        """Load configuration from file

        Returns:
            Dictionary with configuration data or empty dict if no file found
            or the file is invalid
        """
        config_file = self._find_config_file()

        if not config_file or not os.path.exists(config_file):
            if self.config_path:
                logger.warning(f"Configuration file not found: {self.config_path}. Using defaults.")
            else:
                logger.info("No configuration file found, using defaults")
            return {}

        try:
            with open(config_file, 'r', encoding='utf-8') as f:
                if config_file.endswith('.json'):
                    data = json.load(f)
                elif config_file.endswith(('.yml', '.yaml')):
                    data = yaml.safe_load(f)
                else:
                    logger.warning(f"Unsupported config file format: {config_file}")
                    return {}

            if data is None:
                return {}
            self._validate_config_data(data)
            logger.info(f"Configuration loaded from {config_file}")
            return data

        except (OSError, ValueError, yaml.YAMLError) as e:
            logger.warning(f"Error reading configuration file {config_file}: {e}. Using defaults.")
            return {}

    def _find_config_file(self) -> Optional[str]:
        """Find configuration file in standard locations"""
        if self.config_path:
            return self.config_path

        search_paths = [
            'ledger_config.json',
            'ledger_config.yml',
            'ledger_config.yaml',
            'config/ledger_config.json',
            'config/ledger_config.yml',
            'config/ledger_config.yaml',
            os.path.expanduser('~/.pesa_ledger/config.json'),
            os.path.expanduser('~/.pesa_ledger/config.yml'),
            os.path.expanduser('~/.pesa_ledger/config.yaml'),
        ]

        for path in search_paths:
            if os.path.exists(path):
                return path

        return None

    def _validate_config_data(self, data: Dict[str, Any]) -> None:
        """Validate configuration data structure

        Raises:
            ValueError: If configuration data is invalid
        """
        if not isinstance(data, dict):
            raise ValueError("Configuration must be a dictionary")

        for path_key in ['state_file', 'export_directory', 'fee_counterparty']:
            if path_key in data:
                if not isinstance(data[path_key], str):
                    raise ValueError(f"{path_key} must be a string")
                if not data[path_key].strip():
                    raise ValueError(f"{path_key} cannot be empty")

        if data.get('log_directory') is not None and not isinstance(data['log_directory'], str):
            raise ValueError("log_directory must be a string")

        if 'sync_window_days' in data:
            days = data['sync_window_days']
            if isinstance(days, bool) or not isinstance(days, int) or days <= 0:
                raise ValueError("sync_window_days must be a positive integer")

        if 'enabled_providers' in data:
            providers = data['enabled_providers']
            if not isinstance(providers, list):
                raise ValueError("enabled_providers must be a list")
            for provider in providers:
                if provider not in KNOWN_PROVIDERS:
                    raise ValueError(f"Unknown provider: {provider}")

        if data.get('fee_bands') is not None:
            self._validate_fee_bands(data['fee_bands'])

    def _validate_fee_bands(self, fee_bands: Any) -> None:
        if not isinstance(fee_bands, list) or not fee_bands:
            raise ValueError("fee_bands must be a non-empty list")
        for band in fee_bands:
            if not isinstance(band, list) or len(band) != 2:
                raise ValueError("Each fee band must be [upper_bound, fee]")
            bound, fee = band
            if bound is not None and not isinstance(bound, (int, float)):
                raise ValueError(f"Invalid fee band upper bound: {bound}")
            if not isinstance(fee, (int, float)) or fee < 0:
                raise ValueError(f"Invalid fee band fee: {fee}")

    def save_config_template(self, output_path: str) -> None:
        """Generate and save a configuration file template

        Args:
            output_path: Path where to save the template
        """
        template = {
            "state_file": "ledger_state.json",
            "export_directory": "data",
            "log_directory": "logs",
            "sync_window_days": 30,
            "enabled_providers": list(KNOWN_PROVIDERS),
            "fee_counterparty": "FULIZA M-PESA",
            "fee_bands": [
                [100, 0],
                [500, 3],
                [1000, 6],
                [1500, 18],
                [2500, 20],
                [70000, 25],
                [None, 30]
            ]
        }

        output_dir = os.path.dirname(output_path)
        if output_dir:
            os.makedirs(output_dir, exist_ok=True)

        with open(output_path, 'w', encoding='utf-8') as f:
            if output_path.endswith(('.yml', '.yaml')):
                yaml.dump(template, f, default_flow_style=False, indent=2)
            else:
                json.dump(template, f, indent=2)

        logger.info(f"Configuration template saved to {output_path}")

    def update_config(self, updates: Dict[str, Any]) -> None:
        """Update configuration with new values

        Args:
            updates: Dictionary of configuration updates
        """
        if self._config_cache is None:
            self.load_config()

        for key, value in updates.items():
            if hasattr(self._config_cache, key):
                setattr(self._config_cache, key, value)
                logger.debug(f"Updated configuration: {key} = {value}")
            else:
                logger.warning(f"Unknown configuration key: {key}")

    def reset_config(self) -> None:
        """Reset configuration cache, forcing reload on next access"""
        self._config_cache = None
        logger.debug("Configuration cache reset")

"""
Configuration manager for the unscented Kalman filter.
"""

import copy
import json
import logging
import os
from typing import Dict, Any, Optional

from .math.constants import *

logger = logging.getLogger(__name__)

class Config:
    """Configuration manager for filter tuning and sensor selection."""

    DEFAULT_CONFIG = {
        # Process noise standard deviations
        "process_noise": {
            "std_a": STD_A,
            "std_yawdd": STD_YAWDD
        },

        # Measurement noise standard deviations
        "measurement_noise": {
            "std_laspx": STD_LASPX,
            "std_laspy": STD_LASPY,
            "std_radr": STD_RADR,
            "std_radphi": STD_RADPHI,
            "std_radrd": STD_RADRD,
            "min_range": MIN_RANGE
        },

        # Disabled sensors are still used for initialization
        "sensors": {
            "use_position": True,
            "use_range_bearing_rate": True
        },

        # Numerical recovery
        "filter": {
            "regularization": COVARIANCE_REGULARIZATION
        }
    }

    def __init__(self, config_file: Optional[str] = None):
        """
        Initialize configuration.

        Args:
            config_file: Path to a JSON configuration file, or None for defaults
        """
        self.config_file = config_file
        self.config = copy.deepcopy(self.DEFAULT_CONFIG)

        # Load configuration from file if it exists
        if config_file is not None:
            if os.path.exists(config_file):
                self.load_config()
            else:
                logger.info("Config file %s not found, using defaults", config_file)

    def load_config(self) -> bool:
        """
        Load configuration from file.

        Returns:
            True if loaded successfully
        """
        try:
            with open(self.config_file, 'r') as f:
                file_config = json.load(f)
        except (OSError, ValueError) as e:
            logger.error("Failed to load config %s: %s", self.config_file, e)
            return False

        # Merge with defaults (file config overrides defaults)
        self._merge_config(self.config, file_config)

        logger.info("Configuration loaded from %s", self.config_file)
        return True

    def save_config(self, config_file: Optional[str] = None) -> bool:
        """
        Save current configuration to file.

        Returns:
            True if saved successfully
        """
        path = config_file or self.config_file
        if path is None:
            raise ValueError("No configuration file path given")

        try:
            with open(path, 'w') as f:
                json.dump(self.config, f, indent=2)
        except OSError as e:
            logger.error("Failed to save config %s: %s", path, e)
            return False

        logger.info("Configuration saved to %s", path)
        return True

    def _merge_config(self, base: Dict[str, Any], override: Dict[str, Any]):
        """Recursively merge configuration dictionaries."""
        for key, value in override.items():
            if key in base and isinstance(base[key], dict) and isinstance(value, dict):
                self._merge_config(base[key], value)
            else:
                base[key] = value

    def get(self, key: str, default=None):
        """Get configuration value with optional default."""
        keys = key.split('.')
        value = self.config

        for k in keys:
            if isinstance(value, dict) and k in value:
                value = value[k]
            else:
                return default

        return value

    def set(self, key: str, value: Any):
        """Set configuration value."""
        keys = key.split('.')
        config = self.config

        for k in keys[:-1]:
            if k not in config:
                config[k] = {}
            config = config[k]

        config[keys[-1]] = value

    # Property accessors for common configuration values
    @property
    def process_noise(self) -> Dict[str, float]:
        return self.config["process_noise"]

    @property
    def measurement_noise(self) -> Dict[str, float]:
        return self.config["measurement_noise"]

    @property
    def use_position(self) -> bool:
        return self.config["sensors"]["use_position"]

    @property
    def use_range_bearing_rate(self) -> bool:
        return self.config["sensors"]["use_range_bearing_rate"]

    @property
    def regularization(self) -> float:
        return self.config["filter"]["regularization"]

    def __str__(self) -> str:
        return json.dumps(self.config, indent=2)

# ========================
# src/utils/config.py
# ========================

"""
Configuration Management

Centralized configuration for the trip data pipeline with environment support.
"""

import json
import os
from pathlib import Path
from typing import Dict, Any, Optional


def _split_list(value: str):
    return tuple(item.strip() for item in value.split(',') if item.strip())


class Config:
    """
    Configuration class for the trip data pipeline.
    Supports environment variables and default values.
    """

    def __init__(self, config_dict: Optional[Dict[str, Any]] = None):
        """
        Initialize configuration.

        Args:
            config_dict (dict): Optional configuration overrides
        """
        # Data Processing Configuration
        self.DEFAULT_CHUNK_SIZE = int(os.getenv('PIPELINE_CHUNK_SIZE', '10000'))

        # File Paths
        self.DEFAULT_INPUT_DIR = os.getenv('PIPELINE_INPUT_DIR', 'data/raw')
        self.INPUT_GLOB = os.getenv('PIPELINE_INPUT_GLOB', '*.csv')
        self.DEFAULT_OUTPUT_DIR = os.getenv('PIPELINE_OUTPUT_DIR', 'data/processed')

        # Data Generation Settings
        self.DEFAULT_SAMPLE_ROWS = int(os.getenv('SAMPLE_ROWS', '10000'))
        self.SAMPLE_ERROR_RATE = float(os.getenv('SAMPLE_ERROR_RATE', '0.05'))

        # Ride Length Thresholds (minutes, both exclusive)
        self.MIN_RIDE_MINUTES = float(os.getenv('MIN_RIDE_MINUTES', '0'))
        self.MAX_RIDE_MINUTES = float(os.getenv('MAX_RIDE_MINUTES', '1440'))

        # Stations used for maintenance checkouts
        self.EXCLUDED_STATIONS = _split_list(os.getenv('EXCLUDED_STATIONS', 'HQ QR'))

        # Logging Configuration
        self.LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')

        # Data Quality Settings
        self.MIN_DATA_QUALITY_RATE = float(os.getenv('MIN_DATA_QUALITY_RATE', '0.9'))  # 90%

        # Override with provided config
        if config_dict:
            self._update_from_dict(config_dict)

    def _update_from_dict(self, config_dict: Dict[str, Any]) -> None:
        """Update configuration from dictionary."""
        for key, value in config_dict.items():
            if hasattr(self, key.upper()):
                if key.upper() == 'EXCLUDED_STATIONS':
                    value = _split_list(value) if isinstance(value, str) else tuple(value)
                setattr(self, key.upper(), value)

    def get_data_paths(self) -> Dict[str, Path]:
        """Get all configured data paths as Path objects."""
        return {
            'input_dir': Path(self.DEFAULT_INPUT_DIR),
            'output_dir': Path(self.DEFAULT_OUTPUT_DIR),
            'logs_dir': Path('logs')
        }

    def ensure_directories(self) -> None:
        """Create necessary directories if they don't exist."""
        for path in self.get_data_paths().values():
            path.mkdir(parents=True, exist_ok=True)

    def validate_config(self) -> Dict[str, bool]:
        """
        Validate configuration values.

        Returns:
            dict: Validation results for each setting
        """
        validations = {}

        validations['chunk_size'] = self.DEFAULT_CHUNK_SIZE > 0
        validations['sample_rows'] = self.DEFAULT_SAMPLE_ROWS > 0
        validations['sample_error_rate'] = 0.0 <= self.SAMPLE_ERROR_RATE <= 1.0
        validations['ride_length_window'] = 0.0 <= self.MIN_RIDE_MINUTES < self.MAX_RIDE_MINUTES
        validations['quality_rate'] = 0.0 <= self.MIN_DATA_QUALITY_RATE <= 1.0

        valid_log_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        validations['log_level'] = self.LOG_LEVEL.upper() in valid_log_levels

        return validations

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary."""
        return {
            attr: getattr(self, attr)
            for attr in dir(self)
            if not attr.startswith('_') and not callable(getattr(self, attr))
        }

    def save_to_file(self, file_path: str) -> None:
        """Save configuration to JSON file."""
        with open(file_path, 'w') as f:
            json.dump(self.to_dict(), f, indent=2, default=str)

    @classmethod
    def load_from_file(cls, file_path: str) -> 'Config':
        """Load configuration from JSON file."""
        with open(file_path, 'r') as f:
            config_dict = json.load(f)
        return cls(config_dict)

    def __str__(self) -> str:
        """String representation of configuration."""
        lines = ["Configuration Settings:"]
        config_dict = self.to_dict()
        for key, value in sorted(config_dict.items()):
            lines.append(f"  {key}: {value}")
        return "\n".join(lines)

"""
Configuration management for the Campaign Engine
"""

import json
import os
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from loguru import logger
from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from .exceptions import ConfigurationError
from .models import PreviewMode


ENV_PREFIX = "CAMPAIGN_ENGINE_"

DEFAULT_SECTION_PRIORITY = [
    "Your Prequalified Offers",
    "Auto Loans & Offers",
    "Home Loans & Offers",
    "Credit Cards",
    "Savings & Deposits",
    "Retirement & Savings",
    "Special Offers",
]

VALID_LOG_LEVELS = ["TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"]


class EngineConfig(BaseModel):
    """Configuration model for the Campaign Engine"""

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")
    log_file: Optional[str] = Field(default=None, description="Optional log file path")
    log_rotation: str = Field(default="10 MB", description="Log rotation size")
    log_retention: str = Field(default="30 days", description="Log retention period")

    # Section naming
    prequalified_section: str = Field(default="Your Prequalified Offers", description="Section hoisted to the front for a selected profile")
    credit_mountain_section: str = Field(default="Credit Monitoring & Coaching", description="Credit Mountain coaching section")
    default_section_name: str = Field(default="Other Offers", description="Section used for offers with no section")
    section_priority: List[str] = Field(default_factory=lambda: list(DEFAULT_SECTION_PRIORITY), description="Canonical section order when no profile is selected")

    # Feature flags and modes
    credit_mountain_flag: str = Field(default="storefront_creditMountain", description="Feature flag enabling Credit Mountain")
    default_preview_mode: PreviewMode = Field(default=PreviewMode.LIVE, description="Preview mode used when none is given")

    # Attribute mapping
    field_mapping_path: Optional[str] = Field(default=None, description="Path to a custom field mapping JSON")


class ConfigManager:
    """Configuration manager for the Campaign Engine"""

    def __init__(self, config_file: Optional[str] = None):
        """
        Initialize configuration manager

        Args:
            config_file: Path to configuration file
        """
        self.config_file = config_file or "campaign_engine_config.json"
        self._config = None
        self._load_config()

    def _load_config(self) -> None:
        """Load configuration from file, then apply environment overrides"""
        config_data: Dict[str, Any] = {}
        try:
            if Path(self.config_file).exists():
                with open(self.config_file, 'r', encoding='utf-8') as f:
                    config_data = json.load(f)
            config_data.update(self.get_environment_config())
            self._config = EngineConfig(**config_data)
        except (OSError, ValueError, PydanticValidationError) as e:
            logger.warning(f"Failed to load configuration: {e}")
            self._config = EngineConfig()

    def get_config(self) -> EngineConfig:
        """Get current configuration"""
        return self._config

    def update_config(self, **kwargs) -> None:
        """Update configuration with new values"""
        values = self._config.model_dump()
        for key, value in kwargs.items():
            if key in values:
                values[key] = value
            else:
                logger.warning(f"Ignoring unknown configuration key: {key}")
        try:
            self._config = EngineConfig(**values)
        except PydanticValidationError as e:
            raise ConfigurationError(f"Invalid configuration update: {e}") from e

    def save_config(self) -> None:
        """Save current configuration to file"""
        try:
            with open(self.config_file, 'w', encoding='utf-8') as f:
                json.dump(self._config.model_dump(mode="json"), f, indent=2)
        except OSError as e:
            logger.warning(f"Failed to save configuration: {e}")

    def reset_to_defaults(self) -> None:
        """Reset configuration to defaults"""
        self._config = EngineConfig()

    def validate_config(self) -> Dict[str, Any]:
        """Validate current configuration"""
        validation_results = {
            'valid': True,
            'warnings': [],
            'errors': []
        }

        if self._config.log_level.upper() not in VALID_LOG_LEVELS:
            validation_results['errors'].append(f"Invalid log level: {self._config.log_level}")
            validation_results['valid'] = False

        if len(set(self._config.section_priority)) != len(self._config.section_priority):
            validation_results['warnings'].append("section_priority contains duplicate names")

        if self._config.credit_mountain_section in self._config.section_priority:
            validation_results['warnings'].append(
                "credit_mountain_section is listed in section_priority but is always rendered separately"
            )

        if self._config.field_mapping_path and not Path(self._config.field_mapping_path).exists():
            validation_results['errors'].append(f"Field mapping file does not exist: {self._config.field_mapping_path}")
            validation_results['valid'] = False

        return validation_results

    def get_environment_config(self) -> Dict[str, Any]:
        """Get configuration from environment variables"""
        env_config = {}

        for field_name in EngineConfig.model_fields:
            env_value = os.getenv(f"{ENV_PREFIX}{field_name.upper()}")
            if env_value is None:
                continue
            if field_name == 'section_priority':
                # Accept a JSON list or a comma separated string
                try:
                    env_config[field_name] = json.loads(env_value)
                except json.JSONDecodeError:
                    env_config[field_name] = [s.strip() for s in env_value.split(',') if s.strip()]
            else:
                env_config[field_name] = env_value

        return env_config


def setup_logging(level: str = "INFO", log_file: Optional[str] = None,
                  rotation: str = "10 MB", retention: str = "30 days") -> None:
    """
    Replace loguru's default sink with the engine's format

    Args:
        level: Minimum level for all sinks
        log_file: Optional file sink, rotated and retained per the given policy
    """
    level = level.upper()
    if level not in VALID_LOG_LEVELS:
        raise ConfigurationError(f"Invalid log level: {level}")

    logger.remove()
    logger.add(
        sys.stderr,
        level=level,
        format="<green>{time:HH:mm:ss}</green> | <level>{level}</level> | {message}"
    )
    if log_file:
        logger.add(log_file, level=level, rotation=rotation, retention=retention)


# Global configuration instance
config_manager = ConfigManager()


def get_config() -> EngineConfig:
    """Get the global configuration instance"""
    return config_manager.get_config()


def update_config(**kwargs) -> None:
    """Update the global configuration"""
    config_manager.update_config(**kwargs)

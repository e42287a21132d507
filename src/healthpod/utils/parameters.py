"""
Configuration and parameter loading using Pydantic.

This module provides centralized configuration management for the entire application.
All parameters are loaded from YAML and validated using Pydantic models.
"""

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from healthpod.utils.exceptions import ConfigurationError


class PodConfig(BaseModel):
    """Solid Pod storage configuration."""

    backend: str = Field("solid", pattern="^(solid|local)$")
    root_url: str | None = None
    access_token: str | None = None
    local_dir: str = "pod"
    timeout_seconds: float = 30.0
    features: list[str] = Field(
        default_factory=lambda: [
            "blood_pressure",
            "vaccination",
            "diary",
            "medication",
            "profile",
        ]
    )


class EncryptionConfig(BaseModel):
    """Record encryption configuration."""

    salt: str = "healthpod"
    iterations: int = Field(390000, gt=0)


class CSVConfig(BaseModel):
    """CSV parsing configuration."""

    encodings: list[str] = Field(default_factory=lambda: ["utf-8-sig", "utf-8", "latin-1"])
    delimiters: list[str] = Field(default_factory=lambda: [",", ";", "\t"])


class ProcessingConfig(BaseModel):
    """Data processing configuration."""

    timezone: str = "Australia/Sydney"


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    file: str | None = None
    console: bool = True


class AppConfig(BaseSettings):
    """Main application configuration."""

    pod: PodConfig = Field(default_factory=PodConfig)
    encryption: EncryptionConfig = Field(default_factory=EncryptionConfig)
    csv: CSVConfig = Field(default_factory=CSVConfig)
    processing: ProcessingConfig = Field(default_factory=ProcessingConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = SettingsConfigDict(
        env_prefix="HEALTHPOD_", env_nested_delimiter="__", case_sensitive=False
    )


class ParameterLoader:
    """
    Centralized parameter loader for the application.

    Loads and validates configuration from YAML files using Pydantic models.
    Provides type-safe access to all configuration parameters.
    """

    def __init__(self, config_path: str = "config/config.yaml") -> None:
        """
        Initialize parameter loader.

        Args:
            config_path: Path to the YAML configuration file.

        Raises:
            ConfigurationError: If configuration file cannot be loaded or is invalid.
        """
        self.config_path = Path(config_path)
        self.config: AppConfig
        self._load_config()

    def _load_config(self) -> None:
        """
        Load configuration from YAML file.

        Raises:
            ConfigurationError: If configuration file cannot be loaded or is invalid.
        """
        if not self.config_path.exists():
            raise ConfigurationError(f"Configuration file not found: {self.config_path}")

        try:
            with open(self.config_path, encoding="utf-8") as f:
                config_dict = yaml.safe_load(f) or {}

            self.config = AppConfig(**config_dict)

        except yaml.YAMLError as e:
            raise ConfigurationError(f"Failed to parse YAML configuration: {e}") from e
        except Exception as e:
            raise ConfigurationError(f"Failed to load configuration: {e}") from e

    def get_pod_config(self) -> PodConfig:
        """Get Solid Pod configuration."""
        return self.config.pod

    def get_encryption_config(self) -> EncryptionConfig:
        """Get record encryption configuration."""
        return self.config.encryption

    def get_csv_config(self) -> CSVConfig:
        """Get CSV parsing configuration."""
        return self.config.csv

    def get_processing_config(self) -> ProcessingConfig:
        """Get data processing configuration."""
        return self.config.processing

    def get_logging_config(self) -> LoggingConfig:
        """Get logging configuration."""
        return self.config.logging

    def get_raw_config(self) -> dict[str, Any]:
        """
        Get raw configuration dictionary.

        The Pod access token is masked.

        Returns:
            Dictionary representation of the configuration.
        """
        data = self.config.model_dump()
        if data["pod"].get("access_token"):
            data["pod"]["access_token"] = "***"
        return data

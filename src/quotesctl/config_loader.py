"""Configuration loader with Pydantic validation and environment variable interpolation."""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Any

import yaml
from dotenv import find_dotenv, load_dotenv
from pydantic import BaseModel, Field, field_validator, model_validator

# Load environment variables at module level
load_dotenv(find_dotenv(usecwd=True))

from quotesctl.constants import (
    BULK_PROGRESS_EVERY,
    DEFAULT_BROKER,
    DEFAULT_CHUNK_SIZE,
    DEFAULT_CLIENT_ID,
    DEFAULT_FLUSH_TIMEOUT_SECONDS,
    DEFAULT_INTERVAL_MS,
    DEFAULT_TOPIC,
    LOG_FORMAT,
    MAX_BATCH_SIZE,
    PACED_PROGRESS_EVERY,
    LogLevel,
)


def interpolate_env_vars(value: Any) -> Any:
    """
    Interpolate environment variables in string values.

    Supports formats:
    - ${VAR_NAME} - empty string if not set
    - ${VAR_NAME:default} - optional with default value
    """
    if not isinstance(value, str):
        return value

    pattern = r"\$\{([^}:]+)(?::([^}]*))?\}"

    def replacer(match: re.Match[str]) -> str:
        var_name = match.group(1)
        default = match.group(2)

        env_value = os.environ.get(var_name)

        if env_value is not None:
            return env_value
        elif default is not None:
            return default
        else:
            # Return empty string for optional unset vars without default
            return ""

    return re.sub(pattern, replacer, value)


def process_config_dict(data: dict[str, Any]) -> dict[str, Any]:
    """Recursively process config dict to interpolate env vars."""
    result = {}
    for key, value in data.items():
        if isinstance(value, dict):
            result[key] = process_config_dict(value)
        elif isinstance(value, list):
            result[key] = [
                process_config_dict(item) if isinstance(item, dict) else interpolate_env_vars(item)
                for item in value
            ]
        else:
            result[key] = interpolate_env_vars(value)
    return result


# Used when no config file is given: connection settings come from the environment
DEFAULT_CONFIG_DOCUMENT: dict[str, Any] = {
    "environment": {"log_level": "${LOG_LEVEL:INFO}"},
    "kafka": {
        "broker": f"${{KAFKA_BROKER:{DEFAULT_BROKER}}}",
        "user": "${KAFKA_USER:}",
        "password": "${KAFKA_PASSWORD:}",
        "tls": "${KAFKA_TLS:false}",
        "topic": f"${{TOPIC:{DEFAULT_TOPIC}}}",
    },
}


# ============================================
# Pydantic Configuration Models
# ============================================


class EnvironmentConfig(BaseModel):
    """Runtime settings."""

    log_level: LogLevel = LogLevel.INFO
    log_format: str = LOG_FORMAT

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.upper()
        return v


class KafkaConfig(BaseModel):
    """Kafka connection and producer settings."""

    broker: str = DEFAULT_BROKER
    user: str = ""
    password: str = ""
    tls: bool = False
    topic: str = DEFAULT_TOPIC
    client_id: str = DEFAULT_CLIENT_ID
    linger_ms: int = 10
    flush_timeout_seconds: float = DEFAULT_FLUSH_TIMEOUT_SECONDS
    max_batch_size: int = MAX_BATCH_SIZE

    @field_validator("broker", "topic")
    @classmethod
    def validate_not_empty(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Value must not be empty")
        return v.strip()

    @field_validator("flush_timeout_seconds")
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError(f"Flush timeout must be positive, got: {v}")
        return v

    @field_validator("max_batch_size")
    @classmethod
    def validate_batch_size(cls, v: int) -> int:
        if not 1 <= v <= MAX_BATCH_SIZE:
            raise ValueError(f"Batch size must be 1-{MAX_BATCH_SIZE}, got: {v}")
        return v

    @model_validator(mode="after")
    def validate_credentials(self) -> KafkaConfig:
        """User and password must be given together."""
        if bool(self.user) != bool(self.password):
            raise ValueError("Kafka user and password must both be specified")
        return self

    @property
    def has_credentials(self) -> bool:
        return bool(self.user and self.password)

    @property
    def security_protocol(self) -> str:
        if self.has_credentials:
            return "SASL_SSL" if self.tls else "SASL_PLAINTEXT"
        return "SSL" if self.tls else "PLAINTEXT"


class GeneratorConfig(BaseModel):
    """Quote generator defaults."""

    symbol: str = ""
    rate: float = 0.0  # messages per second, <= 0 means unpaced
    history: bool = False
    interval_ms: int = DEFAULT_INTERVAL_MS
    price: float = 0.0  # 0 = catalog default
    seed: int = 0  # 0 = wall clock
    chunk_size: int = DEFAULT_CHUNK_SIZE
    bulk_progress_every: int = BULK_PROGRESS_EVERY
    paced_progress_every: int = PACED_PROGRESS_EVERY

    @field_validator("interval_ms", "chunk_size")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError(f"Value must be positive, got: {v}")
        return v

    @field_validator("bulk_progress_every", "paced_progress_every")
    @classmethod
    def validate_non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError(f"Value must be non-negative, got: {v}")
        return v

    @field_validator("symbol")
    @classmethod
    def normalize_symbol(cls, v: str) -> str:
        return v.strip().upper()


class AppConfig(BaseModel):
    """Root application configuration."""

    environment: EnvironmentConfig = Field(default_factory=EnvironmentConfig)
    kafka: KafkaConfig = Field(default_factory=KafkaConfig)
    generator: GeneratorConfig = Field(default_factory=GeneratorConfig)

    @property
    def can_send(self) -> bool:
        """Check if Kafka credentials are configured."""
        return self.kafka.has_credentials


# ============================================
# Configuration Loader
# ============================================


class ConfigLoader:
    """Load and validate configuration from YAML files with env var interpolation."""

    def __init__(self, config_path: str | Path) -> None:
        """
        Initialize config loader.

        Args:
            config_path: Path to the YAML configuration file.
        """
        self.config_path = Path(config_path)
        self._config: AppConfig | None = None

    def load(self) -> AppConfig:
        """
        Load and validate configuration.

        Returns:
            Validated AppConfig instance.

        Raises:
            FileNotFoundError: If config file doesn't exist.
            yaml.YAMLError: If YAML is invalid.
            pydantic.ValidationError: If config validation fails.
        """
        if not self.config_path.exists():
            raise FileNotFoundError(f"Config file not found: {self.config_path}")

        with open(self.config_path, encoding="utf-8") as f:
            raw_config = yaml.safe_load(f)

        if raw_config is None:
            raw_config = {}

        # Interpolate environment variables
        processed_config = process_config_dict(raw_config)

        # Validate with Pydantic
        self._config = AppConfig.model_validate(processed_config)

        return self._config

    @property
    def config(self) -> AppConfig:
        """Get loaded config, loading if necessary."""
        if self._config is None:
            return self.load()
        return self._config

    def reload(self) -> AppConfig:
        """Force reload configuration from disk."""
        self._config = None
        return self.load()


def load_config(config_path: str | Path) -> AppConfig:
    """
    Convenience function to load configuration.

    Args:
        config_path: Path to the YAML configuration file.

    Returns:
        Validated AppConfig instance.
    """
    loader = ConfigLoader(config_path)
    return loader.load()


def load_default_config() -> AppConfig:
    """Built-in defaults with connection settings taken from the environment."""
    return AppConfig.model_validate(process_config_dict(DEFAULT_CONFIG_DOCUMENT))


def load_config_with_overrides(
    config_path: str | Path | None = None,
    *,
    kafka: dict[str, Any] | None = None,
    generator: dict[str, Any] | None = None,
    log_level: str | None = None,
) -> AppConfig:
    """
    Load configuration with CLI overrides.

    Args:
        config_path: Path to the YAML configuration file, or None for the
            environment-driven defaults.
        kafka: KafkaConfig field overrides; None values are ignored.
        generator: GeneratorConfig field overrides; None values are ignored.
        log_level: Override log level.

    Returns:
        Validated AppConfig instance with overrides applied.
    """
    config = load_config(config_path) if config_path else load_default_config()

    def merge(section: BaseModel, overrides: dict[str, Any] | None) -> BaseModel | None:
        values = {k: v for k, v in (overrides or {}).items() if v is not None}
        if not values:
            return None
        # Re-validate so overrides go through the same field validators
        return type(section).model_validate({**section.model_dump(), **values})

    updates: dict[str, Any] = {}

    kafka_section = merge(config.kafka, kafka)
    if kafka_section is not None:
        updates["kafka"] = kafka_section

    generator_section = merge(config.generator, generator)
    if generator_section is not None:
        updates["generator"] = generator_section

    if log_level is not None:
        updates["environment"] = merge(config.environment, {"log_level": log_level})

    if updates:
        return config.model_copy(update=updates)

    return config

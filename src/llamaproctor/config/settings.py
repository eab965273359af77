"""Configuration management for llamaproctor.

Loads settings from a YAML configuration file with environment variable
overrides for sensitive values (API keys, MongoDB URI). Supports .env files.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, Field, SecretStr
from pydantic_settings import BaseSettings

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path("config/llamaproctor.yaml")

LLAMA_API_BASE_URL = "https://api.llama.com/compat/v1/"


class CaptureConfig(BaseModel):
    monitor_index: int = Field(default=1, ge=0, description="mss monitor index (0 = all monitors)")
    capture_interval: float = Field(default=8.0, gt=0)
    max_dimension: int = Field(default=1568, gt=0)


class AnalyzerConfig(BaseModel):
    provider: Literal["anthropic", "openai"] = Field(default="openai")
    model: str = Field(default="Llama-4-Scout-17B-16E-Instruct-FP8")
    base_url: str | None = Field(default=LLAMA_API_BASE_URL)
    max_tokens: int = Field(default=512, gt=0)
    system_prompt_override: str | None = Field(default=None)


class StorageConfig(BaseModel):
    backend: Literal["mongodb", "memory"] = Field(default="mongodb")
    database: str = Field(default="LlamaProctorDB")
    students_collection: str = Field(default="students")
    assignments_collection: str = Field(default="assignments")
    timeout_ms: int = Field(default=5000, gt=0)
    max_retries: int = Field(default=3, ge=0)
    retry_backoff: float = Field(default=1.0, ge=0)
    include_screenshot: bool = Field(default=False)


class MonitorConfig(BaseModel):
    student_id: str = Field(default="1")
    student_name: str = Field(default="")
    classroom: str = Field(default="1")
    assignment_poll_interval: float = Field(default=10.0, gt=0)
    max_consecutive_errors: int = Field(default=5, gt=0)
    queue_size: int = Field(default=1, gt=0)


class LoggingConfig(BaseModel):
    level: str = Field(default="INFO")
    format: str = Field(
        default="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    file: str | None = Field(default=None)


class Settings(BaseSettings):
    """Root configuration for the llamaproctor monitor.

    Loads from YAML file and supports environment variable overrides.
    Reads .env files automatically.
    """

    model_config = {
        "env_prefix": "LLAMAPROCTOR_",
        "env_nested_delimiter": "__",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    # Secrets
    llama_api_key: SecretStr = Field(default=SecretStr(""))
    openai_api_key: SecretStr = Field(default=SecretStr(""))
    anthropic_api_key: SecretStr = Field(default=SecretStr(""))
    mongodb_uri: SecretStr = Field(default=SecretStr(""))

    # Configuration sections
    capture: CaptureConfig = Field(default_factory=CaptureConfig)
    analyzer: AnalyzerConfig = Field(default_factory=AnalyzerConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    monitor: MonitorConfig = Field(default_factory=MonitorConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    def analyzer_api_key(self) -> str:
        """Pick the API key matching the configured analyzer provider."""
        if self.analyzer.provider == "anthropic":
            return self.anthropic_api_key.get_secret_value()
        return (
            self.llama_api_key.get_secret_value()
            or self.openai_api_key.get_secret_value()
        )


def load_settings(config_path: Path | str | None = None) -> Settings:
    """Load settings from YAML + .env + environment variables.

    Priority: env vars > .env file > YAML file > defaults
    """
    path = Path(config_path) if config_path else DEFAULT_CONFIG_PATH

    _load_dotenv()

    yaml_data = {}
    if path.exists():
        with open(path) as f:
            yaml_data = yaml.safe_load(f) or {}
        logger.info("Loaded configuration from %s", path)
    else:
        logger.warning("Config file %s not found, using defaults + env vars", path)

    _apply_env_overrides(yaml_data)

    return Settings(**yaml_data)


def _load_dotenv() -> None:
    """Load .env file into os.environ if it exists."""
    env_path = Path(".env")
    if not env_path.exists():
        return
    with open(env_path) as f:
        for line in f:
            line = line.strip()
            if not line or line.startswith("#"):
                continue
            if "=" in line:
                key, _, value = line.partition("=")
                key = key.strip()
                value = value.strip()
                if not os.environ.get(key):
                    os.environ[key] = value


def _apply_env_overrides(yaml_data: dict) -> None:
    """Apply environment variable overrides for non-prefixed vars."""
    llama_key = os.environ.get("LLAMA_API_KEY", "")
    mongodb_uri = os.environ.get("MONGODB_URI", "")
    vision_model = os.environ.get("VISION_MODEL", "")

    if llama_key:
        yaml_data["llama_api_key"] = llama_key

    if mongodb_uri:
        yaml_data["mongodb_uri"] = mongodb_uri

    if "analyzer" not in yaml_data:
        yaml_data["analyzer"] = {}

    if vision_model and not yaml_data["analyzer"].get("model"):
        yaml_data["analyzer"]["model"] = vision_model

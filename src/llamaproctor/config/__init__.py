"""Configuration management for llamaproctor.

Loads and validates YAML-based configuration with Pydantic models.
Supports environment variable overrides for sensitive values like
API keys and the MongoDB connection string.
"""

from llamaproctor.config.settings import Settings, load_settings

__all__ = ["Settings", "load_settings"]

"""Tests for configuration loading and validation."""

from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from llamaproctor.config.settings import (
    AnalyzerConfig,
    CaptureConfig,
    MonitorConfig,
    Settings,
    StorageConfig,
    load_settings,
)


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Run every test from an empty directory with no relevant env vars."""
    monkeypatch.chdir(tmp_path)
    for name in ("LLAMA_API_KEY", "MONGODB_URI", "VISION_MODEL"):
        monkeypatch.delenv(name, raising=False)


class TestSettings:
    def test_default_settings(self) -> None:
        settings = Settings()
        assert settings.capture.capture_interval == 8.0
        assert settings.analyzer.provider == "openai"
        assert settings.storage.database == "LlamaProctorDB"
        assert settings.monitor.student_id == "1"

    def test_capture_config_defaults(self) -> None:
        config = CaptureConfig()
        assert config.monitor_index == 1
        assert config.max_dimension == 1568

    def test_capture_interval_must_be_positive(self) -> None:
        with pytest.raises(ValidationError):
            CaptureConfig(capture_interval=0)

    def test_analyzer_config_defaults(self) -> None:
        config = AnalyzerConfig()
        assert config.model == "Llama-4-Scout-17B-16E-Instruct-FP8"
        assert config.base_url.startswith("https://api.llama.com")

    def test_storage_config_defaults(self) -> None:
        config = StorageConfig()
        assert config.students_collection == "students"
        assert config.assignments_collection == "assignments"
        assert config.max_retries == 3

    def test_monitor_config_defaults(self) -> None:
        config = MonitorConfig()
        assert config.classroom == "1"
        assert config.assignment_poll_interval == 10.0

    def test_analyzer_api_key_by_provider(self) -> None:
        settings = Settings(llama_api_key="llama", anthropic_api_key="ant")
        assert settings.analyzer_api_key() == "llama"
        settings.analyzer.provider = "anthropic"
        assert settings.analyzer_api_key() == "ant"


class TestLoadSettings:
    def test_missing_file_uses_defaults(self, tmp_path: Path) -> None:
        settings = load_settings(tmp_path / "nonexistent.yaml")
        assert settings.capture.monitor_index == 1

    def test_yaml_values_are_loaded(self, tmp_path: Path) -> None:
        path = tmp_path / "llamaproctor.yaml"
        path.write_text(
            "capture:\n  capture_interval: 15\n"
            "monitor:\n  student_id: s-42\n  classroom: bio-101\n"
            "storage:\n  backend: memory\n"
        )
        settings = load_settings(path)
        assert settings.capture.capture_interval == 15.0
        assert settings.monitor.student_id == "s-42"
        assert settings.monitor.classroom == "bio-101"
        assert settings.storage.backend == "memory"

    def test_non_prefixed_env_overrides(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("LLAMA_API_KEY", "secret-key")
        monkeypatch.setenv("MONGODB_URI", "mongodb+srv://u:p@cluster.example.net/")
        monkeypatch.setenv("VISION_MODEL", "other-model")
        settings = load_settings(tmp_path / "nonexistent.yaml")
        assert settings.llama_api_key.get_secret_value() == "secret-key"
        assert settings.mongodb_uri.get_secret_value().startswith("mongodb+srv://")
        assert settings.analyzer.model == "other-model"

    def test_dotenv_file_is_read(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        # Registered so the value copied from .env is removed after the test
        monkeypatch.setenv("MONGODB_URI", "")
        (tmp_path / ".env").write_text("# secrets\nMONGODB_URI=mongodb://localhost:27017\n")
        settings = load_settings(tmp_path / "nonexistent.yaml")
        assert settings.mongodb_uri.get_secret_value() == "mongodb://localhost:27017"

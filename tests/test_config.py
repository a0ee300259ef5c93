"""
Tests for environment configuration.
"""

import os
from pathlib import Path

import pytest
from pydantic import ValidationError

from psionics_migrations.config import FALLBACK_VERSION, EngineConfig, installed_version, load_config

ENV_VARS = ("PSIONICS_DATA_DIR", "PSIONICS_MODULE_VERSION", "PSIONICS_LEADER", "PSIONICS_LOG_LEVEL")


@pytest.fixture
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


class TestLoadConfig:
    """Test suite for load_config."""

    def test_defaults(self, clean_env):
        config = load_config()
        assert config.data_dir == Path("psionics_data")
        assert config.module_version == installed_version()
        assert config.leader is True
        assert config.log_level == "INFO"

    def test_from_environment(self, clean_env, tmp_path):
        clean_env.setenv("PSIONICS_DATA_DIR", str(tmp_path / "world"))
        clean_env.setenv("PSIONICS_MODULE_VERSION", "0.5.0")
        clean_env.setenv("PSIONICS_LEADER", "false")
        clean_env.setenv("PSIONICS_LOG_LEVEL", "debug")

        config = load_config()

        assert config.data_dir == (tmp_path / "world").resolve()
        assert config.module_version == "0.5.0"
        assert config.leader is False
        assert config.log_level == "DEBUG"

    def test_env_file(self, clean_env, tmp_path):
        env_file = tmp_path / "custom.env"
        env_file.write_text("PSIONICS_MODULE_VERSION=0.3.1\n", encoding="utf-8")
        try:
            assert load_config(env_file).module_version == "0.3.1"
        finally:
            # load_dotenv writes os.environ directly
            os.environ.pop("PSIONICS_MODULE_VERSION", None)

    @pytest.mark.parametrize("value", ["1", "true", "YES", "on"])
    def test_leader_truthy(self, clean_env, value):
        clean_env.setenv("PSIONICS_LEADER", value)
        assert load_config().leader is True

    def test_unknown_log_level(self):
        with pytest.raises(ValidationError):
            EngineConfig(log_level="LOUD")


def test_installed_version_is_a_version():
    version = installed_version()
    assert version == FALLBACK_VERSION or version[0].isdigit()

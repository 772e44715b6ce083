"""Tests for configuration management."""

import pytest

from pydeploy.config import Config
from pydeploy.exceptions import DeployConfigError


@pytest.fixture
def clean_env(monkeypatch):
    for key in ("HOST", "USER", "PORT", "KEY_FILE", "CONCURRENCY"):
        monkeypatch.delenv(f"PYDEPLOY_{key}", raising=False)


class TestConfig:
    """Tests for Config."""

    def test_defaults(self, tmp_path, clean_env):
        cfg = Config(tmp_path)
        assert cfg.host is None
        assert cfg.port == 22
        assert cfg.concurrency == 5
        assert not cfg.is_configured()

    def test_save_and_reload(self, tmp_path, clean_env):
        Config(tmp_path).save(host="ibmi", user="dev", port=2222, key_file=None)

        cfg = Config(tmp_path)
        assert cfg.host == "ibmi"
        assert cfg.user == "dev"
        assert cfg.port == 2222
        assert cfg.key_file is None
        assert cfg.is_configured()

    def test_save_merges(self, tmp_path, clean_env):
        Config(tmp_path).save(host="ibmi", user="dev")
        Config(tmp_path).save(concurrency=10)

        cfg = Config(tmp_path)
        assert cfg.host == "ibmi"
        assert cfg.concurrency == 10

    def test_environment_overrides(self, tmp_path, clean_env, monkeypatch):
        Config(tmp_path).save(host="ibmi")
        monkeypatch.setenv("PYDEPLOY_HOST", "other")
        monkeypatch.setenv("PYDEPLOY_PORT", "2200")

        cfg = Config(tmp_path)
        assert cfg.host == "other"
        assert cfg.port == 2200

    def test_config_dir_from_environment(self, tmp_path, monkeypatch):
        monkeypatch.setenv("PYDEPLOY_CONFIG_DIR", str(tmp_path))
        cfg = Config()
        assert cfg.get_config_path() == tmp_path / "config.json"
        assert cfg.get_storage_path() == tmp_path / "storage.json"

    def test_invalid_file(self, tmp_path, clean_env):
        (tmp_path / "config.json").write_text("{broken")

        with pytest.raises(DeployConfigError):
            Config(tmp_path).host

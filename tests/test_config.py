"""Tests for configuration loading and persisted settings."""

import pytest

from quotefeed.config import Config, ConfigModel, SourceConfig, load_config, load_sources, save_config, save_sources
from quotefeed.config.models import PipelineSettings
from quotefeed.db import SettingsManager
from quotefeed.db.settings import merge_settings


class TestConfigFiles:
    def test_round_trip(self, tmp_path):
        path = tmp_path / "config.yaml"
        model = ConfigModel()
        model.pipeline.fetch_interval_minutes = 15

        save_config(model, path)

        assert load_config(path).pipeline.fetch_interval_minutes == 15

    def test_missing_file_raises(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "absent.yaml")

    def test_invalid_values_raise_value_error(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("pipeline:\n  fetch_interval_minutes: 0\n")

        with pytest.raises(ValueError):
            load_config(path)

    def test_empty_file_uses_defaults(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("")

        assert load_config(path).pipeline.auto_approve_extracted_vocabulary is False

    def test_sources_file(self, tmp_path):
        path = tmp_path / "sources.yaml"
        save_sources([SourceConfig(domain="apnews.com", name="AP")], path)

        sources = load_sources(path)

        assert sources[0].domain == "apnews.com"
        assert sources[0].rss_url is None

    def test_secrets_come_from_environment(self, tmp_path, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
        monkeypatch.setenv("GOVINFO_API_KEY", "gov-test")
        config = Config(config_path=tmp_path / "config.yaml", model=ConfigModel())

        assert config.get_llm_config()["api_key"] == "sk-test"
        assert config.get_govinfo_api_key() == "gov-test"
        assert config.sources_path == tmp_path / "sources.yaml"


class TestPersistedSettings:
    """Stored overrides on top of config defaults."""

    def test_stored_values_override_defaults(self):
        merged = merge_settings(
            PipelineSettings(),
            {"fetch_interval_minutes": "30", "backfill_enabled": "true", "unknown_key": "1"},
        )

        assert merged.fetch_interval_minutes == 30
        assert merged.backfill_enabled is True

    def test_invalid_stored_value_is_ignored(self):
        merged = merge_settings(PipelineSettings(fetch_interval_minutes=10), {"fetch_interval_minutes": "0"})

        assert merged.fetch_interval_minutes == 10

    def test_set_value_validates(self, conn):
        manager = SettingsManager()

        with pytest.raises(ValueError, match="Unknown setting"):
            manager.set_value(conn, "colour", "blue")
        with pytest.raises(ValueError, match="Invalid value"):
            manager.set_value(conn, "min_significance", "11")

        manager.set_value(conn, "min_significance", "7")
        cursor = conn.cursor.return_value.__enter__.return_value
        assert cursor.execute.call_args.args[1] == ("min_significance", "7")


def test_conninfo_carries_resolved_password(tmp_path, monkeypatch):
    from psycopg.conninfo import conninfo_to_dict

    from quotefeed.config.models import PostgresConfig
    from quotefeed.db.connection import build_conninfo

    monkeypatch.setenv("QUOTEFEED_DB_PASSWORD", "p@ss word")
    model = ConfigModel(postgres=PostgresConfig(host="db", password_env="QUOTEFEED_DB_PASSWORD"))
    config = Config(config_path=tmp_path / "config.yaml", model=model)

    params = conninfo_to_dict(build_conninfo(config.get_db_config()))

    assert params["host"] == "db"
    assert params["dbname"] == "quotefeed"
    assert params["password"] == "p@ss word"

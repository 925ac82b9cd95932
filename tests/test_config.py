"""Tests for settings loading."""
import pytest

from bac_insights.config import ENV_OVERRIDES, Settings, load_settings, read_yaml


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for var in list(ENV_OVERRIDES) + ["BAC_INSIGHTS_CONFIG"]:
        monkeypatch.delenv(var, raising=False)


def test_defaults_without_file_or_env():
    assert load_settings() == Settings()


def test_yaml_then_env(tmp_path, monkeypatch):
    path = tmp_path / "settings.yaml"
    path.write_text("db_path: /tmp/a.db\nhistory_limit: 30\nrisk_model_variant: B\n")

    settings = load_settings(str(path))
    assert settings.db_path == "/tmp/a.db"
    assert settings.history_limit == 30
    assert settings.risk_model_variant == "B"

    monkeypatch.setenv("HISTORY_LIMIT", "12")
    monkeypatch.setenv("ADMIN_TOKEN", "secret")
    settings = load_settings(str(path))
    assert settings.history_limit == 12
    assert settings.admin_token == "secret"
    assert settings.db_path == "/tmp/a.db"


def test_config_path_from_env(tmp_path, monkeypatch):
    path = tmp_path / "settings.yaml"
    path.write_text("baseline_window_days: 14\n")
    monkeypatch.setenv("BAC_INSIGHTS_CONFIG", str(path))
    assert load_settings().baseline_window_days == 14


def test_missing_file_and_bad_values_fall_back(tmp_path, caplog):
    assert load_settings(str(tmp_path / "nope.yaml")) == Settings()

    path = tmp_path / "settings.yaml"
    path.write_text("history_limit: lots\ncolour: blue\n")
    assert load_settings(str(path)).history_limit == 60
    assert "colour" in caplog.text


def test_settings_file_must_be_a_mapping(tmp_path):
    path = tmp_path / "settings.yaml"
    path.write_text("- one\n- two\n")
    with pytest.raises(ValueError):
        read_yaml(str(path))
    empty = tmp_path / "empty.yaml"
    empty.write_text("")
    assert read_yaml(str(empty)) == {}

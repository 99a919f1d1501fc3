"""
Tests for the persisted CLI toggles.
"""

from core.config import TOGGLE_DEFAULTS, AppSettings, read_user_env_vars, reset_user_toggles, write_user_env_vars


def test_write_merges_and_skips_none(tmp_path):
    env_path = tmp_path / "cfg" / ".env"

    write_user_env_vars({"NETIDENT_SHOW_LOCATION": "false"}, env_path)
    write_user_env_vars({"NETIDENT_USE_NOTIFICATIONS": "true", "NETIDENT_SHOW_LOCATION": None}, env_path)

    assert read_user_env_vars(env_path) == {
        "NETIDENT_SHOW_LOCATION": "false",
        "NETIDENT_USE_NOTIFICATIONS": "true",
    }


def test_reset_restores_defaults_and_keeps_other_keys(tmp_path):
    env_path = tmp_path / ".env"
    write_user_env_vars(
        {"NETIDENT_SHOW_LOCATION": "false", "NETIDENT_USE_NOTIFICATIONS": "true", "NETIDENT_CURL_PATH": "/opt/curl"},
        env_path,
    )

    reset_user_toggles(env_path)

    values = read_user_env_vars(env_path)
    for key, default in TOGGLE_DEFAULTS.items():
        assert values[key] == default
    assert values["NETIDENT_CURL_PATH"] == "/opt/curl"


def test_settings_read_env_file(tmp_path):
    env_path = tmp_path / ".env"
    write_user_env_vars({"NETIDENT_SHOW_LOCATION": "false", "NETIDENT_REFRESH_INTERVAL_SECONDS": "30"}, env_path)

    settings = AppSettings(_env_file=env_path)

    assert settings.show_location is False
    assert settings.refresh_interval_seconds == 30.0


def test_missing_env_file_reads_empty(tmp_path):
    assert read_user_env_vars(tmp_path / "absent.env") == {}

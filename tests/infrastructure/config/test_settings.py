from __future__ import annotations

import pytest

from domain.exceptions import ConfigError
from infrastructure.config.settings import ChaseSettings

_KEYS = [
    "CHASELINK_LIMIT",
    "CHASELINK_TIMEOUT",
    "CHASELINK_USER_AGENT",
    "CHASELINK_LOG_LEVEL",
    "CHASELINK_VERIFY_TLS",
    "CHASELINK_HOP_TIMEOUT",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for key in _KEYS:
        monkeypatch.delenv(key, raising=False)


def test_defaults_without_env():
    settings = ChaseSettings.from_env(env_path=None)

    assert settings == ChaseSettings()
    assert settings.limit == 10
    assert settings.log_level == "WARNING"
    assert settings.hop_timeout_sec == 30


def test_reads_process_env(monkeypatch):
    monkeypatch.setenv("CHASELINK_LIMIT", "3")
    monkeypatch.setenv("CHASELINK_TIMEOUT", "2.5")
    monkeypatch.setenv("CHASELINK_USER_AGENT", "bot/1")
    monkeypatch.setenv("CHASELINK_LOG_LEVEL", "debug")
    monkeypatch.setenv("CHASELINK_VERIFY_TLS", "no")
    monkeypatch.setenv("CHASELINK_HOP_TIMEOUT", "0")

    settings = ChaseSettings.from_env(env_path=None)

    assert settings.limit == 3
    assert settings.timeout_sec == 2.5
    assert settings.user_agent == "bot/1"
    assert settings.log_level == "DEBUG"
    assert settings.verify_tls is False
    assert settings.hop_timeout_sec == 0


def test_reads_env_file_and_process_env_wins(tmp_path, monkeypatch):
    env_file = tmp_path / ".env"
    env_file.write_text("CHASELINK_LIMIT=7\nCHASELINK_USER_AGENT=from-file\n", encoding="utf-8")
    monkeypatch.setenv("CHASELINK_USER_AGENT", "from-process")

    settings = ChaseSettings.from_env(env_path=env_file)

    assert settings.limit == 7
    assert settings.user_agent == "from-process"


def test_missing_env_file_is_ignored(tmp_path):
    assert ChaseSettings.from_env(env_path=tmp_path / "absent.env") == ChaseSettings()


@pytest.mark.parametrize(
    "key, value",
    [
        ("CHASELINK_LIMIT", "ten"),
        ("CHASELINK_LIMIT", "-1"),
        ("CHASELINK_TIMEOUT", "soon"),
        ("CHASELINK_HOP_TIMEOUT", "-3"),
        ("CHASELINK_VERIFY_TLS", "maybe"),
        ("CHASELINK_LOG_LEVEL", "TRACE"),
    ],
)
def test_invalid_values(monkeypatch, key, value):
    monkeypatch.setenv(key, value)

    with pytest.raises(ConfigError) as exc:
        ChaseSettings.from_env(env_path=None)
    assert key in str(exc.value)


def test_to_config_carries_progress():
    progress = lambda page: None  # noqa: E731

    config = ChaseSettings(limit=4, timeout_sec=1, user_agent="x").to_config(progress=progress)

    assert config.limit == 4
    assert config.timeout_sec == 1
    assert config.user_agent == "x"
    assert config.progress is progress

"""Tests for configuration loading."""

import logging

import pytest
from pydantic import ValidationError

from grither.config import DEV_SESSION_SECRET, load_settings


def test_missing_bot_token_refuses_to_start(monkeypatch: pytest.MonkeyPatch, caplog) -> None:
    monkeypatch.delenv("BOT_TOKEN", raising=False)

    with caplog.at_level(logging.CRITICAL), pytest.raises(SystemExit) as exc:
        load_settings(_env_file=None)

    assert exc.value.code == 1
    assert "BOT_TOKEN" in caplog.text


def test_blank_bot_token_refuses_to_start(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("BOT_TOKEN", "   ")

    with pytest.raises(SystemExit):
        load_settings(_env_file=None)


def test_dev_session_secret_fallback_warns(monkeypatch: pytest.MonkeyPatch, caplog) -> None:
    monkeypatch.delenv("SESSION_SECRET", raising=False)

    with caplog.at_level(logging.WARNING):
        cfg = load_settings(_env_file=None)

    assert cfg.SESSION_SECRET == DEV_SESSION_SECRET
    assert cfg.uses_dev_session_secret is True
    assert "SESSION_SECRET" in caplog.text


def test_configured_session_secret_does_not_warn(monkeypatch: pytest.MonkeyPatch, caplog) -> None:
    monkeypatch.setenv("SESSION_SECRET", "prod-grade-secret")

    with caplog.at_level(logging.WARNING):
        cfg = load_settings(_env_file=None)

    assert cfg.uses_dev_session_secret is False
    assert "SESSION_SECRET" not in caplog.text


def test_non_positive_max_age_is_rejected(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SESSION_MAX_AGE", "0")

    with pytest.raises(SystemExit):
        load_settings(_env_file=None)


def test_allowed_origins_include_local_frontend(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("FRONTEND_ORIGINS", "https://a.example, ,https://b.example")

    cfg = load_settings(_env_file=None)

    assert cfg.allowed_origins == ["https://a.example", "https://b.example", "http://localhost:5173"]


def test_webhook_url_built_from_app_url(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("APP_URL", "https://api.example/")
    monkeypatch.setenv("WEBHOOK_SECRET", "s3cr3t")

    cfg = load_settings(_env_file=None)

    assert cfg.webhook_path == "/tg/s3cr3t"
    assert cfg.webhook_url == "https://api.example/tg/s3cr3t"


def test_webhook_url_absent_without_app_url() -> None:
    cfg = load_settings(_env_file=None)

    assert cfg.webhook_url is None


def test_settings_are_immutable() -> None:
    cfg = load_settings(_env_file=None)

    with pytest.raises(ValidationError):
        cfg.BOT_TOKEN = "changed"

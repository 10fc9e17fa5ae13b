"""Shared fixtures. The environment is pinned before grither is imported."""

import hashlib
import hmac
import json
import os
from urllib.parse import urlencode

import pytest

os.environ["BOT_TOKEN"] = "123456789:AAH-test-bot-token"
os.environ["SESSION_SECRET"] = "test-session-secret"
os.environ["POSTGRES_USER"] = "grither"
os.environ["POSTGRES_PASSWORD"] = "grither"
os.environ["POSTGRES_DB"] = "grither"
os.environ["POSTGRES_HOST"] = "localhost"
os.environ["POSTGRES_PORT"] = "5432"
for _name in ("APP_URL", "SESSION_MAX_AGE", "WEBHOOK_SECRET", "FRONTEND_ORIGINS"):
    os.environ.pop(_name, None)

DEFAULT_USER = {"id": 5551234, "first_name": "Ivan", "last_name": "Petrov", "username": "ivan"}


def sign_fields(fields: dict, bot_token: str) -> str:
    """Signs fields the way Telegram does, independently of grither.security."""
    check_string = "\n".join(f"{k}={fields[k]}" for k in sorted(fields))
    secret = hmac.new(b"WebAppData", bot_token.encode(), hashlib.sha256).digest()
    return hmac.new(secret, check_string.encode(), hashlib.sha256).hexdigest()


@pytest.fixture
def bot_token() -> str:
    return os.environ["BOT_TOKEN"]


@pytest.fixture
def make_init_data(bot_token):
    """Builds a signed initData query string; ``user=None`` omits the user field."""

    def _make(user=DEFAULT_USER, raw_user: str | None = None, token: str | None = None, **extra) -> str:
        fields = {"auth_date": "1700000000", "query_id": "AAHdF6IQAAAAAN0XohDhrOrc", **extra}
        if raw_user is not None:
            fields["user"] = raw_user
        elif user is not None:
            fields["user"] = json.dumps(user, separators=(",", ":"))
        fields["hash"] = sign_fields(fields, token or bot_token)
        return urlencode(fields)

    return _make

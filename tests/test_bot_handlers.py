"""Tests for bot command argument parsing and database failure replies."""

from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest
from sqlalchemy.exc import OperationalError

from grither.bot import handlers
from grither.bot.handlers import DB_ERROR, HELP_TEXT, NO_ACCESS, parse_set_args


def test_parse_set_args():
    assert parse_set_args("about|О проекте|Текст блока") == ("about", "О проекте", "Текст блока")


def test_parse_set_args_keeps_pipes_in_body():
    assert parse_set_args("faq|FAQ|a | b | c") == ("faq", "FAQ", "a | b | c")


def test_parse_set_args_strips_whitespace():
    assert parse_set_args("  about |  Title | Body  ") == ("about", "Title", "Body")


@pytest.mark.parametrize("args", [None, "", "about", "about|Title", "|Title|Body", "about||Body", "about|Title|   "])
def test_parse_set_args_rejects_incomplete(args):
    assert parse_set_args(args) is None


def test_help_lists_every_command():
    for command in ("/ping", "/admin", "/list", "/get", "/set"):
        assert command in HELP_TEXT


# --- Ошибки БД в командах ---

class _FakeSession:
    async def __aenter__(self):
        return object()

    async def __aexit__(self, *exc_info):
        return False


def _db_down(*args, **kwargs):
    raise OperationalError("SELECT 1", {}, Exception("connection refused"))


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def message():
    return AsyncMock(from_user=SimpleNamespace(id=1))


@pytest.fixture(autouse=True)
def fake_session(monkeypatch):
    monkeypatch.setattr(handlers, "AsyncSessionLocal", _FakeSession)


@pytest.fixture
def admin(monkeypatch):
    monkeypatch.setattr(handlers.users, "is_admin", AsyncMock(return_value=True))


@pytest.mark.anyio("asyncio")
async def test_admin_check_denies_when_database_is_down(monkeypatch, message):
    monkeypatch.setattr(handlers.users, "is_admin", AsyncMock(side_effect=_db_down))

    await handlers.command_admin_handler(message)

    message.answer.assert_awaited_once_with(NO_ACCESS)


@pytest.mark.anyio("asyncio")
async def test_list_denied_when_admin_lookup_fails(monkeypatch, message):
    monkeypatch.setattr(handlers.users, "is_admin", AsyncMock(side_effect=_db_down))
    list_blocks = AsyncMock()
    monkeypatch.setattr(handlers.content, "list_blocks", list_blocks)

    await handlers.command_list_handler(message)

    message.answer.assert_awaited_once_with(NO_ACCESS)
    list_blocks.assert_not_awaited()


@pytest.mark.anyio("asyncio")
async def test_list_reports_database_error(monkeypatch, admin, message):
    monkeypatch.setattr(handlers.content, "list_blocks", AsyncMock(side_effect=_db_down))

    await handlers.command_list_handler(message)

    message.answer.assert_awaited_once_with(DB_ERROR)


@pytest.mark.anyio("asyncio")
async def test_get_reports_database_error(monkeypatch, message):
    monkeypatch.setattr(handlers.content, "get_block", AsyncMock(side_effect=_db_down))

    await handlers.command_get_handler(message, SimpleNamespace(args="about"))

    message.answer.assert_awaited_once_with(DB_ERROR)


@pytest.mark.anyio("asyncio")
async def test_set_reports_database_error(monkeypatch, admin, message):
    monkeypatch.setattr(handlers.content, "upsert_block", AsyncMock(side_effect=_db_down))

    await handlers.command_set_handler(message, SimpleNamespace(args="about|Title|Body"))

    message.answer.assert_awaited_once_with(DB_ERROR)

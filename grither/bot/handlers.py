import logging
from typing import Any, Awaitable, Callable

from aiogram import Router
from aiogram.enums import ParseMode
from aiogram.filters import Command, CommandObject, CommandStart
from aiogram.types import KeyboardButton, Message, ReplyKeyboardMarkup, WebAppInfo
from sqlalchemy.exc import SQLAlchemyError

from grither.config import settings
from grither.database import AsyncSessionLocal
from grither.services import content, users

logger = logging.getLogger(__name__)

# Роутер для регистрации обработчиков, подключается к Dispatcher в main.py
router = Router()

NO_ACCESS = "Нет доступа ❌"
DB_ERROR = "Ошибка: база данных недоступна, попробуйте позже"

HELP_TEXT = "\n".join([
    "Команды:",
    "/ping — проверка связи",
    "/admin — проверить права",
    "/list — список контент-блоков (админ)",
    "/get <slug> — показать блок контента",
    "/set <slug>|Заголовок|Текст — создать/обновить блок (админ)",
])


def parse_set_args(args: str | None) -> tuple[str, str, str] | None:
    """
    Разбирает аргументы /set: slug|Заголовок|Текст.
    В тексте тоже может встречаться '|', поэтому режем только первые два.
    """
    parts = (args or "").split("|", 2)
    if len(parts) < 3:
        return None
    slug, title, body = (p.strip() for p in parts)
    if not slug or not title or not body:
        return None
    return slug, title, body


async def is_admin(session, user_id: int) -> bool:
    # При ошибке БД прав нет
    try:
        return await users.is_admin(session, user_id)
    except SQLAlchemyError:
        logger.exception("Admin lookup failed for %s", user_id)
        return False


# Лог всех текстовых сообщений (для диагностики)
@router.message.outer_middleware()
async def log_text_messages(
    handler: Callable[[Message, dict[str, Any]], Awaitable[Any]],
    event: Message,
    data: dict[str, Any],
) -> Any:
    if event.text:
        logger.info("[text] %r from %s", event.text, event.from_user.id if event.from_user else None)
    return await handler(event, data)


@router.message(CommandStart())
async def command_start_handler(message: Message) -> None:
    """Отправляет кнопку, открывающую мини-приложение."""
    keyboard = ReplyKeyboardMarkup(
        keyboard=[[KeyboardButton(text="Открыть GRITHER", web_app=WebAppInfo(url=settings.WEBAPP_URL))]],
        resize_keyboard=True,
        one_time_keyboard=True,
    )
    await message.answer("Открыть приложение 👇", reply_markup=keyboard)


@router.message(Command("help"))
async def command_help_handler(message: Message) -> None:
    await message.answer(HELP_TEXT)


@router.message(Command("ping"))
async def command_ping_handler(message: Message) -> None:
    await message.answer("pong")


@router.message(Command("admin"))
async def command_admin_handler(message: Message) -> None:
    async with AsyncSessionLocal() as session:
        ok = await is_admin(session, message.from_user.id)
    await message.answer("Ты админ ✅" if ok else NO_ACCESS)


@router.message(Command("list"))
async def command_list_handler(message: Message) -> None:
    async with AsyncSessionLocal() as session:
        if not await is_admin(session, message.from_user.id):
            await message.answer(NO_ACCESS)
            return
        try:
            blocks = await content.list_blocks(session, limit=30)
        except SQLAlchemyError:
            logger.exception("/list failed")
            await message.answer(DB_ERROR)
            return

    if not blocks:
        await message.answer("Пусто")
        return
    await message.answer("\n".join(f"• {b.slug} — {b.title}" for b in blocks))


@router.message(Command("get"))
async def command_get_handler(message: Message, command: CommandObject) -> None:
    slug = (command.args or "").strip()
    if not slug:
        await message.answer("Формат: /get slug")
        return

    async with AsyncSessionLocal() as session:
        try:
            block = await content.get_block(session, slug)
        except SQLAlchemyError:
            logger.exception("/get %s failed", slug)
            await message.answer(DB_ERROR)
            return

    if block is None:
        await message.answer("Не найдено")
        return
    await message.answer(f"*{block.title}*\n\n{block.body}", parse_mode=ParseMode.MARKDOWN)


@router.message(Command("set"))
async def command_set_handler(message: Message, command: CommandObject) -> None:
    async with AsyncSessionLocal() as session:
        if not await is_admin(session, message.from_user.id):
            await message.answer(NO_ACCESS)
            return

        parsed = parse_set_args(command.args)
        if parsed is None:
            await message.answer("Формат: /set slug|Заголовок|Текст")
            return

        slug, title, body = parsed
        try:
            block = await content.upsert_block(session, slug, title, body, updated_by=str(message.from_user.id))
        except SQLAlchemyError:
            logger.exception("/set %s failed", slug)
            await message.answer(DB_ERROR)
            return

    logger.info("[content_updated] slug=%s by=%s", slug, message.from_user.id)
    await message.answer(f"OK: {block.slug} обновлён")

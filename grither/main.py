import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Header, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from aiogram import Bot, Dispatcher
from aiogram.exceptions import TelegramAPIError
from aiogram.types import BotCommand, Update

from grither.config import settings
from grither.bot.handlers import router as bot_router
from grither.routes import auth, content, messages
from grither.security import constant_time_equals

# Настройка логирования
logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# --- AIOGRAM SETUP ---
bot = Bot(token=settings.BOT_TOKEN)
dp = Dispatcher()
dp.include_router(bot_router)

async def set_bot_commands(bot_instance: Bot):
    commands = [
        BotCommand(command="start", description="Открыть приложение"),
        BotCommand(command="help", description="Список команд"),
        BotCommand(command="ping", description="Проверка связи"),
    ]
    await bot_instance.set_my_commands(commands)

# --- FASTAPI LIFESPAN ---
@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Startup: Setting up bot...")
    await set_bot_commands(bot)

    polling_task = None
    if settings.webhook_url:
        # Есть публичный адрес - Telegram сам присылает апдейты на /tg/<secret>
        try:
            await bot.set_webhook(settings.webhook_url, secret_token=settings.webhook_secret_token)
            logger.info("[webhook] set to %s", settings.APP_URL.rstrip("/") + "/tg/***")
        except TelegramAPIError:
            logger.exception("[webhook] failed to register")
    else:
        logger.info("[webhook] APP_URL is not set, falling back to polling")
        await bot.delete_webhook(drop_pending_updates=False)
        polling_task = asyncio.create_task(dp.start_polling(bot, handle_signals=False))

    yield

    logger.info("Shutdown: Stopping bot...")
    if polling_task is not None:
        polling_task.cancel()
        try:
            await polling_task
        except asyncio.exceptions.CancelledError:
            pass
    await bot.session.close()

# --- FASTAPI SETUP ---
app = FastAPI(title="GRITHER WebApp API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
)

app.include_router(auth.router)
app.include_router(content.router)
app.include_router(messages.router)

# --- ENDPOINTS ---

@app.get("/health")
async def health_check():
    return {"ok": True}

# --- TELEGRAM WEBHOOK ---
# Секрет входит в путь, поэтому чужие запросы на другие пути просто получают 404.

@app.get(settings.webhook_path, include_in_schema=False)
async def webhook_ping():
    # Telegram не обязателен GET, но удобно видеть 200 при проверке руками
    return PlainTextResponse("OK")

@app.post(settings.webhook_path, include_in_schema=False)
async def telegram_webhook(
    request: Request,
    secret_token: str | None = Header(None, alias="X-Telegram-Bot-Api-Secret-Token"),
):
    # Telegram повторяет secret_token из set_webhook в каждом запросе
    if not constant_time_equals(settings.webhook_secret_token, secret_token):
        return JSONResponse(status_code=status.HTTP_403_FORBIDDEN, content={"ok": False, "error": "forbidden"})

    try:
        update = Update.model_validate(await request.json(), context={"bot": bot})
    except ValueError:
        # Не JSON или не похоже на Update
        logger.warning("[webhook] rejected malformed update")
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"ok": False, "error": "bad update"})
    await dp.feed_update(bot, update)
    return {"ok": True}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("grither.main:app", host="0.0.0.0", port=settings.API_PORT)

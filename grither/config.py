import hashlib
import logging

from pydantic import ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

# Ключ подписи сессий для локальной разработки. В проде обязательно задать SESSION_SECRET.
DEV_SESSION_SECRET = "devsecret"
LOCAL_FRONTEND_ORIGIN = "http://localhost:5173"


class Settings(BaseSettings):
    BOT_TOKEN: str
    API_PORT: int = 8000
    LOG_LEVEL: str = "INFO"

    SESSION_SECRET: str = DEV_SESSION_SECRET
    # Время жизни сессионного токена в секундах. None = без ограничения.
    SESSION_MAX_AGE: int | None = None

    WEBHOOK_SECRET: str = "hook"
    APP_URL: str | None = None
    WEBAPP_URL: str = "https://bright-tiramisu-4df5d7.netlify.app/?v=5"
    FRONTEND_ORIGINS: str = ""

    POSTGRES_USER: str
    POSTGRES_PASSWORD: str
    POSTGRES_DB: str
    POSTGRES_HOST: str
    POSTGRES_PORT: int

    model_config = SettingsConfigDict(env_file=".env", extra="ignore", frozen=True)

    @field_validator("BOT_TOKEN")
    @classmethod
    def _bot_token_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("BOT_TOKEN must not be empty")
        return value.strip()

    @field_validator("SESSION_MAX_AGE")
    @classmethod
    def _max_age_positive(cls, value: int | None) -> int | None:
        if value is not None and value <= 0:
            raise ValueError("SESSION_MAX_AGE must be a positive number of seconds")
        return value

    @property
    def database_url(self) -> str:
        # Драйвер postgresql+asyncpg для асинхронной работы
        return (
            f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}@"
            f"{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )

    @property
    def allowed_origins(self) -> list[str]:
        origins = [o.strip() for o in self.FRONTEND_ORIGINS.split(",") if o.strip()]
        if LOCAL_FRONTEND_ORIGIN not in origins:
            origins.append(LOCAL_FRONTEND_ORIGIN)
        return origins

    @property
    def uses_dev_session_secret(self) -> bool:
        return self.SESSION_SECRET == DEV_SESSION_SECRET

    @property
    def webhook_path(self) -> str:
        return f"/tg/{self.WEBHOOK_SECRET}"

    @property
    def webhook_secret_token(self) -> str:
        # Telegram принимает только [A-Za-z0-9_-], поэтому берем hex от секрета пути
        return hashlib.sha256(self.WEBHOOK_SECRET.encode()).hexdigest()

    @property
    def webhook_url(self) -> str | None:
        if not self.APP_URL:
            return None
        return self.APP_URL.rstrip("/") + self.webhook_path


def load_settings(**overrides) -> Settings:
    """
    Загружает конфигурацию один раз при старте процесса.
    Без BOT_TOKEN (и прочих обязательных переменных) процесс не запускается.
    """
    try:
        loaded = Settings(**overrides)
    except ValidationError as e:
        missing = ", ".join(str(err["loc"][0]) for err in e.errors() if err.get("loc"))
        logger.critical("Invalid configuration, refusing to start (check: %s)", missing)
        raise SystemExit(1) from e

    if loaded.uses_dev_session_secret:
        logger.warning(
            "!!! SESSION_SECRET is not set: session tokens are signed with the "
            "development default. Never run this configuration in production !!!"
        )
    return loaded


settings = load_settings()

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


# Модель пользователя внутри initData (Telegram присылает JSON внутри строки)
class TelegramUser(BaseModel):
    model_config = ConfigDict(extra="ignore")

    # strict: true и 42.0 не превращаются молча в int
    id: int = Field(strict=True, gt=0)
    first_name: str | None = None
    last_name: str | None = None
    username: str | None = None
    language_code: str | None = None
    photo_url: str | None = None
    is_premium: bool | None = False
    allows_write_to_pm: bool | None = False

    @property
    def display_name(self) -> str | None:
        name = " ".join(part for part in (self.first_name, self.last_name) if part)
        return name or None


# Содержимое сессионного токена. Порядок полей = порядок ключей в подписанном JSON.
class SessionPayload(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int = Field(strict=True, gt=0)
    username: str | None = None
    ts: int = Field(strict=True)


# Модель данных авторизации, которые мы ждем от фронтенда.
# Поле необязательное, чтобы отдать {ok: false, error: "no initData"} вместо 422.
class TelegramAuthData(BaseModel):
    initData: str | None = Field(None, description="Raw query string from Telegram WebApp")


class Me(BaseModel):
    id: int
    name: str | None = None
    username: str | None = None


class MessageIn(BaseModel):
    toUserId: int | None = None
    text: str | None = None


class ClientLogIn(BaseModel):
    type: str | None = None
    message: str | None = None
    extra: Any = None


class SeenIn(BaseModel):
    user: dict[str, Any] | None = None

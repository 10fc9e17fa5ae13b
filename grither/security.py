import base64
import hashlib
import hmac
import logging
import time
from enum import Enum
from functools import lru_cache
from urllib.parse import parse_qsl

from fastapi import Depends, Header, HTTPException, status
from pydantic import ValidationError

from grither.config import settings
from grither.schemas import SessionPayload, TelegramUser

logger = logging.getLogger(__name__)

# Фиксированная метка из протокола Telegram WebApp
WEBAPP_KEY_LABEL = b"WebAppData"


class InitDataError(str, Enum):
    BAD_SIGNATURE = "bad_signature"
    MISSING_USER = "missing_user"
    INVALID_USER_PAYLOAD = "invalid_user_payload"


class TokenError(str, Enum):
    MALFORMED = "malformed"
    BAD_SIGNATURE = "bad_signature"
    EXPIRED = "expired"


# --- ОБЩИЕ ХЕЛПЕРЫ ---

def hmac_sha256_hex(key: bytes, msg: bytes) -> str:
    return hmac.new(key=key, msg=msg, digestmod=hashlib.sha256).hexdigest()


def constant_time_equals(expected: str, provided: str | None) -> bool:
    """
    Сравнение за постоянное время.
    Пустое значение или другая длина - сразу False, compare_digest не вызывается.
    """
    if not provided or len(provided) != len(expected):
        return False
    return hmac.compare_digest(expected.encode(), provided.encode())


def b64url_encode(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def b64url_decode(data: str) -> bytes:
    """
    Строгое декодирование base64url без паддинга.
    Любая неканоничная запись (лишние биты, чужие символы) - ValueError.
    """
    padded = data + "=" * (-len(data) % 4)
    raw = base64.b64decode(padded, altchars=b"-_", validate=True)
    if b64url_encode(raw) != data:
        raise ValueError("Non-canonical base64url payload")
    return raw


# --- INITDATA ---

def parse_init_data(init_data: str) -> dict[str, str]:
    """Парсит query string в словарь. Пары без ключа отбрасываются."""
    return {key: value for key, value in parse_qsl(init_data, keep_blank_values=True) if key}


def build_check_string(fields: dict[str, str]) -> str:
    # Сортировка ключей (требование Telegram): key=value\nkey=value..., без hash
    return "\n".join(f"{k}={v}" for k, v in sorted(fields.items()) if k != "hash")


def derive_secret_key(bot_token: str) -> bytes:
    # HMAC-SHA256 от токена бота с ключом "WebAppData"
    return hmac.new(key=WEBAPP_KEY_LABEL, msg=bot_token.encode(), digestmod=hashlib.sha256).digest()


class InitDataVerifier:
    """
    Проверяет, что initData подписана Telegram для конкретного бота.
    Токен бота передается при создании, секретный ключ считается один раз.
    """

    def __init__(self, bot_token: str):
        if not bot_token:
            raise ValueError("bot_token is required")
        self._secret_key = derive_secret_key(bot_token)

    def calculate_hash(self, fields: dict[str, str]) -> str:
        return hmac_sha256_hex(self._secret_key, build_check_string(fields).encode())

    def verify(self, init_data: str | None) -> tuple[dict[str, str] | None, InitDataError | None]:
        """Возвращает (поля без hash, None) или (None, InitDataError.BAD_SIGNATURE)."""
        if not init_data:
            return None, InitDataError.BAD_SIGNATURE

        # 1. Парсим и вынимаем hash - в проверочную строку он не попадает
        fields = parse_init_data(init_data)
        provided_hash = fields.pop("hash", None)
        if not provided_hash:
            return None, InitDataError.BAD_SIGNATURE

        # 2. Считаем свой хеш и сравниваем за постоянное время
        if not constant_time_equals(self.calculate_hash(fields), provided_hash):
            return None, InitDataError.BAD_SIGNATURE

        return fields, None

    @staticmethod
    def extract_user(fields: dict[str, str]) -> tuple[TelegramUser | None, InitDataError | None]:
        raw_user = fields.get("user")
        if not raw_user:
            return None, InitDataError.MISSING_USER
        try:
            return TelegramUser.model_validate_json(raw_user), None
        except ValidationError:
            return None, InitDataError.INVALID_USER_PAYLOAD

    def authenticate(self, init_data: str | None) -> tuple[TelegramUser | None, InitDataError | None]:
        fields, error = self.verify(init_data)
        if error is not None:
            return None, error
        return self.extract_user(fields)


# --- СЕССИОННЫЕ ТОКЕНЫ ---

class SessionTokenService:
    """
    Токен вида <hex hmac>.<base64url json>. Ничего не хранится на сервере:
    валидность пересчитывается при каждой проверке.
    """

    def __init__(self, secret: str, max_age: int | None = None):
        if not secret:
            raise ValueError("secret is required")
        self._secret = secret.encode()
        # Срок жизни в секундах; None - ts только информационный
        self._max_age = max_age

    def _sign(self, payload_bytes: bytes) -> str:
        return hmac_sha256_hex(self._secret, payload_bytes)

    def issue(self, payload: SessionPayload) -> str:
        # Подписываем ровно те байты, что кладем в токен, без повторной сериализации
        payload_bytes = payload.model_dump_json().encode()
        return f"{self._sign(payload_bytes)}.{b64url_encode(payload_bytes)}"

    def issue_for(self, user: TelegramUser, now_ms: int | None = None) -> str:
        ts = now_ms if now_ms is not None else int(time.time() * 1000)
        return self.issue(SessionPayload(id=user.id, username=user.username, ts=ts))

    def verify(
        self, token: str | None, now_ms: int | None = None
    ) -> tuple[SessionPayload | None, TokenError | None]:
        if not token:
            return None, TokenError.MALFORMED

        signature, separator, encoded = token.partition(".")
        if not separator or not signature or not encoded:
            return None, TokenError.MALFORMED

        try:
            payload_bytes = b64url_decode(encoded)
        except ValueError:
            return None, TokenError.MALFORMED

        if not constant_time_equals(self._sign(payload_bytes), signature):
            return None, TokenError.BAD_SIGNATURE

        try:
            payload = SessionPayload.model_validate_json(payload_bytes)
        except ValidationError:
            return None, TokenError.MALFORMED

        if self._max_age is not None:
            now_ms = now_ms if now_ms is not None else int(time.time() * 1000)
            if now_ms - payload.ts > self._max_age * 1000:
                return None, TokenError.EXPIRED

        return payload, None


# --- FASTAPI DEPENDENCY ---
# Компоненты создаются один раз из настроек и подставляются через Depends,
# в тестах их можно заменить через app.dependency_overrides.

@lru_cache
def get_init_data_verifier() -> InitDataVerifier:
    return InitDataVerifier(settings.BOT_TOKEN)


@lru_cache
def get_session_tokens() -> SessionTokenService:
    return SessionTokenService(settings.SESSION_SECRET, max_age=settings.SESSION_MAX_AGE)


def bearer_token(authorization: str | None) -> str | None:
    """Достает токен из заголовка 'Authorization: Bearer <token>'."""
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer":
        return None
    return token.strip() or None


async def get_current_session(
    authorization: str | None = Header(None, description="String 'Bearer <token>'"),
    tokens: SessionTokenService = Depends(get_session_tokens),
) -> SessionPayload:
    payload, error = tokens.verify(bearer_token(authorization))
    if error is not None:
        # Причину пишем только в лог, клиенту - одинаковый ответ
        logger.info("Session token rejected: %s", error.value)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return payload


async def get_optional_session(
    authorization: str | None = Header(None),
    tokens: SessionTokenService = Depends(get_session_tokens),
) -> SessionPayload | None:
    token = bearer_token(authorization)
    if token is None:
        return None
    payload, error = tokens.verify(token)
    if error is not None:
        logger.info("Ignoring invalid session token: %s", error.value)
    return payload

"""Authentication routes: Telegram initData in, signed session token out."""

import logging

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from grither.database import get_db
from grither.schemas import Me, SessionPayload, TelegramAuthData, TelegramUser
from grither.security import (
    InitDataError,
    InitDataVerifier,
    SessionTokenService,
    get_current_session,
    get_init_data_verifier,
    get_session_tokens,
)
from grither.services import users

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["auth"])


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"ok": False, "error": message})


def _authenticate(
    data: TelegramAuthData, verifier: InitDataVerifier
) -> tuple[TelegramUser | None, JSONResponse | None]:
    """Проверяет initData и превращает ошибки проверки в ответы клиенту."""
    if not data.initData:
        return None, _error(status.HTTP_400_BAD_REQUEST, "no initData")

    tg_user, error = verifier.authenticate(data.initData)
    if error is InitDataError.BAD_SIGNATURE:
        logger.warning("initData rejected: bad signature")
        return None, _error(status.HTTP_401_UNAUTHORIZED, "bad signature")
    if error is not None:
        # Подпись верна, но user отсутствует или битый - это ошибка клиента, а не подделка
        logger.warning("initData verified but user payload rejected: %s", error.value)
        return None, _error(status.HTTP_400_BAD_REQUEST, "bad user")
    return tg_user, None


@router.post("/twa/auth")
async def twa_auth(
    data: TelegramAuthData,
    verifier: InitDataVerifier = Depends(get_init_data_verifier),
    tokens: SessionTokenService = Depends(get_session_tokens),
):
    tg_user, error_response = _authenticate(data, verifier)
    if error_response is not None:
        return error_response

    logger.info("[auth ok] id=%s username=%s", tg_user.id, tg_user.username)
    return {
        "ok": True,
        "me": Me(id=tg_user.id, name=tg_user.first_name, username=tg_user.username).model_dump(),
        "token": tokens.issue_for(tg_user),
    }


@router.post("/auth/telegram")
async def telegram_login(
    data: TelegramAuthData,
    db: AsyncSession = Depends(get_db),
    verifier: InitDataVerifier = Depends(get_init_data_verifier),
    tokens: SessionTokenService = Depends(get_session_tokens),
):
    """Как /twa/auth, но дополнительно сохраняет профиль пользователя."""
    tg_user, error_response = _authenticate(data, verifier)
    if error_response is not None:
        return error_response

    try:
        user = await users.upsert_user(db, tg_user)
    except SQLAlchemyError:
        logger.exception("Failed to upsert user %s", tg_user.id)
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "server")

    return {
        "ok": True,
        "user": Me(id=user.tg_id, name=user.display_name or None, username=user.username).model_dump(),
        "token": tokens.issue_for(tg_user),
    }


@router.get("/whoami")
async def whoami(session: SessionPayload = Depends(get_current_session)):
    return {"ok": True, "payload": session.model_dump()}

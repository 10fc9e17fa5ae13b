import logging

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from grither.database import get_db
from grither.schemas import ClientLogIn, MessageIn, SeenIn, SessionPayload
from grither.security import get_current_session, get_optional_session
from grither.services import event_log, messages

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["messages"])


@router.post("/messages/send")
async def send_message(
    data: MessageIn,
    db: AsyncSession = Depends(get_db),
    session: SessionPayload = Depends(get_current_session),
):
    if not data.toUserId or not data.text:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"ok": False, "error": "toUserId and text required"},
        )

    try:
        await messages.send_message(db, data.toUserId, data.text, from_user_id=session.id)
    except SQLAlchemyError:
        logger.exception("Failed to store message from %s", session.id)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"ok": False, "error": "server"},
        )
    return {"ok": True}


@router.get("/messages/inbox")
async def get_inbox(
    db: AsyncSession = Depends(get_db),
    session: SessionPayload = Depends(get_current_session),
):
    try:
        items = await messages.inbox(db, session.id, limit=20)
    except SQLAlchemyError:
        logger.exception("Failed to load inbox for %s", session.id)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"ok": False, "error": "server"},
        )
    return {"items": [m.to_dict() for m in items]}


# --- КЛИЕНТСКИЕ ЛОГИ ---

@router.post("/logs")
async def client_log(
    data: ClientLogIn,
    db: AsyncSession = Depends(get_db),
    session: SessionPayload | None = Depends(get_optional_session),
):
    """
    Принимает события из мини-приложения. Личность берется только из
    проверенного токена; без токена событие пишется как анонимное.
    """
    user_id = session.id if session else None
    await event_log.record_event(
        db,
        "client",
        data.message or "",
        {"user_id": user_id, "type": data.type or "event", "extra": data.extra},
    )
    return {"ok": True}


@router.post("/twa/seen")
async def twa_seen(data: SeenIn):
    user = data.user or {}
    logger.info("[twa] user seen: %s %s", user.get("id"), user.get("username"))
    return {"ok": True}

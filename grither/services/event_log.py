import logging
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from grither.models.log_entry import LogEntry

logger = logging.getLogger(__name__)


async def record_event(session: AsyncSession, level: str, message: str, context: Any = None) -> None:
    """
    Пишет событие в лог процесса и в таблицу logs.
    Ошибка БД не должна ронять запрос, поэтому она только логируется.
    """
    logger.log(logging.ERROR if level == "error" else logging.INFO, "[%s] %s %s", level, message, context or "")
    try:
        session.add(LogEntry(level=level, message=message, context=context))
        await session.commit()
    except SQLAlchemyError:
        await session.rollback()
        logger.exception("Failed to store log entry")

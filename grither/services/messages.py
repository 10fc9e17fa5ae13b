from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from grither.models.message import Message


async def send_message(
    session: AsyncSession, to_user_id: int, text: str, from_user_id: int | None = None
) -> Message:
    message = Message(to_tg_id=to_user_id, from_tg_id=from_user_id, text=text)
    session.add(message)
    await session.commit()
    return message


async def inbox(session: AsyncSession, user_id: int, limit: int = 20) -> list[Message]:
    query = (
        select(Message)
        .where(Message.to_tg_id == user_id)
        .order_by(Message.created_at.desc())
        .limit(limit)
    )
    result = await session.execute(query)
    return list(result.scalars().all())

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import func

from grither.models.user import Admin, User
from grither.schemas import TelegramUser


async def upsert_user(session: AsyncSession, tg_user: TelegramUser) -> User:
    """Создает или обновляет профиль по проверенным данным из initData."""
    values = {
        "tg_id": tg_user.id,
        "username": tg_user.username,
        "first_name": tg_user.first_name,
        "last_name": tg_user.last_name,
        "lang": tg_user.language_code,
        "photo_url": tg_user.photo_url,
    }
    stmt = insert(User).values(**values)
    stmt = stmt.on_conflict_do_update(
        index_elements=[User.tg_id],
        set_={**{k: stmt.excluded[k] for k in values if k != "tg_id"}, "updated_at": func.now()},
    ).returning(User)

    result = await session.execute(stmt)
    user = result.scalar_one()
    await session.commit()
    return user


async def is_admin(session: AsyncSession, user_id: int) -> bool:
    result = await session.execute(select(Admin.user_id).where(Admin.user_id == user_id).limit(1))
    return result.scalar_one_or_none() is not None

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import func

from grither.models.content import ContentBlock


async def get_block(session: AsyncSession, slug: str) -> ContentBlock | None:
    return await session.get(ContentBlock, slug)


async def list_blocks(session: AsyncSession, limit: int = 30) -> list[ContentBlock]:
    query = select(ContentBlock).order_by(ContentBlock.updated_at.desc()).limit(limit)
    result = await session.execute(query)
    return list(result.scalars().all())


async def upsert_block(
    session: AsyncSession, slug: str, title: str, body: str, updated_by: str | None
) -> ContentBlock:
    stmt = insert(ContentBlock).values(slug=slug, title=title, body=body, updated_by=updated_by)
    stmt = stmt.on_conflict_do_update(
        index_elements=[ContentBlock.slug],
        set_={
            "title": stmt.excluded.title,
            "body": stmt.excluded.body,
            "updated_by": stmt.excluded.updated_by,
            "updated_at": func.now(),
        },
    ).returning(ContentBlock)

    result = await session.execute(stmt)
    block = result.scalar_one()
    await session.commit()
    return block

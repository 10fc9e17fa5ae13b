import logging

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from grither.database import get_db
from grither.services import content

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["content"])


@router.get("/health")
async def health_check():
    return {"ok": True}


@router.get("/content/{slug}")
async def get_content(slug: str, db: AsyncSession = Depends(get_db)):
    try:
        block = await content.get_block(db, slug)
    except SQLAlchemyError:
        logger.exception("Failed to load content block %s", slug)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"ok": False, "error": "server"},
        )
    if block is None:
        return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"error": "Not found"})
    return block.to_dict()

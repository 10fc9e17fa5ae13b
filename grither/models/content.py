from datetime import datetime
from sqlalchemy import String, Text, DateTime
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from grither.database import Base

class ContentBlock(Base):
    __tablename__ = "content_blocks"

    slug: Mapped[str] = mapped_column(String, primary_key=True)
    title: Mapped[str] = mapped_column(String, nullable=False)
    body: Mapped[str] = mapped_column(Text, nullable=False)
    updated_by: Mapped[str | None] = mapped_column(String, nullable=True) # tg id автора правки
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    def to_dict(self) -> dict:
        return {
            "slug": self.slug,
            "title": self.title,
            "body": self.body,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

from datetime import datetime
from sqlalchemy import BigInteger, Integer, Text, DateTime
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from grither.database import Base

class Message(Base):
    __tablename__ = "messages"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    to_tg_id: Mapped[int] = mapped_column(BigInteger, index=True)
    from_tg_id: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    text: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), index=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "to_tg_id": self.to_tg_id,
            "from_tg_id": self.from_tg_id,
            "text": self.text,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

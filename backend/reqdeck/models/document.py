from datetime import datetime

from sqlalchemy import String, DateTime, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from reqdeck.database import Base
from reqdeck.schemas.common import new_id, utcnow


class Document(Base):
    """One serialized entity: a collection, an environment, or the history array."""

    __tablename__ = "documents"
    __table_args__ = (UniqueConstraint("namespace", "key", name="uq_documents_namespace_key"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    namespace: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    key: Mapped[str] = mapped_column(String(255), nullable=False)
    body: Mapped[str] = mapped_column(Text, nullable=False, default="")
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow)

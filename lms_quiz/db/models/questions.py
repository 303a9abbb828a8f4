from __future__ import annotations

from sqlalchemy import (
    BigInteger,
    CheckConstraint,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    text,
)
from sqlalchemy.dialects.postgresql import ARRAY
from sqlalchemy.orm import Mapped, mapped_column

from lms_quiz.db.models.base import Base


class Question(Base):
    __tablename__ = "questions"
    __table_args__ = (
        CheckConstraint("status IN ('ready','hidden','draft')", name="status"),
        CheckConstraint("variants >= 1", name="variants_positive"),
        UniqueConstraint("bank_entry_id", "version", name="uq_questions_entry_version"),
        Index("idx_questions_category_status", "category_id", "status"),
    )

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    bank_entry_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    version: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False)
    qtype: Mapped[str] = mapped_column(String(32), nullable=False)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    category_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    tags: Mapped[list[str]] = mapped_column(
        ARRAY(String(64)),
        nullable=False,
        server_default=text("'{}'"),
    )
    default_mark: Mapped[float] = mapped_column(
        Numeric(12, 7, asdecimal=False),
        nullable=False,
        server_default=text("1"),
    )
    variants: Mapped[int] = mapped_column(Integer, nullable=False, server_default=text("1"))

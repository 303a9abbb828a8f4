from __future__ import annotations

from sqlalchemy import BigInteger, ForeignKey, Index, PrimaryKeyConstraint, Text
from sqlalchemy.orm import Mapped, mapped_column

from lms_quiz.db.models.base import Base


class CourseGroup(Base):
    __tablename__ = "course_groups"
    __table_args__ = (Index("idx_course_groups_course", "course_id"),)

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    course_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    name: Mapped[str] = mapped_column(Text, nullable=False)


class GroupMember(Base):
    __tablename__ = "group_members"
    __table_args__ = (
        PrimaryKeyConstraint("group_id", "user_id"),
        Index("idx_group_members_user", "user_id"),
    )

    group_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("course_groups.id", ondelete="CASCADE"), nullable=False)
    user_id: Mapped[int] = mapped_column(BigInteger, nullable=False)

"""SQLAlchemy table definitions.

These map to the frozen dataclass domain models in learning/models/.
Repos convert between SQLAlchemy rows and domain dataclasses.
"""

from __future__ import annotations

import datetime
import uuid

from sqlalchemy import BigInteger, DateTime, Index, SmallInteger
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from learning.db.engine import Base


class LessonRow(Base):
    __tablename__ = "learning_lesson"
    # No unique (user_id, course_id): provisioning checks before insert.
    __table_args__ = (
        Index("ix_learning_lesson_user_course", "user_id", "course_id"),
        Index(
            "ix_learning_lesson_user_status_learn_time",
            "user_id",
            "status",
            "latest_learn_time",
        ),
        Index("ix_learning_lesson_expire_time", "expire_time"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    user_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    course_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    status: Mapped[int] = mapped_column(
        SmallInteger, nullable=False, default=0
    )  # 0 not_started|1 learning|2 finished|3 expired
    latest_section_id: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    latest_learn_time: Mapped[datetime.datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    expire_time: Mapped[datetime.datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    create_time: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )

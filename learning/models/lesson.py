from __future__ import annotations

import datetime
from dataclasses import dataclass
from enum import IntEnum
from uuid import UUID, uuid4


class LessonStatus(IntEnum):
    NOT_STARTED = 0
    LEARNING = 1
    FINISHED = 2
    EXPIRED = 3


@dataclass(frozen=True, slots=True)
class Lesson:
    """One user's enrollment in one course (a row of the learning_lesson table)."""

    id: UUID
    user_id: int
    course_id: int
    create_time: datetime.datetime
    status: LessonStatus = LessonStatus.NOT_STARTED
    expire_time: datetime.datetime | None = None
    latest_section_id: int | None = None
    latest_learn_time: datetime.datetime | None = None

    @staticmethod
    def new(
        *,
        user_id: int,
        course_id: int,
        create_time: datetime.datetime,
        expire_time: datetime.datetime | None = None,
    ) -> Lesson:
        return Lesson(
            id=uuid4(),
            user_id=user_id,
            course_id=course_id,
            create_time=create_time,
            expire_time=expire_time,
        )

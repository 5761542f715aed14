"""Read models returned by the lesson service and the /lessons endpoints."""

from __future__ import annotations

import datetime
import math
from uuid import UUID

from pydantic import BaseModel, computed_field

from learning.models.lesson import Lesson, LessonStatus


class LessonView(BaseModel):
    id: UUID
    course_id: int
    status: LessonStatus
    create_time: datetime.datetime
    expire_time: datetime.datetime | None = None
    latest_section_id: int | None = None
    latest_learn_time: datetime.datetime | None = None

    # filled from the course service
    course_name: str | None = None
    course_cover_url: str | None = None
    sections: int | None = None

    # only on the "now learning" view
    course_amount: int | None = None
    latest_section_name: str | None = None
    latest_section_index: int | None = None

    @classmethod
    def from_lesson(cls, lesson: Lesson) -> LessonView:
        return cls(
            id=lesson.id,
            course_id=lesson.course_id,
            status=lesson.status,
            create_time=lesson.create_time,
            expire_time=lesson.expire_time,
            latest_section_id=lesson.latest_section_id,
            latest_learn_time=lesson.latest_learn_time,
        )


class LessonPage(BaseModel):
    items: list[LessonView]
    total: int
    page: int
    page_size: int

    @computed_field  # type: ignore[prop-decorator]
    @property
    def pages(self) -> int:
        return math.ceil(self.total / self.page_size) if self.page_size else 0

    @classmethod
    def empty(cls, total: int, page: int, page_size: int) -> LessonPage:
        return cls(items=[], total=total, page=page, page_size=page_size)

from __future__ import annotations

import datetime
from collections.abc import Iterable, Sequence
from dataclasses import replace
from typing import Protocol
from uuid import UUID

from learning.models.lesson import Lesson, LessonStatus


class LessonRepo(Protocol):
    async def add_all(self, lessons: Sequence[Lesson]) -> None: ...
    async def get_by_user_and_course(
        self, user_id: int, course_id: int
    ) -> Lesson | None: ...
    async def get_latest_learning(self, user_id: int) -> Lesson | None: ...
    async def list_by_user(
        self, user_id: int, page: int, page_size: int
    ) -> tuple[list[Lesson], int]: ...
    async def count_by_user(self, user_id: int) -> int: ...
    async def count_by_course_excluding_status(
        self, course_id: int, status: LessonStatus
    ) -> int: ...
    async def existing_course_ids(
        self, user_id: int, course_ids: Iterable[int]
    ) -> set[int]: ...
    async def update_status(self, lesson_id: UUID, status: LessonStatus) -> bool: ...
    async def list_expired(
        self, now: datetime.datetime, limit: int = 500
    ) -> list[Lesson]: ...
    async def delete_by_user_and_course(self, user_id: int, course_id: int) -> int: ...
    async def delete_by_user_and_courses(
        self, user_id: int, course_ids: Iterable[int]
    ) -> int: ...


def _learn_time_key(lesson: Lesson) -> tuple[bool, float]:
    # newest first, never-studied rows last
    if lesson.latest_learn_time is None:
        return (True, 0.0)
    return (False, -lesson.latest_learn_time.timestamp())


class InMemoryLessonRepo:
    def __init__(self) -> None:
        self._by_id: dict[UUID, Lesson] = {}

    async def add_all(self, lessons: Sequence[Lesson]) -> None:
        # check the whole batch before touching the store
        ids = [lesson.id for lesson in lessons]
        if len(set(ids)) != len(ids) or any(i in self._by_id for i in ids):
            raise ValueError("lesson id already exists")
        for lesson in lessons:
            self._by_id[lesson.id] = lesson

    async def get_by_user_and_course(
        self, user_id: int, course_id: int
    ) -> Lesson | None:
        for lesson in self._by_id.values():
            if lesson.user_id == user_id and lesson.course_id == course_id:
                return lesson
        return None

    async def get_latest_learning(self, user_id: int) -> Lesson | None:
        learning = [
            lesson
            for lesson in self._by_id.values()
            if lesson.user_id == user_id and lesson.status == LessonStatus.LEARNING
        ]
        if not learning:
            return None
        return sorted(learning, key=_learn_time_key)[0]

    async def list_by_user(
        self, user_id: int, page: int, page_size: int
    ) -> tuple[list[Lesson], int]:
        rows = sorted(
            (lesson for lesson in self._by_id.values() if lesson.user_id == user_id),
            key=_learn_time_key,
        )
        offset = (page - 1) * page_size
        return rows[offset : offset + page_size], len(rows)

    async def count_by_user(self, user_id: int) -> int:
        return sum(1 for lesson in self._by_id.values() if lesson.user_id == user_id)

    async def count_by_course_excluding_status(
        self, course_id: int, status: LessonStatus
    ) -> int:
        return sum(
            1
            for lesson in self._by_id.values()
            if lesson.course_id == course_id and lesson.status != status
        )

    async def existing_course_ids(
        self, user_id: int, course_ids: Iterable[int]
    ) -> set[int]:
        wanted = set(course_ids)
        return {
            lesson.course_id
            for lesson in self._by_id.values()
            if lesson.user_id == user_id and lesson.course_id in wanted
        }

    async def update_status(self, lesson_id: UUID, status: LessonStatus) -> bool:
        lesson = self._by_id.get(lesson_id)
        if lesson is None:
            return False
        self._by_id[lesson_id] = replace(lesson, status=status)
        return True

    async def list_expired(
        self, now: datetime.datetime, limit: int = 500
    ) -> list[Lesson]:
        expired = [
            lesson
            for lesson in self._by_id.values()
            if lesson.expire_time is not None
            and lesson.expire_time <= now
            and lesson.status != LessonStatus.EXPIRED
        ]
        return expired[:limit]

    async def delete_by_user_and_course(self, user_id: int, course_id: int) -> int:
        return await self.delete_by_user_and_courses(user_id, [course_id])

    async def delete_by_user_and_courses(
        self, user_id: int, course_ids: Iterable[int]
    ) -> int:
        doomed = set(course_ids)
        victims = [
            lesson.id
            for lesson in self._by_id.values()
            if lesson.user_id == user_id and lesson.course_id in doomed
        ]
        for lesson_id in victims:
            del self._by_id[lesson_id]
        return len(victims)


# Process-wide store used when DATABASE_URL is not configured.
lesson_repo = InMemoryLessonRepo()

"""PostgreSQL implementation of LessonRepo."""

from __future__ import annotations

import datetime
from collections.abc import Iterable, Sequence
from uuid import UUID

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from learning.db.tables import LessonRow
from learning.models.lesson import Lesson, LessonStatus

_NEWEST_FIRST = (LessonRow.latest_learn_time.desc().nulls_last(), LessonRow.id)


class PgLessonRepo:
    """Satisfies the LessonRepo Protocol using PostgreSQL via SQLAlchemy.

    The repo never commits; the caller's session scope owns the
    transaction boundary.
    """

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def add_all(self, lessons: Sequence[Lesson]) -> None:
        self._session.add_all(
            LessonRow(
                id=lesson.id,
                user_id=lesson.user_id,
                course_id=lesson.course_id,
                status=int(lesson.status),
                latest_section_id=lesson.latest_section_id,
                latest_learn_time=lesson.latest_learn_time,
                expire_time=lesson.expire_time,
                create_time=lesson.create_time,
            )
            for lesson in lessons
        )
        await self._session.flush()

    async def get_by_user_and_course(
        self, user_id: int, course_id: int
    ) -> Lesson | None:
        stmt = (
            select(LessonRow)
            .where(LessonRow.user_id == user_id, LessonRow.course_id == course_id)
            .limit(1)
        )
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        if row is None:
            return None
        return _row_to_lesson(row)

    async def get_latest_learning(self, user_id: int) -> Lesson | None:
        stmt = (
            select(LessonRow)
            .where(
                LessonRow.user_id == user_id,
                LessonRow.status == int(LessonStatus.LEARNING),
            )
            .order_by(*_NEWEST_FIRST)
            .limit(1)
        )
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        if row is None:
            return None
        return _row_to_lesson(row)

    async def list_by_user(
        self, user_id: int, page: int, page_size: int
    ) -> tuple[list[Lesson], int]:
        total = await self.count_by_user(user_id)
        stmt = (
            select(LessonRow)
            .where(LessonRow.user_id == user_id)
            .order_by(*_NEWEST_FIRST)
            .offset((page - 1) * page_size)
            .limit(page_size)
        )
        rows = (await self._session.execute(stmt)).scalars().all()
        return [_row_to_lesson(r) for r in rows], total

    async def count_by_user(self, user_id: int) -> int:
        stmt = select(func.count()).select_from(LessonRow).where(
            LessonRow.user_id == user_id
        )
        return (await self._session.execute(stmt)).scalar_one()

    async def count_by_course_excluding_status(
        self, course_id: int, status: LessonStatus
    ) -> int:
        stmt = (
            select(func.count())
            .select_from(LessonRow)
            .where(LessonRow.course_id == course_id, LessonRow.status != int(status))
        )
        return (await self._session.execute(stmt)).scalar_one()

    async def existing_course_ids(
        self, user_id: int, course_ids: Iterable[int]
    ) -> set[int]:
        wanted = list(set(course_ids))
        if not wanted:
            return set()
        stmt = select(LessonRow.course_id).where(
            LessonRow.user_id == user_id, LessonRow.course_id.in_(wanted)
        )
        return set((await self._session.execute(stmt)).scalars().all())

    async def update_status(self, lesson_id: UUID, status: LessonStatus) -> bool:
        stmt = (
            update(LessonRow)
            .where(LessonRow.id == lesson_id)
            .values(status=int(status))
        )
        result = await self._session.execute(stmt)
        return result.rowcount > 0

    async def list_expired(
        self, now: datetime.datetime, limit: int = 500
    ) -> list[Lesson]:
        stmt = (
            select(LessonRow)
            .where(
                LessonRow.expire_time.is_not(None),
                LessonRow.expire_time <= now,
                LessonRow.status != int(LessonStatus.EXPIRED),
            )
            .order_by(LessonRow.expire_time)
            .limit(limit)
        )
        rows = (await self._session.execute(stmt)).scalars().all()
        return [_row_to_lesson(r) for r in rows]

    async def delete_by_user_and_course(self, user_id: int, course_id: int) -> int:
        stmt = delete(LessonRow).where(
            LessonRow.user_id == user_id, LessonRow.course_id == course_id
        )
        result = await self._session.execute(stmt)
        return result.rowcount

    async def delete_by_user_and_courses(
        self, user_id: int, course_ids: Iterable[int]
    ) -> int:
        doomed = list(set(course_ids))
        if not doomed:
            return 0
        stmt = delete(LessonRow).where(
            LessonRow.user_id == user_id, LessonRow.course_id.in_(doomed)
        )
        result = await self._session.execute(stmt)
        return result.rowcount


def _row_to_lesson(row: LessonRow) -> Lesson:
    return Lesson(
        id=row.id,
        user_id=row.user_id,
        course_id=row.course_id,
        status=LessonStatus(row.status),
        latest_section_id=row.latest_section_id,
        latest_learn_time=row.latest_learn_time,
        expire_time=row.expire_time,
        create_time=row.create_time,
    )

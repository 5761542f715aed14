"""Lesson lifecycle and aggregation.

Write side:
  add_user_lessons            : payment completed → create lesson rows
  remove_invalid_courses      : caller drops one course from their table
  remove_invalid_courses_from_mq : refund completed → delete a batch
  expire_overdue_lessons      : flip lapsed rows to EXPIRED

Read side (local rows joined with course-service data):
  query_my_lessons, query_now_learning, query_course_status,
  query_course_valid, count_learning_lesson_by_course

The current user is always an explicit argument; nothing here reads
request state.
"""

from __future__ import annotations

import calendar
import datetime
import logging
from collections.abc import AsyncGenerator, Callable, Iterable
from contextlib import asynccontextmanager
from uuid import UUID

from learning.core.metrics import LESSONS_EXPIRED, LESSONS_PROVISIONED, LESSONS_REMOVED
from learning.db import engine as db_engine
from learning.models.course import CourseSimpleInfo
from learning.models.lesson import Lesson, LessonStatus
from learning.models.lesson_view import LessonPage, LessonView
from learning.repos.lesson_repo import LessonRepo, lesson_repo
from learning.repos.pg_lesson_repo import PgLessonRepo
from learning.services.course_client import CourseClient, course_client

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime.datetime]


class CourseInfoMissingError(RuntimeError):
    """A lesson points at a course the course service did not return."""

    def __init__(self, course_id: int) -> None:
        super().__init__(f"course {course_id} missing from course service response")
        self.course_id = course_id


def _utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.UTC)


def plus_months(moment: datetime.datetime, months: int) -> datetime.datetime:
    """Add calendar months, clamping the day to the end of the target month."""
    month_index = moment.month - 1 + months
    year = moment.year + month_index // 12
    month = month_index % 12 + 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


class LessonService:
    def __init__(
        self,
        repo: LessonRepo,
        courses: CourseClient,
        clock: Clock = _utcnow,
    ) -> None:
        self._repo = repo
        self._courses = courses
        self._clock = clock

    # ------------------------------------------------------------------
    # Provisioning
    # ------------------------------------------------------------------

    async def add_user_lessons(self, user_id: int, course_ids: Iterable[int]) -> None:
        requested = list(dict.fromkeys(course_ids))

        # Order events are delivered at least once; a redelivered payment
        # must not create a second row for the same course.
        held = await self._repo.existing_course_ids(user_id, requested)
        if held:
            logger.info(
                "Skipping courses already in lesson table user=%d courses=%s",
                user_id,
                sorted(held),
            )
        missing = [cid for cid in requested if cid not in held]
        if not missing:
            return

        infos = await self._courses.get_simple_info_list(missing)
        if not infos:
            logger.error(
                "No course info for user=%d courses=%s, lessons not added",
                user_id,
                missing,
            )
            return

        now = self._clock()
        lessons: list[Lesson] = []
        seen: set[int] = set(held)
        for info in infos:
            if info.id in seen:
                continue
            seen.add(info.id)
            lessons.append(
                Lesson.new(
                    user_id=user_id,
                    course_id=info.id,
                    create_time=now,
                    expire_time=self._expire_time(info, now),
                )
            )

        await self._repo.add_all(lessons)
        LESSONS_PROVISIONED.inc(len(lessons))
        logger.info(
            "Added lessons user=%d courses=%s",
            user_id,
            [lesson.course_id for lesson in lessons],
        )

    @staticmethod
    def _expire_time(
        info: CourseSimpleInfo, now: datetime.datetime
    ) -> datetime.datetime | None:
        if info.valid_duration is None or info.valid_duration <= 0:
            return None
        return plus_months(now, info.valid_duration)

    # ------------------------------------------------------------------
    # Invalidation
    # ------------------------------------------------------------------

    async def remove_invalid_courses(self, user_id: int, course_id: int) -> None:
        removed = await self._repo.delete_by_user_and_course(user_id, course_id)
        LESSONS_REMOVED.labels(source="api").inc(removed)
        logger.info(
            "Removed lesson user=%d course=%d rows=%d", user_id, course_id, removed
        )

    async def remove_invalid_courses_from_mq(
        self, user_id: int, course_ids: Iterable[int]
    ) -> None:
        course_ids = list(course_ids)
        removed = await self._repo.delete_by_user_and_courses(user_id, course_ids)
        LESSONS_REMOVED.labels(source="mq").inc(removed)
        logger.info(
            "Removed refunded lessons user=%d courses=%s rows=%d",
            user_id,
            course_ids,
            removed,
        )

    async def expire_overdue_lessons(self, limit: int = 500) -> int:
        """Mark lessons whose expire_time has passed as EXPIRED.

        Only the status changes; expire_time is left as computed at
        provisioning.  Returns the number of rows updated.
        """
        overdue = await self._repo.list_expired(self._clock(), limit)
        updated = 0
        for lesson in overdue:
            if await self._repo.update_status(lesson.id, LessonStatus.EXPIRED):
                updated += 1
        if updated:
            LESSONS_EXPIRED.inc(updated)
            logger.info("Expired %d lessons", updated)
        return updated

    # ------------------------------------------------------------------
    # Aggregation
    # ------------------------------------------------------------------

    async def query_my_lessons(
        self, user_id: int, page: int, page_size: int
    ) -> LessonPage:
        lessons, total = await self._repo.list_by_user(user_id, page, page_size)
        if not lessons:
            return LessonPage.empty(total=total, page=page, page_size=page_size)

        course_ids = {lesson.course_id for lesson in lessons}
        infos = await self._courses.get_simple_info_list(sorted(course_ids))
        info_by_id = {info.id: info for info in infos}

        items: list[LessonView] = []
        for lesson in lessons:
            info = info_by_id.get(lesson.course_id)
            if info is None:
                logger.error(
                    "Course service dropped course=%d for user=%d",
                    lesson.course_id,
                    user_id,
                )
                raise CourseInfoMissingError(lesson.course_id)
            view = LessonView.from_lesson(lesson)
            view.course_name = info.name
            view.course_cover_url = info.cover_url
            view.sections = info.section_num
            items.append(view)

        return LessonPage(items=items, total=total, page=page, page_size=page_size)

    async def query_now_learning(self, user_id: int) -> LessonView | None:
        lesson = await self._repo.get_latest_learning(user_id)
        if lesson is None:
            return None

        course = await self._courses.get_course_info_by_id(
            lesson.course_id, with_catalogue=False, with_teachers=False
        )
        if course is None:
            logger.warning(
                "Now-learning course=%d not found for user=%d", lesson.course_id, user_id
            )
            return None

        view = LessonView.from_lesson(lesson)
        view.course_name = course.name
        view.course_cover_url = course.cover_url
        view.sections = course.section_num
        view.course_amount = await self._repo.count_by_user(user_id)

        if lesson.latest_section_id is not None:
            sections = await self._courses.batch_query_catalogue(
                [lesson.latest_section_id]
            )
            if sections:
                view.latest_section_name = sections[0].name
                view.latest_section_index = sections[0].c_index

        return view

    async def query_course_status(
        self, user_id: int, course_id: int
    ) -> LessonView | None:
        lesson = await self._repo.get_by_user_and_course(user_id, course_id)
        if lesson is None:
            return None
        return LessonView.from_lesson(lesson)

    async def query_course_valid(self, user_id: int, course_id: int) -> UUID | None:
        lesson = await self._repo.get_by_user_and_course(user_id, course_id)
        if lesson is None:
            return None

        infos = await self._courses.get_simple_info_list([course_id])
        if not infos:
            return None
        if not infos[0].is_accessible:
            logger.info(
                "Course=%d not accessible status=%s", course_id, infos[0].status
            )
            return None
        return lesson.id

    async def count_learning_lesson_by_course(self, course_id: int) -> int:
        return await self._repo.count_by_course_excluding_status(
            course_id, LessonStatus.EXPIRED
        )


@asynccontextmanager
async def lesson_service_scope() -> AsyncGenerator[LessonService, None]:
    """Build a LessonService for one request or one consumed event.

    With a database configured the service runs inside its own session
    scope (one transaction); otherwise it uses the in-memory store.
    """
    if db_engine.async_session_factory is None:
        yield LessonService(lesson_repo, course_client)
        return
    async with db_engine.session_scope() as session:
        yield LessonService(PgLessonRepo(session), course_client)

from __future__ import annotations

import datetime
import os
import sys
from pathlib import Path
from uuid import uuid4

# The suite runs against the in-memory store, course catalogue and event
# bus; make sure a developer's shell does not point it at real services.
for _var in ("DATABASE_URL", "REDIS_URL", "COURSE_SERVICE_URL"):
    os.environ.pop(_var, None)

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from learning.main import app  # noqa: E402
from learning.models.course import (  # noqa: E402
    CatalogueSimpleInfo,
    CourseSimpleInfo,
    CourseStatus,
)
from learning.models.lesson import Lesson, LessonStatus  # noqa: E402
from learning.repos.lesson_repo import lesson_repo  # noqa: E402
from learning.services.course_client import course_client  # noqa: E402
from learning.services.event_bus import event_bus  # noqa: E402

T0 = datetime.datetime(2026, 3, 15, 9, 30, tzinfo=datetime.UTC)


@pytest.fixture(autouse=True)
def reset_lesson_store() -> None:
    lesson_repo._by_id.clear()


@pytest.fixture(autouse=True)
def reset_course_catalogue() -> None:
    course_client.clear()  # type: ignore[union-attr]


@pytest.fixture(autouse=True)
def reset_event_bus() -> None:
    if hasattr(event_bus, "_queues"):
        event_bus._queues.clear()  # type: ignore[union-attr]
        event_bus._bindings.clear()  # type: ignore[union-attr]


@pytest.fixture
def client() -> TestClient:
    return TestClient(app)


def user_headers(user_id: int) -> dict[str, str]:
    """Headers the API gateway forwards for an authenticated caller."""
    return {"user-info": str(user_id)}


def make_course(
    course_id: int,
    *,
    valid_duration: int | None = None,
    status: CourseStatus = CourseStatus.PUBLISHED,
    section_num: int = 10,
) -> CourseSimpleInfo:
    return CourseSimpleInfo(
        id=course_id,
        name=f"Course {course_id}",
        cover_url=f"https://cdn.example.com/courses/{course_id}.png",
        section_num=section_num,
        valid_duration=valid_duration,
        status=int(status),
    )


def seed_course(course_id: int, **kwargs) -> CourseSimpleInfo:
    """Register a course in the shared in-memory catalogue."""
    course = make_course(course_id, **kwargs)
    course_client.add_course(course)  # type: ignore[union-attr]
    return course


def seed_section(section_id: int, name: str, c_index: int) -> None:
    course_client.add_section(  # type: ignore[union-attr]
        CatalogueSimpleInfo(id=section_id, name=name, c_index=c_index)
    )


def make_lesson(
    user_id: int,
    course_id: int,
    *,
    status: LessonStatus = LessonStatus.NOT_STARTED,
    latest_learn_time: datetime.datetime | None = None,
    latest_section_id: int | None = None,
    expire_time: datetime.datetime | None = None,
) -> Lesson:
    return Lesson(
        id=uuid4(),
        user_id=user_id,
        course_id=course_id,
        create_time=T0,
        status=status,
        expire_time=expire_time,
        latest_section_id=latest_section_id,
        latest_learn_time=latest_learn_time,
    )


def seed_lesson(user_id: int, course_id: int, **kwargs) -> Lesson:
    """Insert a lesson row into the shared in-memory store."""
    lesson = make_lesson(user_id, course_id, **kwargs)
    lesson_repo._by_id[lesson.id] = lesson
    return lesson

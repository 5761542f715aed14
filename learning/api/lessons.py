"""My-lesson-table endpoints.

All routes act on the calling user's own lesson table; the caller comes
from require_user and is passed to the service explicitly.  "Not found"
answers are 200 with a null body, not 404.
"""

from __future__ import annotations

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from learning.api.dependencies import get_lesson_service, require_user
from learning.models.lesson_view import LessonPage, LessonView
from learning.services.lesson_service import LessonService

router = APIRouter(prefix="/lessons", tags=["lessons"])

CurrentUser = Annotated[int, Depends(require_user)]
Lessons = Annotated[LessonService, Depends(get_lesson_service)]


@router.get("/page", response_model=LessonPage)
async def query_my_lessons(
    user_id: CurrentUser,
    lessons: Lessons,
    page: Annotated[int, Query(ge=1)] = 1,
    page_size: Annotated[int, Query(ge=1, le=100)] = 10,
) -> LessonPage:
    return await lessons.query_my_lessons(user_id, page, page_size)


@router.get("/now", response_model=LessonView | None)
async def query_now_learning(
    user_id: CurrentUser,
    lessons: Lessons,
) -> LessonView | None:
    return await lessons.query_now_learning(user_id)


@router.get("/{course_id}", response_model=LessonView | None)
async def query_course_status(
    course_id: int,
    user_id: CurrentUser,
    lessons: Lessons,
) -> LessonView | None:
    return await lessons.query_course_status(user_id, course_id)


@router.delete("/{course_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_invalid_course(
    course_id: int,
    user_id: CurrentUser,
    lessons: Lessons,
) -> None:
    await lessons.remove_invalid_courses(user_id, course_id)


@router.get("/{course_id}/valid", response_model=UUID | None)
async def query_course_valid(
    course_id: int,
    user_id: CurrentUser,
    lessons: Lessons,
) -> UUID | None:
    return await lessons.query_course_valid(user_id, course_id)


@router.get("/{course_id}/count", response_model=int)
async def count_learning_lesson_by_course(
    course_id: int,
    _user_id: CurrentUser,
    lessons: Lessons,
) -> int:
    return await lessons.count_learning_lesson_by_course(course_id)

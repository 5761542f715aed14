"""Client for the sibling course and catalogue services.

Two implementations satisfy the CourseClient Protocol:

  HttpCourseClient: httpx.AsyncClient against COURSE_SERVICE_URL.
  InMemoryCourseClient: dict-backed catalogue for local dev and tests.

Contract with callers:
  - "not found" is an ordinary result: an empty list, or None from
    get_course_info_by_id.
  - Anything else that goes wrong (connection refused, timeout, 5xx,
    unparsable body) raises CourseServiceError.  No retries happen here;
    the enclosing operation fails and the HTTP layer answers 503.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any, Protocol, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from learning.core.config import SETTINGS
from learning.core.metrics import COURSE_GATEWAY_REQUESTS
from learning.models.course import (
    CatalogueSimpleInfo,
    CourseFullInfo,
    CourseSimpleInfo,
)

logger = logging.getLogger(__name__)

_M = TypeVar("_M", bound=BaseModel)


class CourseServiceError(Exception):
    """The course service could not answer."""

    def __init__(self, operation: str, detail: str) -> None:
        super().__init__(f"{operation}: {detail}")
        self.operation = operation
        self.detail = detail


class CourseClient(Protocol):
    async def get_simple_info_list(
        self, course_ids: Iterable[int]
    ) -> list[CourseSimpleInfo]: ...
    async def get_course_info_by_id(
        self,
        course_id: int,
        with_catalogue: bool = False,
        with_teachers: bool = False,
    ) -> CourseFullInfo | None: ...
    async def batch_query_catalogue(
        self, section_ids: Iterable[int]
    ) -> list[CatalogueSimpleInfo]: ...


def _join_ids(ids: Iterable[int]) -> str:
    return ",".join(str(i) for i in dict.fromkeys(ids))


class HttpCourseClient:
    def __init__(self, client: httpx.AsyncClient) -> None:
        self._client = client

    @classmethod
    def from_url(cls, base_url: str, timeout: float = 5.0) -> HttpCourseClient:
        return cls(
            httpx.AsyncClient(
                base_url=base_url.rstrip("/"),
                timeout=httpx.Timeout(timeout, connect=min(timeout, 3.0)),
            )
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def get_simple_info_list(
        self, course_ids: Iterable[int]
    ) -> list[CourseSimpleInfo]:
        ids = _join_ids(course_ids)
        if not ids:
            return []
        body = await self._get(
            "get_simple_info_list", "/courses/simpleInfo/list", {"ids": ids}
        )
        return self._parse_list("get_simple_info_list", body, CourseSimpleInfo)

    async def get_course_info_by_id(
        self,
        course_id: int,
        with_catalogue: bool = False,
        with_teachers: bool = False,
    ) -> CourseFullInfo | None:
        params = {
            "withCatalogue": str(with_catalogue).lower(),
            "withTeachers": str(with_teachers).lower(),
        }
        body = await self._get(
            "get_course_info_by_id",
            f"/course/{course_id}",
            params,
            allow_not_found=True,
        )
        if body is None:
            return None
        try:
            return CourseFullInfo.model_validate(body)
        except ValidationError as e:
            raise CourseServiceError("get_course_info_by_id", str(e)) from e

    async def batch_query_catalogue(
        self, section_ids: Iterable[int]
    ) -> list[CatalogueSimpleInfo]:
        ids = _join_ids(section_ids)
        if not ids:
            return []
        body = await self._get(
            "batch_query_catalogue", "/catalogues/batchQuery", {"ids": ids}
        )
        return self._parse_list("batch_query_catalogue", body, CatalogueSimpleInfo)

    async def _get(
        self,
        operation: str,
        path: str,
        params: dict[str, str],
        *,
        allow_not_found: bool = False,
    ) -> Any:
        try:
            response = await self._client.get(path, params=params)
        except httpx.RequestError as e:
            COURSE_GATEWAY_REQUESTS.labels(operation=operation, outcome="error").inc()
            logger.error("Course service unreachable op=%s error=%s", operation, e)
            raise CourseServiceError(operation, "course service is unavailable") from e

        if response.status_code == 404 and allow_not_found:
            COURSE_GATEWAY_REQUESTS.labels(
                operation=operation, outcome="not_found"
            ).inc()
            return None

        if response.status_code >= 400:
            COURSE_GATEWAY_REQUESTS.labels(operation=operation, outcome="error").inc()
            logger.error(
                "Course service error op=%s status=%d", operation, response.status_code
            )
            raise CourseServiceError(
                operation, f"course service answered {response.status_code}"
            )

        if not response.content:
            COURSE_GATEWAY_REQUESTS.labels(
                operation=operation, outcome="not_found"
            ).inc()
            return None

        try:
            body = response.json()
        except ValueError as e:
            COURSE_GATEWAY_REQUESTS.labels(operation=operation, outcome="error").inc()
            raise CourseServiceError(operation, "response is not JSON") from e

        COURSE_GATEWAY_REQUESTS.labels(
            operation=operation, outcome="ok" if body is not None else "not_found"
        ).inc()
        return body

    @staticmethod
    def _parse_list(operation: str, body: Any, model: type[_M]) -> list[_M]:
        if body is None:
            return []
        if not isinstance(body, list):
            raise CourseServiceError(operation, "expected a JSON array")
        try:
            return [model.model_validate(item) for item in body]
        except ValidationError as e:
            raise CourseServiceError(operation, str(e)) from e


class InMemoryCourseClient:
    """Course catalogue held in dicts, for running without the course service."""

    def __init__(self) -> None:
        self._courses: dict[int, CourseSimpleInfo] = {}
        self._sections: dict[int, CatalogueSimpleInfo] = {}

    def add_course(self, course: CourseSimpleInfo) -> None:
        self._courses[course.id] = course

    def add_section(self, section: CatalogueSimpleInfo) -> None:
        self._sections[section.id] = section

    def clear(self) -> None:
        self._courses.clear()
        self._sections.clear()

    async def get_simple_info_list(
        self, course_ids: Iterable[int]
    ) -> list[CourseSimpleInfo]:
        return [
            self._courses[cid] for cid in dict.fromkeys(course_ids) if cid in self._courses
        ]

    async def get_course_info_by_id(
        self,
        course_id: int,
        with_catalogue: bool = False,
        with_teachers: bool = False,
    ) -> CourseFullInfo | None:
        course = self._courses.get(course_id)
        if course is None:
            return None
        return CourseFullInfo.model_validate(course.model_dump())

    async def batch_query_catalogue(
        self, section_ids: Iterable[int]
    ) -> list[CatalogueSimpleInfo]:
        return [
            self._sections[sid]
            for sid in dict.fromkeys(section_ids)
            if sid in self._sections
        ]


# ---------------------------------------------------------------------------
# Module-level singleton
# ---------------------------------------------------------------------------

if SETTINGS.course_service_url:
    course_client: CourseClient = HttpCourseClient.from_url(
        SETTINGS.course_service_url, SETTINGS.course_service_timeout
    )
else:
    course_client = InMemoryCourseClient()

from __future__ import annotations

import datetime
from uuid import UUID

import pytest
from fastapi.testclient import TestClient

from learning.api.dependencies import get_lesson_service
from learning.main import app
from learning.models.course import CourseStatus
from learning.models.lesson import LessonStatus
from learning.repos.lesson_repo import lesson_repo
from learning.services.course_client import CourseServiceError, InMemoryCourseClient
from learning.services.lesson_service import LessonService
from tests.conftest import T0, seed_course, seed_lesson, seed_section, user_headers


class _UnavailableCourseClient(InMemoryCourseClient):
    async def get_simple_info_list(self, course_ids):
        raise CourseServiceError("get_simple_info_list", "course service is unavailable")

    async def get_course_info_by_id(self, course_id, with_catalogue=False, with_teachers=False):
        raise CourseServiceError("get_course_info_by_id", "course service is unavailable")


@pytest.fixture
def course_service_down():
    async def _override():
        yield LessonService(lesson_repo, _UnavailableCourseClient())

    app.dependency_overrides[get_lesson_service] = _override
    yield
    app.dependency_overrides.pop(get_lesson_service, None)


# ---- identity ----


@pytest.mark.parametrize(
    "method, path",
    [
        ("get", "/lessons/page"),
        ("get", "/lessons/now"),
        ("get", "/lessons/7"),
        ("delete", "/lessons/7"),
        ("get", "/lessons/7/valid"),
        ("get", "/lessons/7/count"),
    ],
)
def test_lesson_routes_require_user_info(client: TestClient, method: str, path: str) -> None:
    resp = client.request(method, path)
    assert resp.status_code == 401


def test_non_numeric_user_info_is_rejected(client: TestClient) -> None:
    resp = client.get("/lessons/page", headers={"user-info": "alice"})
    assert resp.status_code == 401
    assert resp.json()["detail"] == "Invalid user identity"


# ---- GET /lessons/page ----


def test_page_lists_own_lessons_with_course_info(client: TestClient) -> None:
    seed_course(7)
    seed_course(9)
    seed_lesson(42, 7, latest_learn_time=T0)
    seed_lesson(42, 9, latest_learn_time=T0 + datetime.timedelta(minutes=5))
    seed_lesson(43, 7)

    resp = client.get("/lessons/page", headers=user_headers(42))

    assert resp.status_code == 200
    body = resp.json()
    assert body["total"] == 2
    assert body["pages"] == 1
    assert body["page"] == 1
    assert body["page_size"] == 10
    assert [item["course_id"] for item in body["items"]] == [9, 7]
    assert body["items"][0]["course_name"] == "Course 9"
    assert body["items"][0]["sections"] == 10


def test_page_beyond_end_keeps_total(client: TestClient) -> None:
    seed_course(7)
    seed_lesson(42, 7)
    seed_lesson(42, 8)

    resp = client.get(
        "/lessons/page", params={"page": 5, "page_size": 10}, headers=user_headers(42)
    )

    assert resp.status_code == 200
    body = resp.json()
    assert body["items"] == []
    assert body["total"] == 2


@pytest.mark.parametrize("params", [{"page": 0}, {"page_size": 0}, {"page_size": 101}])
def test_page_rejects_bad_paging(client: TestClient, params: dict) -> None:
    resp = client.get("/lessons/page", params=params, headers=user_headers(42))
    assert resp.status_code == 422


def test_page_fails_when_course_missing_upstream(client: TestClient) -> None:
    seed_lesson(42, 404)
    with TestClient(app, raise_server_exceptions=False) as c:
        resp = c.get("/lessons/page", headers=user_headers(42))
    assert resp.status_code == 500


# ---- GET /lessons/now ----


def test_now_returns_null_without_learning_lesson(client: TestClient) -> None:
    seed_course(7)
    seed_lesson(42, 7)

    resp = client.get("/lessons/now", headers=user_headers(42))

    assert resp.status_code == 200
    assert resp.json() is None


def test_now_returns_latest_learning_lesson(client: TestClient) -> None:
    seed_course(7)
    seed_course(9)
    seed_section(701, "Loops", 4)
    seed_lesson(
        42, 7, status=LessonStatus.LEARNING, latest_learn_time=T0, latest_section_id=701
    )
    seed_lesson(42, 9, status=LessonStatus.FINISHED)

    resp = client.get("/lessons/now", headers=user_headers(42))

    assert resp.status_code == 200
    body = resp.json()
    assert body["course_id"] == 7
    assert body["status"] == LessonStatus.LEARNING
    assert body["course_amount"] == 2
    assert body["latest_section_name"] == "Loops"
    assert body["latest_section_index"] == 4


# ---- GET /lessons/{course_id} ----


def test_course_status_returns_row(client: TestClient) -> None:
    lesson = seed_lesson(42, 7, status=LessonStatus.FINISHED)

    resp = client.get("/lessons/7", headers=user_headers(42))

    assert resp.status_code == 200
    body = resp.json()
    assert body["id"] == str(lesson.id)
    assert body["status"] == LessonStatus.FINISHED
    assert body["expire_time"] is None
    # course enrichment is not part of this view
    assert body["course_name"] is None


def test_course_status_null_for_other_users_row(client: TestClient) -> None:
    seed_lesson(43, 7)
    resp = client.get("/lessons/7", headers=user_headers(42))
    assert resp.status_code == 200
    assert resp.json() is None


# ---- DELETE /lessons/{course_id} ----


def test_delete_removes_own_row(client: TestClient) -> None:
    seed_lesson(42, 7)
    seed_lesson(43, 7)

    resp = client.delete("/lessons/7", headers=user_headers(42))

    assert resp.status_code == 204
    assert client.get("/lessons/7", headers=user_headers(42)).json() is None
    assert client.get("/lessons/7", headers=user_headers(43)).json() is not None


def test_delete_absent_row_is_noop(client: TestClient) -> None:
    resp = client.delete("/lessons/7", headers=user_headers(42))
    assert resp.status_code == 204


# ---- GET /lessons/{course_id}/valid ----


def test_valid_returns_lesson_id_for_published_course(client: TestClient) -> None:
    seed_course(7)
    lesson = seed_lesson(42, 7)

    resp = client.get("/lessons/7/valid", headers=user_headers(42))

    assert resp.status_code == 200
    assert UUID(resp.json()) == lesson.id


def test_valid_null_for_removed_course(client: TestClient) -> None:
    seed_course(7, status=CourseStatus.REMOVED)
    seed_lesson(42, 7)

    resp = client.get("/lessons/7/valid", headers=user_headers(42))

    assert resp.status_code == 200
    assert resp.json() is None


def test_valid_null_without_lesson(client: TestClient) -> None:
    seed_course(7)
    resp = client.get("/lessons/7/valid", headers=user_headers(42))
    assert resp.json() is None


# ---- GET /lessons/{course_id}/count ----


def test_count_excludes_expired(client: TestClient) -> None:
    seed_lesson(1, 7, status=LessonStatus.EXPIRED)
    seed_lesson(2, 7, status=LessonStatus.LEARNING)
    seed_lesson(3, 7)

    resp = client.get("/lessons/7/count", headers=user_headers(42))

    assert resp.status_code == 200
    assert resp.json() == 2


# ---- course service outage ----


@pytest.mark.usefixtures("course_service_down")
def test_course_service_outage_is_503(client: TestClient) -> None:
    seed_lesson(42, 7)
    seed_lesson(42, 9, status=LessonStatus.LEARNING, latest_learn_time=T0)

    page = client.get("/lessons/page", headers=user_headers(42))
    now = client.get("/lessons/now", headers=user_headers(42))
    valid = client.get("/lessons/7/valid", headers=user_headers(42))

    for resp in (page, now, valid):
        assert resp.status_code == 503
        assert resp.json() == {"detail": "Course service is unavailable"}


@pytest.mark.usefixtures("course_service_down")
def test_local_reads_survive_course_service_outage(client: TestClient) -> None:
    seed_lesson(42, 7)
    assert client.get("/lessons/7", headers=user_headers(42)).status_code == 200
    assert client.get("/lessons/7/count", headers=user_headers(42)).json() == 1

from __future__ import annotations

import asyncio

import httpx
import pytest

from learning.services.course_client import CourseServiceError, HttpCourseClient


def _client(handler) -> HttpCourseClient:
    transport = httpx.MockTransport(handler)
    return HttpCourseClient(
        httpx.AsyncClient(transport=transport, base_url="http://course-service")
    )


def test_simple_info_list_parses_camel_case() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(
            200,
            json=[
                {
                    "id": 7,
                    "name": "Python basics",
                    "coverUrl": "https://cdn.example.com/7.png",
                    "sectionNum": 24,
                    "validDuration": 12,
                    "status": 2,
                    "price": 9900,
                }
            ],
        )

    courses = asyncio.run(_client(handler).get_simple_info_list([7, 7]))

    assert len(courses) == 1
    course = courses[0]
    assert course.id == 7
    assert course.cover_url == "https://cdn.example.com/7.png"
    assert course.section_num == 24
    assert course.valid_duration == 12
    assert course.is_accessible
    assert seen[0].url.path == "/courses/simpleInfo/list"
    assert seen[0].url.params["ids"] == "7"


def test_empty_ids_skip_the_request() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("no request expected")

    client = _client(handler)
    assert asyncio.run(client.get_simple_info_list([])) == []
    assert asyncio.run(client.batch_query_catalogue([])) == []


def test_course_info_by_id_sends_flags() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"id": 7, "name": "Python basics", "sectionNum": 3})

    course = asyncio.run(_client(handler).get_course_info_by_id(7))

    assert course is not None
    assert course.section_num == 3
    assert seen[0].url.path == "/course/7"
    assert seen[0].url.params["withCatalogue"] == "false"
    assert seen[0].url.params["withTeachers"] == "false"


def test_course_info_by_id_not_found_is_none() -> None:
    client = _client(lambda request: httpx.Response(404))
    assert asyncio.run(client.get_course_info_by_id(7)) is None


def test_course_info_by_id_empty_body_is_none() -> None:
    client = _client(lambda request: httpx.Response(200, content=b""))
    assert asyncio.run(client.get_course_info_by_id(7)) is None


def test_batch_query_catalogue_parses_c_index() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.params["ids"] == "701,702"
        return httpx.Response(
            200,
            json=[
                {"id": 701, "name": "Intro", "cIndex": 1},
                {"id": 702, "name": "Loops", "cIndex": 2},
            ],
        )

    sections = asyncio.run(_client(handler).batch_query_catalogue([701, 702]))

    assert [(s.id, s.name, s.c_index) for s in sections] == [
        (701, "Intro", 1),
        (702, "Loops", 2),
    ]


def test_server_error_raises() -> None:
    client = _client(lambda request: httpx.Response(500, json={"msg": "boom"}))
    with pytest.raises(CourseServiceError) as exc_info:
        asyncio.run(client.get_simple_info_list([7]))
    assert exc_info.value.operation == "get_simple_info_list"


def test_not_found_on_list_endpoint_raises() -> None:
    client = _client(lambda request: httpx.Response(404))
    with pytest.raises(CourseServiceError):
        asyncio.run(client.get_simple_info_list([7]))


def test_connection_error_raises() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(CourseServiceError):
        asyncio.run(_client(handler).get_course_info_by_id(7))


def test_non_json_body_raises() -> None:
    client = _client(lambda request: httpx.Response(200, content=b"<html>"))
    with pytest.raises(CourseServiceError):
        asyncio.run(client.batch_query_catalogue([701]))


def test_unexpected_shape_raises() -> None:
    client = _client(lambda request: httpx.Response(200, json={"id": 7}))
    with pytest.raises(CourseServiceError):
        asyncio.run(client.get_simple_info_list([7]))

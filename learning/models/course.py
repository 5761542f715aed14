"""Course and catalogue records as returned by the course service.

These are wire-level records: the course service speaks camelCase JSON
(`coverUrl`, `sectionNum`, `cIndex`), so the models carry camelCase
aliases and also accept snake_case names when built in Python.
"""

from __future__ import annotations

from enum import IntEnum

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CourseStatus(IntEnum):
    PENDING = 1
    PUBLISHED = 2
    REMOVED = 3
    FINISHED = 4


_WIRE_CONFIG = ConfigDict(
    alias_generator=to_camel,
    populate_by_name=True,
    extra="ignore",
    frozen=True,
)


class CourseSimpleInfo(BaseModel):
    model_config = _WIRE_CONFIG

    id: int
    name: str = ""
    cover_url: str | None = None
    section_num: int | None = None
    valid_duration: int | None = None  # months
    status: int | None = None

    @property
    def is_accessible(self) -> bool:
        """False while the course waits to go on sale or after it was taken down."""
        return self.status not in (CourseStatus.PENDING, CourseStatus.REMOVED)


class CourseFullInfo(BaseModel):
    model_config = _WIRE_CONFIG

    id: int
    name: str = ""
    cover_url: str | None = None
    section_num: int | None = None
    valid_duration: int | None = None
    status: int | None = None


class CatalogueSimpleInfo(BaseModel):
    model_config = _WIRE_CONFIG

    id: int
    name: str = ""
    c_index: int | None = None  # ordinal of the section within the course

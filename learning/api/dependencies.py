from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from typing import Annotated

from fastapi import Header, HTTPException, status

from learning.services.lesson_service import LessonService, lesson_service_scope

logger = logging.getLogger(__name__)


def require_user(
    user_info: Annotated[str | None, Header(alias="user-info")] = None,
) -> int:
    """Resolve the caller's user id from the gateway-forwarded header.

    The API gateway authenticates the caller and forwards the numeric id
    in `user-info`; this service trusts that header and nothing else.
    """
    if user_info is None or not user_info.strip():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing user identity",
        )
    try:
        return int(user_info.strip())
    except ValueError:
        logger.warning("Rejected non-numeric user-info header %r", user_info)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid user identity",
        ) from None


async def get_lesson_service() -> AsyncGenerator[LessonService, None]:
    """Request-scoped LessonService (one transaction per request)."""
    async with lesson_service_scope() as service:
        yield service

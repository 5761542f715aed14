from __future__ import annotations

import asyncio

import pytest

from learning.db import redis as redis_module


class _FakePool:
    def __init__(self, *, reachable: bool) -> None:
        self.reachable = reachable
        self.closed = False

    async def ping(self) -> bool:
        if not self.reachable:
            raise ConnectionError("redis is down")
        return True

    async def aclose(self) -> None:
        self.closed = True


async def _enter_and_leave() -> None:
    async with redis_module.lifespan_redis():
        pass


@pytest.mark.parametrize("reachable", [True, False])
def test_lifespan_redis_closes_pool_on_shutdown(
    monkeypatch: pytest.MonkeyPatch, reachable: bool
) -> None:
    pool = _FakePool(reachable=reachable)
    monkeypatch.setattr(redis_module, "redis_pool", pool)

    asyncio.run(_enter_and_leave())

    assert pool.closed is True


def test_lifespan_redis_closes_pool_when_app_fails(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    pool = _FakePool(reachable=True)
    monkeypatch.setattr(redis_module, "redis_pool", pool)

    async def crash() -> None:
        async with redis_module.lifespan_redis():
            raise RuntimeError("startup failed")

    with pytest.raises(RuntimeError):
        asyncio.run(crash())
    assert pool.closed is True


def test_lifespan_redis_without_pool_is_noop(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(redis_module, "redis_pool", None)
    asyncio.run(_enter_and_leave())

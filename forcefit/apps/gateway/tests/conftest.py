"""apps/gateway 测试配置 -- FastAPI app + httpx AsyncClient + 可控时钟

ASGITransport 不触发 lifespan，服务实例在 fixture 中手动装配到 app.state。
"""

import os
from collections.abc import AsyncGenerator, Callable
from pathlib import Path

import pytest
import pytest_asyncio
from forcefit.core.store import create_store_group
from forcefit.core.store.task_store import SqliteTaskStore
from forcefit.gateway.services.coaching_service import CoachingService
from forcefit.gateway.services.task_service import TaskService
from forcefit.provider import EchoMessageAdapter, FallbackManager, StreamingRelay
from httpx import ASGITransport, AsyncClient
from sse_starlette.sse import AppStatus


@pytest.fixture(autouse=True)
def reset_sse_app_status():
    """sse-starlette 的退出事件绑定在首个事件循环上，每个测试重置"""
    AppStatus.should_exit_event = None
    yield
    AppStatus.should_exit_event = None


def make_coaching_service(primary=None, fallback=None, streaming: bool = True) -> CoachingService:
    """以给定后端构造 CoachingService（默认 echo）"""
    relay = StreamingRelay(
        FallbackManager(primary=primary or EchoMessageAdapter(), fallback=fallback),
        streaming_enabled=streaming,
    )
    return CoachingService(relay)


@pytest_asyncio.fixture
async def test_app(tmp_path: Path, clock):
    """创建测试用 FastAPI app（手动初始化，绕过 lifespan）"""
    db_path = str(tmp_path / "sqlite" / "test.db")
    os.environ["FORCEFIT_DB_PATH"] = db_path
    os.environ["LOGFIRE_SEND_TO_LOGFIRE"] = "false"

    from forcefit.gateway.main import create_app

    app = create_app()

    store_group = await create_store_group(db_path)
    app.state.db_path = db_path
    app.state.store_group = store_group
    app.state.task_service = TaskService(
        SqliteTaskStore(store_group.conn, clock=clock),
        stale_claim_hours=2,
        clock=clock,
    )
    app.state.coaching_service = make_coaching_service()
    app.state.litellm_client = None

    yield app

    await store_group.conn.close()
    for key in ("FORCEFIT_DB_PATH", "LOGFIRE_SEND_TO_LOGFIRE"):
        os.environ.pop(key, None)


@pytest_asyncio.fixture
async def client(test_app) -> AsyncGenerator[AsyncClient, None]:
    """提供 httpx AsyncClient 用于测试"""
    async with AsyncClient(
        transport=ASGITransport(app=test_app),
        base_url="http://test",
    ) as ac:
        yield ac


@pytest.fixture
def set_coaching_backend(test_app) -> Callable[..., CoachingService]:
    """替换 app 上的教练对话后端"""

    def _set(primary=None, fallback=None, streaming: bool = True) -> CoachingService:
        service = make_coaching_service(primary, fallback, streaming)
        test_app.state.coaching_service = service
        return service

    return _set

"""集成测试共享 fixture"""

import os
from collections.abc import AsyncGenerator
from pathlib import Path

import pytest
import pytest_asyncio
from forcefit.core.store import create_store_group
from forcefit.gateway.services.coaching_service import CoachingService
from forcefit.gateway.services.task_service import TaskService
from forcefit.provider import EchoMessageAdapter, FallbackManager, StreamingRelay
from httpx import ASGITransport, AsyncClient
from sse_starlette.sse import AppStatus


@pytest.fixture(autouse=True)
def reset_sse_app_status():
    AppStatus.should_exit_event = None
    yield
    AppStatus.should_exit_event = None


@pytest_asyncio.fixture
async def integration_app(tmp_path: Path):
    """集成测试用 FastAPI app（真实时钟、真实 SQLite 文件）"""
    db_path = str(tmp_path / "test.db")
    os.environ["FORCEFIT_DB_PATH"] = db_path
    os.environ["LOGFIRE_SEND_TO_LOGFIRE"] = "false"

    from forcefit.gateway.main import create_app

    app = create_app()

    store_group = await create_store_group(db_path)
    app.state.db_path = db_path
    app.state.store_group = store_group
    app.state.task_service = TaskService(store_group.task_store)
    app.state.coaching_service = CoachingService(
        StreamingRelay(FallbackManager(primary=EchoMessageAdapter()))
    )
    app.state.litellm_client = None

    yield app

    await store_group.conn.close()
    os.environ.pop("FORCEFIT_DB_PATH", None)
    os.environ.pop("LOGFIRE_SEND_TO_LOGFIRE", None)


@pytest_asyncio.fixture
async def client(integration_app) -> AsyncGenerator[AsyncClient, None]:
    async with AsyncClient(
        transport=ASGITransport(app=integration_app),
        base_url="http://test",
    ) as ac:
        yield ac

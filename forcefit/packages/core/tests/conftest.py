"""packages/core 测试配置 -- 核心层 fixture"""

import pytest_asyncio
from forcefit.core.store.task_store import SqliteTaskStore


@pytest_asyncio.fixture
async def task_store(db_conn, clock) -> SqliteTaskStore:
    """绑定可控时钟的 TaskStore"""
    return SqliteTaskStore(db_conn, clock=clock)

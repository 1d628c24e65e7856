"""TaskService 测试

测试内容：
1. 创建 / 查询 / 更新 / 删除 完整流程
2. 字段校验与白名单
3. 认领语义（last-write-wins / exclusive）
4. 超时认领释放（阈值、条件写入）
5. 看板统计
"""

from datetime import timedelta

import pytest
import pytest_asyncio
from forcefit.core.exceptions import ClaimConflictError, NotFoundError, ValidationError
from forcefit.core.models import TaskPriority, TaskStatus, TaskUpdate
from forcefit.core.store.task_store import SqliteTaskStore
from forcefit.gateway.services.task_service import STALE_CLAIM_REASON, TaskService


@pytest_asyncio.fixture
async def service(db_conn, clock) -> TaskService:
    return TaskService(SqliteTaskStore(db_conn, clock=clock), stale_claim_hours=2, clock=clock)


class TestTaskLifecycle:
    async def test_coordination_scenario(self, service: TaskService, clock):
        """管理员创建 → agent 认领 → 提交 review → 完成"""
        task_id = await service.create(
            {"title": "编写周训练计划", "priority": "high", "assignee": "ai_agent"}
        )

        available = await service.list_available("ai_agent")
        assert [t.task_id for t in available] == [task_id]

        clock.advance(minutes=1)
        await service.claim(task_id, "agent-7")
        task = await service.get(task_id)
        assert task.status == TaskStatus.IN_PROGRESS
        assert task.claimed_by == "agent-7"
        assert await service.list_available("ai_agent") == []

        clock.advance(minutes=30)
        await service.update_status(task_id, "review")
        assert [t.task_id for t in await service.list_claimed_by("agent-7")] == [task_id]

        clock.advance(minutes=5)
        await service.update_status(task_id, TaskStatus.COMPLETED)
        task = await service.get(task_id)
        assert task.status == TaskStatus.COMPLETED
        assert task.completed_at == clock.now
        assert await service.list_claimed_by("agent-7") == []

    async def test_get_missing_returns_none(self, service: TaskService):
        assert await service.get("01JNONEXISTENT000000000000") is None

    async def test_delete(self, service: TaskService):
        task_id = await service.create({"title": "t"})
        await service.delete(task_id)
        await service.delete(task_id)
        assert await service.get(task_id) is None


class TestValidation:
    async def test_create_requires_title(self, service: TaskService):
        with pytest.raises(ValidationError, match="title"):
            await service.create({"description": "no title"})

    async def test_create_rejects_non_object(self, service: TaskService):
        with pytest.raises(ValidationError):
            await service.create(["title"])

    async def test_update_drops_unknown_fields(self, service: TaskService):
        task_id = await service.create({"title": "t"})
        before = await service.get(task_id)

        await service.update(task_id, {"title": "new", "createdAt": "2000-01-01T00:00:00Z"})

        task = await service.get(task_id)
        assert task.title == "new"
        assert task.created_at == before.created_at

    async def test_update_rejects_null_required(self, service: TaskService):
        task_id = await service.create({"title": "t"})
        with pytest.raises(ValidationError, match="title"):
            await service.update(task_id, {"title": None})

    async def test_update_accepts_model(self, service: TaskService):
        task_id = await service.create({"title": "t"})
        await service.update(task_id, TaskUpdate(priority=TaskPriority.URGENT))
        assert (await service.get(task_id)).priority == TaskPriority.URGENT

    async def test_update_missing_task(self, service: TaskService):
        with pytest.raises(NotFoundError):
            await service.update("01JNONEXISTENT000000000000", {"title": "x"})

    async def test_invalid_status_value(self, service: TaskService):
        task_id = await service.create({"title": "t"})
        with pytest.raises(ValidationError, match="status"):
            await service.update_status(task_id, "archived")

    async def test_invalid_priority_value(self, service: TaskService):
        task_id = await service.create({"title": "t"})
        with pytest.raises(ValidationError, match="priority"):
            await service.update_priority(task_id, "critical")

    async def test_list_by_invalid_status(self, service: TaskService):
        with pytest.raises(ValidationError):
            await service.list_by_status("done")

    async def test_claim_requires_actor(self, service: TaskService):
        task_id = await service.create({"title": "t"})
        with pytest.raises(ValidationError, match="actor_id"):
            await service.claim(task_id, "  ")


class TestClaims:
    async def test_concurrent_claims_last_write_wins(self, service: TaskService):
        task_id = await service.create({"title": "t"})
        await service.claim(task_id, "agent-a")
        await service.claim(task_id, "agent-b")
        assert (await service.get(task_id)).claimed_by == "agent-b"

    async def test_exclusive_claim_conflict(self, service: TaskService):
        task_id = await service.create({"title": "t"})
        await service.claim(task_id, "agent-a", exclusive=True)
        with pytest.raises(ClaimConflictError):
            await service.claim(task_id, "agent-b", exclusive=True)

    async def test_unclaim_returns_to_pool(self, service: TaskService):
        task_id = await service.create({"title": "t"})
        await service.claim(task_id, "agent-a")
        await service.unclaim(task_id)

        task = await service.get(task_id)
        assert task.status == TaskStatus.PENDING
        assert task.claimed_by is None
        assert [t.task_id for t in await service.list_available()] == [task_id]


class TestStaleRelease:
    async def test_releases_only_stale(self, service: TaskService, clock):
        old = await service.create({"title": "old"})
        fresh = await service.create({"title": "fresh"})
        await service.claim(old, "agent-a")
        clock.advance(hours=2, minutes=30)
        await service.claim(fresh, "agent-b")

        released = await service.release_stale_claims()

        assert released == [old]
        old_task = await service.get(old)
        assert old_task.status == TaskStatus.PENDING
        assert old_task.claimed_by is None
        assert old_task.metadata["release_reason"] == STALE_CLAIM_REASON
        assert old_task.metadata["previous_claimed_by"] == "agent-a"
        assert (await service.get(fresh)).claimed_by == "agent-b"

    async def test_custom_max_age(self, service: TaskService, clock):
        task_id = await service.create({"title": "t"})
        await service.claim(task_id, "agent-a")
        clock.advance(minutes=20)

        assert await service.release_stale_claims(timedelta(hours=1)) == []
        assert await service.release_stale_claims(timedelta(minutes=10)) == [task_id]

    async def test_nothing_to_release(self, service: TaskService):
        assert await service.release_stale_claims() == []

    async def test_negative_max_age_rejected(self, service: TaskService):
        with pytest.raises(ValidationError):
            await service.release_stale_claims(timedelta(hours=-1))

    async def test_metadata_preserved(self, service: TaskService, clock):
        task_id = await service.create({"title": "t", "metadata": {"source": "admin"}})
        await service.claim(task_id, "agent-a")
        clock.advance(hours=3)

        await service.release_stale_claims()

        metadata = (await service.get(task_id)).metadata
        assert metadata["source"] == "admin"
        assert metadata["release_reason"] == STALE_CLAIM_REASON


class TestStats:
    async def test_stats(self, service: TaskService):
        a = await service.create({"title": "a"})
        await service.create({"title": "b", "assignee": "human"})
        await service.claim(a, "agent-a")

        stats = await service.stats()
        assert stats.total == 2
        assert stats.claimed == 1
        assert stats.by_status["in_progress"] == 1
        assert stats.by_assignee["human"] == 1

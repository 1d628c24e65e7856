"""Store Protocol 接口定义

TaskStore 的抽象接口，使用 Python Protocol 实现结构化子类型（duck typing）。
TaskService 只依赖此接口，便于在测试中替换为失败注入的实现。
"""

from datetime import datetime
from typing import Any, Protocol

from ..models.enums import AssigneeKind, TaskStatus
from ..models.task import Task, TaskDraft, TaskStats


class TaskStore(Protocol):
    """Task 文档存储接口"""

    async def create_task(self, draft: TaskDraft) -> str:
        """插入任务，返回存储层分配的 task_id"""
        ...

    async def get_task(self, task_id: str) -> Task | None:
        """根据 task_id 查询任务"""
        ...

    async def list_tasks(self, status: TaskStatus | None = None) -> list[Task]:
        """查询任务列表，支持按状态筛选"""
        ...

    async def update_task(self, task_id: str, changes: dict[str, Any]) -> None:
        """合并白名单字段（不存在时抛 NotFoundError）"""
        ...

    async def delete_task(self, task_id: str) -> None:
        """硬删除（幂等）"""
        ...

    async def claim_task(self, task_id: str, actor_id: str, exclusive: bool = False) -> None:
        """认领任务"""
        ...

    async def unclaim_task(self, task_id: str) -> None:
        """释放认领"""
        ...

    async def list_claimed_by(self, actor_id: str) -> list[Task]:
        """actor 当前持有的任务"""
        ...

    async def list_available(self, assignee: AssigneeKind = AssigneeKind.ANY) -> list[Task]:
        """可认领任务"""
        ...

    async def list_stale_claims(self, cutoff: datetime) -> list[Task]:
        """认领超时的任务"""
        ...

    async def release_claim(
        self,
        task_id: str,
        claimed_by: str,
        claimed_at: datetime,
        reason: str,
    ) -> bool:
        """条件释放认领"""
        ...

    async def task_stats(self) -> TaskStats:
        """看板统计"""
        ...

"""TaskService -- 共享待办池的协调逻辑

在 app lifespan 中构造一次，通过 Depends 注入各路由。
每个操作对应一次存储交互（release_stale_claims 除外：一次查询 + 每个过期任务一次条件写入）。
状态之间不强制流转图：任何状态都可通过 update 设置，仅有两条自动时间戳规则和 unclaim 的重置。
"""

from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from enum import StrEnum
from typing import Any, TypeVar

import structlog
from forcefit.core.config import get_stale_claim_hours
from forcefit.core.exceptions import ValidationError
from forcefit.core.models import (
    AssigneeKind,
    Task,
    TaskDraft,
    TaskPriority,
    TaskStats,
    TaskStatus,
    TaskUpdate,
)
from forcefit.core.store import TaskStore
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

log = structlog.get_logger()

STALE_CLAIM_REASON = "stale_claim"

# 库中为 NOT NULL 的白名单字段，显式传入 None 视为非法
_NON_NULLABLE_FIELDS = frozenset(
    {"title", "description", "status", "priority", "tags", "assignee", "metadata"}
)

_ModelT = TypeVar("_ModelT", bound=BaseModel)
_EnumT = TypeVar("_EnumT", bound=StrEnum)


def _validate(model: type[_ModelT], data: Any) -> _ModelT:
    """pydantic 校验失败 → ValidationError"""
    if isinstance(data, model):
        return data
    if not isinstance(data, dict):
        raise ValidationError(f"Expected an object, got {type(data).__name__}")
    try:
        return model.model_validate(data)
    except PydanticValidationError as e:
        details = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or 'body'}: {err['msg']}" for err in e.errors()
        )
        raise ValidationError(details) from e


def _parse_enum(enum_cls: type[_EnumT], value: Any, field: str) -> _EnumT:
    try:
        return enum_cls(value)
    except ValueError as e:
        allowed = ", ".join(m.value for m in enum_cls)
        raise ValidationError(f"{field}: '{value}' is not one of {allowed}") from e


def _require_id(value: Any, field: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field} is required")
    return value


class TaskService:
    """任务协调服务"""

    def __init__(
        self,
        task_store: TaskStore,
        stale_claim_hours: float | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        """
        Args:
            task_store: 任务文档存储
            stale_claim_hours: 认领过期阈值（小时），默认读取 FORCEFIT_STALE_CLAIM_HOURS
            clock: 当前时间来源（应与 store 使用同一来源）
        """
        self._store = task_store
        self._stale_claim_hours = (
            stale_claim_hours if stale_claim_hours is not None else get_stale_claim_hours()
        )
        self._clock = clock or (lambda: datetime.now(UTC))

    async def list_all(self) -> list[Task]:
        """全部任务，created_at 倒序"""
        return await self._store.list_tasks()

    async def list_by_status(self, status: TaskStatus | str) -> list[Task]:
        """按状态筛选，优先级倒序、created_at 倒序"""
        return await self._store.list_tasks(_parse_enum(TaskStatus, status, "status"))

    async def get(self, task_id: str) -> Task | None:
        """不存在时返回 None"""
        return await self._store.get_task(task_id)

    async def create(self, draft: TaskDraft | dict[str, Any]) -> str:
        """创建任务，返回存储层分配的 task_id"""
        draft = _validate(TaskDraft, draft)
        task_id = await self._store.create_task(draft)
        log.info(
            "task_created",
            task_id=task_id,
            priority=draft.priority.value,
            status=draft.status.value,
            assignee=draft.assignee.value,
            created_by=draft.created_by,
        )
        return task_id

    async def update(self, task_id: str, fields: TaskUpdate | dict[str, Any]) -> None:
        """合并白名单字段，白名单之外的键静默丢弃

        Raises:
            ValidationError: 字段值不合法
            NotFoundError: 任务不存在
            PersistenceError: 存储失败
        """
        if isinstance(fields, dict):
            ignored = sorted(set(fields) - _known_update_keys())
            if ignored:
                log.debug("task_update_fields_ignored", task_id=task_id, fields=ignored)
        changes = _validate(TaskUpdate, fields).changes()

        cleared = sorted(k for k in _NON_NULLABLE_FIELDS if k in changes and changes[k] is None)
        if cleared:
            raise ValidationError(f"Fields cannot be null: {', '.join(cleared)}")

        await self._store.update_task(task_id, changes)
        log.info("task_updated", task_id=task_id, fields=sorted(changes))

    async def update_status(self, task_id: str, status: TaskStatus | str) -> None:
        await self.update(task_id, TaskUpdate(status=_parse_enum(TaskStatus, status, "status")))

    async def update_priority(self, task_id: str, priority: TaskPriority | str) -> None:
        await self.update(
            task_id, TaskUpdate(priority=_parse_enum(TaskPriority, priority, "priority"))
        )

    async def delete(self, task_id: str) -> None:
        """硬删除，幂等"""
        await self._store.delete_task(task_id)
        log.info("task_deleted", task_id=task_id)

    async def claim(self, task_id: str, actor_id: str, exclusive: bool = False) -> None:
        """认领任务

        默认 last-write-wins：并发认领时后写者覆盖前者，调用方应在认领后重读 claimed_by。
        exclusive=True 时为条件写入，已被他人持有则抛 ClaimConflictError。
        """
        actor_id = _require_id(actor_id, "actor_id")
        await self._store.claim_task(task_id, actor_id, exclusive=exclusive)
        log.info("task_claimed", task_id=task_id, actor_id=actor_id, exclusive=exclusive)

    async def unclaim(self, task_id: str) -> None:
        """释放认领，不校验持有者"""
        await self._store.unclaim_task(task_id)
        log.info("task_unclaimed", task_id=task_id)

    async def list_claimed_by(self, actor_id: str) -> list[Task]:
        """actor 持有的 in_progress/review 任务，claimed_at 倒序"""
        return await self._store.list_claimed_by(_require_id(actor_id, "actor_id"))

    async def list_available(self, assignee: AssigneeKind | str = AssigneeKind.ANY) -> list[Task]:
        """可认领的 pending 任务"""
        return await self._store.list_available(_parse_enum(AssigneeKind, assignee, "assignee"))

    async def release_stale_claims(self, max_age: timedelta | None = None) -> list[str]:
        """释放超时认领，返回被释放的 task_id

        每个释放都以原 claimed_by/claimed_at 为条件，期间被重新认领的任务保持不变。
        """
        if max_age is None:
            max_age = timedelta(hours=self._stale_claim_hours)
        if max_age < timedelta(0):
            raise ValidationError("max_age must not be negative")

        cutoff = self._clock() - max_age
        stale = await self._store.list_stale_claims(cutoff)

        released: list[str] = []
        for task in stale:
            ok = await self._store.release_claim(
                task.task_id,
                claimed_by=task.claimed_by,
                claimed_at=task.claimed_at,
                reason=STALE_CLAIM_REASON,
            )
            if ok:
                released.append(task.task_id)
                log.info(
                    "stale_claim_released",
                    task_id=task.task_id,
                    previous_claimed_by=task.claimed_by,
                    claimed_at=task.claimed_at.isoformat(),
                )
            else:
                log.debug("stale_claim_changed_before_release", task_id=task.task_id)

        log.info("stale_claims_checked", found=len(stale), released=len(released))
        return released

    async def stats(self) -> TaskStats:
        return await self._store.task_stats()


def _known_update_keys() -> set[str]:
    keys: set[str] = set()
    for name, field in TaskUpdate.model_fields.items():
        keys.add(name)
        if field.alias:
            keys.add(field.alias)
    return keys

"""TaskStore SQLite 实现

tasks 表即文档集合：一行一个任务文档。
task_id 与 created_at / updated_at / claimed_at 由本层在写入时分配。
每个写方法对应一条原子 UPDATE/INSERT/DELETE，底层 sqlite3 异常统一包装为 PersistenceError，
不做重试。
"""

import json
import sqlite3
from collections.abc import Callable, Sequence
from datetime import UTC, datetime
from enum import Enum
from typing import Any

import aiosqlite
import structlog
from ulid import ULID

from ..exceptions import ClaimConflictError, NotFoundError, PersistenceError
from ..models.enums import CLAIMED_STATUSES, AssigneeKind, TaskPriority, TaskStatus
from ..models.task import Task, TaskDraft, TaskStats

log = structlog.get_logger()

_JSON_COLUMNS = frozenset({"tags", "dependencies", "metadata"})
_DATETIME_COLUMNS = frozenset(
    {"claimed_at", "due_date", "created_at", "updated_at", "completed_at", "released_at"}
)
# update_task 可写列（与 TaskUpdate 白名单一致）
_MUTABLE_COLUMNS = frozenset(
    {
        "title",
        "description",
        "status",
        "priority",
        "assigned_to",
        "tags",
        "due_date",
        "completed_at",
        "released_at",
        "claimed_by",
        "claimed_at",
        "assignee",
        "metadata",
    }
)
_CLAIMED_STATUS_VALUES = tuple(sorted(s.value for s in CLAIMED_STATUSES))


def _utc_now() -> datetime:
    return datetime.now(UTC)


def to_store_time(value: datetime) -> str:
    """datetime → ISO-8601 UTC 文本（固定微秒精度，保证字典序即时间序）

    naive datetime 按 UTC 处理。
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC).isoformat(timespec="microseconds")


def _from_store_time(value: str | None) -> datetime | None:
    if value is None:
        return None
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def _to_column(name: str, value: Any) -> Any:
    """Python 值 → 列值"""
    if value is None:
        return None
    if name in _JSON_COLUMNS:
        return json.dumps(value, ensure_ascii=False)
    if name in _DATETIME_COLUMNS:
        return to_store_time(value)
    if isinstance(value, Enum):
        return value.value
    return value


class SqliteTaskStore:
    """TaskStore 的 SQLite 实现"""

    def __init__(
        self,
        conn: aiosqlite.Connection,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        """
        Args:
            conn: 已初始化的数据库连接（init_db）
            clock: 当前时间来源，默认 datetime.now(UTC)
        """
        self._conn = conn
        self._clock = clock or _utc_now

    def _now(self) -> str:
        return to_store_time(self._clock())

    async def _write(self, operation: str, sql: str, params: Sequence[Any]) -> int:
        """执行单条写语句并提交，返回受影响行数"""
        try:
            cursor = await self._conn.execute(sql, params)
            await self._conn.commit()
        except sqlite3.Error as e:
            log.error("task_store_write_failed", operation=operation, error=str(e))
            raise PersistenceError(operation, e) from e
        return cursor.rowcount

    async def _fetch(
        self,
        operation: str,
        sql: str,
        params: Sequence[Any] = (),
    ) -> list[aiosqlite.Row]:
        try:
            cursor = await self._conn.execute(sql, params)
            return list(await cursor.fetchall())
        except sqlite3.Error as e:
            log.error("task_store_read_failed", operation=operation, error=str(e))
            raise PersistenceError(operation, e) from e

    async def create_task(self, draft: TaskDraft) -> str:
        """插入新任务，返回分配的 task_id"""
        task_id = str(ULID())
        now = self._now()
        await self._write(
            "create_task",
            """
            INSERT INTO tasks (task_id, title, description, priority, priority_rank,
                               status, assignee, assigned_to, due_date, created_at,
                               updated_at, tags, dependencies, created_by, metadata)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                task_id,
                draft.title,
                draft.description,
                draft.priority.value,
                draft.priority.rank,
                draft.status.value,
                draft.assignee.value,
                draft.assigned_to,
                _to_column("due_date", draft.due_date),
                now,
                now,
                _to_column("tags", draft.tags),
                _to_column("dependencies", draft.dependencies),
                draft.created_by,
                _to_column("metadata", draft.metadata),
            ),
        )
        return task_id

    async def get_task(self, task_id: str) -> Task | None:
        """根据 task_id 查询任务"""
        rows = await self._fetch(
            "get_task",
            "SELECT * FROM tasks WHERE task_id = ?",
            (task_id,),
        )
        if not rows:
            return None
        return self._row_to_task(rows[0])

    async def list_tasks(self, status: TaskStatus | None = None) -> list[Task]:
        """查询任务列表

        不筛选时按 created_at 倒序；按状态筛选时先按优先级倒序，再按 created_at 倒序。
        """
        if status is not None:
            rows = await self._fetch(
                "list_tasks",
                """
                SELECT * FROM tasks WHERE status = ?
                ORDER BY priority_rank DESC, created_at DESC
                """,
                (TaskStatus(status).value,),
            )
        else:
            rows = await self._fetch(
                "list_tasks",
                "SELECT * FROM tasks ORDER BY created_at DESC",
            )
        return [self._row_to_task(row) for row in rows]

    async def update_task(self, task_id: str, changes: dict[str, Any]) -> None:
        """合并白名单字段并刷新 updated_at

        status 变为 completed/released 且未显式给出对应时间戳时，
        仅在库中该时间戳仍为空时补写当前时间（COALESCE）。

        Raises:
            NotFoundError: 任务不存在
        """
        fields = {k: v for k, v in changes.items() if k in _MUTABLE_COLUMNS}
        now = self._now()

        status = fields.get("status")
        stamp_completed = status == TaskStatus.COMPLETED and fields.get("completed_at") is None
        stamp_released = status == TaskStatus.RELEASED and fields.get("released_at") is None
        if stamp_completed:
            fields.pop("completed_at", None)
        if stamp_released:
            fields.pop("released_at", None)

        assignments: list[str] = []
        params: list[Any] = []
        for name, value in fields.items():
            assignments.append(f"{name} = ?")
            params.append(_to_column(name, value))
            if name == "priority" and value is not None:
                assignments.append("priority_rank = ?")
                params.append(TaskPriority(value).rank)

        if stamp_completed:
            assignments.append("completed_at = COALESCE(completed_at, ?)")
            params.append(now)
        if stamp_released:
            assignments.append("released_at = COALESCE(released_at, ?)")
            params.append(now)
        assignments.append("updated_at = ?")
        params.append(now)

        rowcount = await self._write(
            "update_task",
            f"UPDATE tasks SET {', '.join(assignments)} WHERE task_id = ?",
            (*params, task_id),
        )
        if rowcount == 0:
            raise NotFoundError(task_id)

    async def delete_task(self, task_id: str) -> None:
        """硬删除；不存在时静默成功"""
        await self._write("delete_task", "DELETE FROM tasks WHERE task_id = ?", (task_id,))

    async def claim_task(self, task_id: str, actor_id: str, exclusive: bool = False) -> None:
        """认领：一次写入同时设置 claimed_by/claimed_at/status/updated_at

        exclusive=True 时写入附带条件（未被认领或已由同一 actor 持有）。

        Raises:
            NotFoundError: 任务不存在
            ClaimConflictError: 独占认领时已被他人持有
        """
        now = self._now()
        sql = """
            UPDATE tasks
            SET claimed_by = ?, claimed_at = ?, status = ?, updated_at = ?
            WHERE task_id = ?
        """
        params: list[Any] = [actor_id, now, TaskStatus.IN_PROGRESS.value, now, task_id]
        if exclusive:
            sql += " AND (claimed_by IS NULL OR claimed_by = ?)"
            params.append(actor_id)

        rowcount = await self._write("claim_task", sql, params)
        if rowcount == 0:
            current = await self.get_task(task_id)
            if current is None:
                raise NotFoundError(task_id)
            raise ClaimConflictError(task_id, current.claimed_by)

    async def unclaim_task(self, task_id: str) -> None:
        """释放认领并回到 pending（不校验持有者）

        Raises:
            NotFoundError: 任务不存在
        """
        rowcount = await self._write(
            "unclaim_task",
            """
            UPDATE tasks
            SET claimed_by = NULL, claimed_at = NULL, status = ?, updated_at = ?
            WHERE task_id = ?
            """,
            (TaskStatus.PENDING.value, self._now(), task_id),
        )
        if rowcount == 0:
            raise NotFoundError(task_id)

    async def list_claimed_by(self, actor_id: str) -> list[Task]:
        """actor 当前持有且处于 in_progress/review 的任务，claimed_at 倒序"""
        rows = await self._fetch(
            "list_claimed_by",
            """
            SELECT * FROM tasks
            WHERE claimed_by = ? AND status IN (?, ?)
            ORDER BY claimed_at DESC
            """,
            (actor_id, *_CLAIMED_STATUS_VALUES),
        )
        return [self._row_to_task(row) for row in rows]

    async def list_available(self, assignee: AssigneeKind = AssigneeKind.ANY) -> list[Task]:
        """未认领的 pending 任务

        assignee 为 human/ai_agent 时，只返回指派给该类型或 any 的任务。
        """
        sql = "SELECT * FROM tasks WHERE status = ? AND claimed_by IS NULL"
        params: list[Any] = [TaskStatus.PENDING.value]
        if assignee != AssigneeKind.ANY:
            sql += " AND assignee IN (?, ?)"
            params.extend([AssigneeKind(assignee).value, AssigneeKind.ANY.value])
        sql += " ORDER BY priority_rank DESC, created_at DESC"
        rows = await self._fetch("list_available", sql, params)
        return [self._row_to_task(row) for row in rows]

    async def list_stale_claims(self, cutoff: datetime) -> list[Task]:
        """claimed_at 早于 cutoff 且仍处于 in_progress/review 的已认领任务"""
        rows = await self._fetch(
            "list_stale_claims",
            """
            SELECT * FROM tasks
            WHERE claimed_by IS NOT NULL AND status IN (?, ?) AND claimed_at < ?
            ORDER BY claimed_at ASC
            """,
            (*_CLAIMED_STATUS_VALUES, to_store_time(cutoff)),
        )
        return [self._row_to_task(row) for row in rows]

    async def release_claim(
        self,
        task_id: str,
        claimed_by: str,
        claimed_at: datetime,
        reason: str,
    ) -> bool:
        """条件释放：仅当认领者与认领时间均未变化时生效

        原认领者与释放原因合并写入 metadata。

        Returns:
            True 表示已释放；False 表示期间已被重新认领/释放
        """
        rowcount = await self._write(
            "release_claim",
            """
            UPDATE tasks
            SET claimed_by = NULL, claimed_at = NULL, status = ?, updated_at = ?,
                metadata = json_set(metadata, '$.previous_claimed_by', ?,
                                    '$.release_reason', ?)
            WHERE task_id = ? AND claimed_by = ? AND claimed_at = ? AND status IN (?, ?)
            """,
            (
                TaskStatus.PENDING.value,
                self._now(),
                claimed_by,
                reason,
                task_id,
                claimed_by,
                to_store_time(claimed_at),
                *_CLAIMED_STATUS_VALUES,
            ),
        )
        return rowcount > 0

    async def task_stats(self) -> TaskStats:
        """按状态、执行者类型统计任务数"""
        rows = await self._fetch(
            "task_stats",
            """
            SELECT status, assignee, claimed_by IS NOT NULL AS claimed, COUNT(*) AS n
            FROM tasks
            GROUP BY status, assignee, claimed
            """,
        )
        stats = TaskStats(
            by_status={s.value: 0 for s in TaskStatus},
            by_assignee={a.value: 0 for a in AssigneeKind},
        )
        for row in rows:
            count = row["n"]
            stats.total += count
            stats.by_status[row["status"]] = stats.by_status.get(row["status"], 0) + count
            stats.by_assignee[row["assignee"]] = stats.by_assignee.get(row["assignee"], 0) + count
            if row["claimed"]:
                stats.claimed += count
        return stats

    @staticmethod
    def _row_to_task(row: aiosqlite.Row) -> Task:
        """将数据库行转换为 Task 模型"""
        dependencies = row["dependencies"]
        return Task(
            task_id=row["task_id"],
            title=row["title"],
            description=row["description"],
            priority=row["priority"],
            status=row["status"],
            assignee=row["assignee"],
            assigned_to=row["assigned_to"],
            claimed_by=row["claimed_by"],
            claimed_at=_from_store_time(row["claimed_at"]),
            due_date=_from_store_time(row["due_date"]),
            created_at=_from_store_time(row["created_at"]),
            updated_at=_from_store_time(row["updated_at"]),
            completed_at=_from_store_time(row["completed_at"]),
            released_at=_from_store_time(row["released_at"]),
            tags=json.loads(row["tags"]),
            dependencies=json.loads(dependencies) if dependencies is not None else None,
            created_by=row["created_by"],
            metadata=json.loads(row["metadata"]),
        )

"""Task Domain Model -- 共享待办池中的一条可认领工作项

字段在 Python 侧使用 snake_case，序列化/反序列化同时接受 camelCase 别名
（claimedBy、dueDate ...），与持久化记录和 JSON 接口保持一致。
created_at / updated_at / claimed_at 由存储层在写入时分配，调用方无法提供。
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ..config import TASK_TITLE_MAX_LENGTH
from .enums import AssigneeKind, TaskPriority, TaskStatus

_CAMEL_CONFIG = ConfigDict(
    alias_generator=to_camel,
    populate_by_name=True,
    use_enum_values=False,
)


class Task(BaseModel):
    """Task 数据模型

    claimed_by 非空 ⇔ 恰有一个 actor 持有该任务的（建议性）编辑权。
    """

    model_config = _CAMEL_CONFIG

    task_id: str = Field(description="唯一标识，由存储层分配（ULID）")
    title: str = Field(description="任务标题")
    description: str = Field(default="", description="任务描述")
    priority: TaskPriority = Field(default=TaskPriority.MEDIUM, description="优先级")
    status: TaskStatus = Field(default=TaskStatus.PENDING, description="当前状态")
    assignee: AssigneeKind = Field(default=AssigneeKind.ANY, description="执行者类型")
    assigned_to: str | None = Field(default=None, description="指派对象（自由格式 actor id）")
    claimed_by: str | None = Field(default=None, description="认领者 actor id")
    claimed_at: datetime | None = Field(default=None, description="认领时间")
    due_date: datetime | None = Field(default=None, description="截止时间")
    created_at: datetime = Field(description="创建时间")
    updated_at: datetime = Field(description="更新时间")
    completed_at: datetime | None = Field(default=None, description="完成时间")
    released_at: datetime | None = Field(default=None, description="发布时间")
    tags: list[str] = Field(default_factory=list, description="标签（无序）")
    dependencies: list[str] | None = Field(default=None, description="依赖任务 ID 列表")
    created_by: str = Field(default="system", description="创建者 actor id")
    metadata: dict[str, Any] = Field(default_factory=dict, description="自由格式元数据")

    @property
    def is_claimed(self) -> bool:
        return self.claimed_by is not None


class TaskDraft(BaseModel):
    """创建任务的输入

    不包含 task_id 与任何由存储层分配的时间戳；多余字段直接忽略。
    """

    model_config = _CAMEL_CONFIG

    title: str = Field(min_length=1, max_length=TASK_TITLE_MAX_LENGTH)
    description: str = ""
    priority: TaskPriority = TaskPriority.MEDIUM
    status: TaskStatus = TaskStatus.PENDING
    assignee: AssigneeKind = AssigneeKind.ANY
    assigned_to: str | None = None
    due_date: datetime | None = None
    tags: list[str] = Field(default_factory=list)
    dependencies: list[str] | None = None
    created_by: str = "system"
    metadata: dict[str, Any] = Field(default_factory=dict)


class TaskUpdate(BaseModel):
    """任务更新的字段白名单

    白名单之外的字段被静默丢弃（extra="ignore"）。
    显式传入 None 表示清空该字段，未传入的字段保持不变。
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    title: str | None = Field(default=None, min_length=1, max_length=TASK_TITLE_MAX_LENGTH)
    description: str | None = None
    status: TaskStatus | None = None
    priority: TaskPriority | None = None
    assigned_to: str | None = None
    tags: list[str] | None = None
    due_date: datetime | None = None
    completed_at: datetime | None = None
    released_at: datetime | None = None
    claimed_by: str | None = None
    claimed_at: datetime | None = None
    assignee: AssigneeKind | None = None
    metadata: dict[str, Any] | None = None

    def changes(self) -> dict[str, Any]:
        """返回调用方显式设置的字段（snake_case 键）"""
        return self.model_dump(exclude_unset=True)


class TaskStats(BaseModel):
    """看板统计"""

    model_config = _CAMEL_CONFIG

    total: int = 0
    by_status: dict[str, int] = Field(default_factory=dict)
    claimed: int = 0
    by_assignee: dict[str, int] = Field(default_factory=dict)

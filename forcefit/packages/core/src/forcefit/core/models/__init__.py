"""ForceFit Core Domain Models -- 公共类型导出

所有公共模型类型从此入口导入。
"""

from .coaching import (
    ChatMessage,
    ChatRequest,
    CoachPersona,
    TimeAvailability,
    UserProfile,
)
from .enums import (
    CLAIMED_STATUSES,
    PRIORITY_RANKS,
    AssigneeKind,
    ChatRole,
    TaskPriority,
    TaskStatus,
)
from .task import Task, TaskDraft, TaskStats, TaskUpdate

__all__ = [
    # 枚举
    "TaskStatus",
    "TaskPriority",
    "AssigneeKind",
    "ChatRole",
    "PRIORITY_RANKS",
    "CLAIMED_STATUSES",
    # Task
    "Task",
    "TaskDraft",
    "TaskUpdate",
    "TaskStats",
    # Coaching
    "UserProfile",
    "TimeAvailability",
    "ChatMessage",
    "ChatRequest",
    "CoachPersona",
]

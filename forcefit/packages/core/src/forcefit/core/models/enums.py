"""枚举定义 -- 任务看板与教练对话

包含 TaskStatus、TaskPriority（带排序权重）、AssigneeKind、ChatRole，
以及认领中状态集合 CLAIMED_STATUSES。
"""

from enum import StrEnum


class TaskStatus(StrEnum):
    """任务状态

    协调器不强制流转图：任意状态之间均可通过 update 切换，
    仅 completed/released 有自动时间戳规则。
    """

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    REVIEW = "review"
    COMPLETED = "completed"
    RELEASED = "released"


class TaskPriority(StrEnum):
    """任务优先级 -- low < medium < high < urgent"""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"

    @property
    def rank(self) -> int:
        """排序权重，数值越大越紧急"""
        return PRIORITY_RANKS[self]


PRIORITY_RANKS: dict[TaskPriority, int] = {
    TaskPriority.LOW: 0,
    TaskPriority.MEDIUM: 1,
    TaskPriority.HIGH: 2,
    TaskPriority.URGENT: 3,
}


class AssigneeKind(StrEnum):
    """任务面向的执行者类型"""

    HUMAN = "human"
    AI_AGENT = "ai_agent"
    ANY = "any"


# list_claimed_by 只返回仍在处理中的认领
CLAIMED_STATUSES: frozenset[TaskStatus] = frozenset(
    {TaskStatus.IN_PROGRESS, TaskStatus.REVIEW}
)


class ChatRole(StrEnum):
    """对话消息角色"""

    USER = "user"
    COACH = "coach"

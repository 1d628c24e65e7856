"""任务协调异常体系

ValidationError: 输入缺失或格式错误，在边界直接拒绝，无副作用。
NotFoundError: 仅 update 类路径使用；get/delete 视不存在为正常结果。
PersistenceError: 存储层读写失败，原样抛给调用方，协调器不做重试。
ClaimConflictError: 独占认领时任务已被他人持有。
"""


class CoordinatorError(Exception):
    """core 包基础异常"""


class ValidationError(CoordinatorError):
    """输入校验失败"""


class NotFoundError(CoordinatorError):
    """目标任务不存在"""

    def __init__(self, task_id: str) -> None:
        super().__init__(f"Task with id {task_id} does not exist")
        self.task_id = task_id


class PersistenceError(CoordinatorError):
    """文档存储拒绝或执行失败"""

    def __init__(self, operation: str, original_error: Exception) -> None:
        """
        Args:
            operation: 失败的存储操作名（如 create_task）
            original_error: 底层异常
        """
        super().__init__(f"Store operation {operation} failed: {original_error}")
        self.operation = operation
        self.original_error = original_error


class ClaimConflictError(CoordinatorError):
    """独占认领冲突"""

    def __init__(self, task_id: str, claimed_by: str | None) -> None:
        super().__init__(f"Task {task_id} is already claimed by {claimed_by}")
        self.task_id = task_id
        self.claimed_by = claimed_by

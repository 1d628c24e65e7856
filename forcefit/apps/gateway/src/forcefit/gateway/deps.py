"""依赖注入模块 -- 通过 FastAPI Depends 注入服务实例

服务实例通过 app.state 管理，在 lifespan 中初始化/清理。
"""

from fastapi import Request
from forcefit.core.store import StoreGroup

from .services.coaching_service import CoachingService
from .services.task_service import TaskService


def get_store_group(request: Request) -> StoreGroup:
    """从 app.state 获取 StoreGroup 实例"""
    return request.app.state.store_group


def get_task_service(request: Request) -> TaskService:
    """从 app.state 获取 TaskService 实例"""
    return request.app.state.task_service


def get_coaching_service(request: Request) -> CoachingService:
    """从 app.state 获取 CoachingService 实例"""
    return request.app.state.coaching_service

"""任务看板路由

GET    /api/tasks                   任务列表（status / claimed_by 筛选）
GET    /api/tasks/available         可认领任务
GET    /api/tasks/stats             看板统计
POST   /api/tasks/release-stale     释放超时认领
POST   /api/tasks                   创建任务
GET    /api/tasks/{task_id}         任务详情
PATCH  /api/tasks/{task_id}         更新白名单字段
PUT    /api/tasks/{task_id}/status  更新状态
PUT    /api/tasks/{task_id}/priority 更新优先级
POST   /api/tasks/{task_id}/claim   认领
POST   /api/tasks/{task_id}/unclaim 释放认领
DELETE /api/tasks/{task_id}         硬删除

任务载荷使用 camelCase 键。错误由 main.py 的异常处理器统一转换。
"""

from datetime import timedelta
from typing import Any

from fastapi import APIRouter, Body, Depends, Query
from forcefit.core.exceptions import NotFoundError, ValidationError
from forcefit.core.models import Task
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from starlette.responses import Response

from ..deps import get_task_service
from ..services.task_service import TaskService

router = APIRouter()

_CAMEL_CONFIG = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ClaimRequest(BaseModel):
    """认领请求体"""

    model_config = _CAMEL_CONFIG

    actor_id: Any = None
    exclusive: bool = False


class StatusRequest(BaseModel):
    status: Any = None


class PriorityRequest(BaseModel):
    priority: Any = None


class ReleaseStaleRequest(BaseModel):
    model_config = _CAMEL_CONFIG

    max_age_hours: float | None = Field(default=None, ge=0)


def _task_json(task: Task) -> dict[str, Any]:
    return task.model_dump(by_alias=True, mode="json")


def _tasks_json(tasks: list[Task]) -> dict[str, Any]:
    return {"tasks": [_task_json(t) for t in tasks]}


async def _get_or_404(service: TaskService, task_id: str) -> Task:
    task = await service.get(task_id)
    if task is None:
        raise NotFoundError(task_id)
    return task


@router.get("/api/tasks")
async def list_tasks(
    status: str | None = Query(default=None, description="按状态筛选"),
    claimed_by: str | None = Query(default=None, description="按认领者筛选"),
    service: TaskService = Depends(get_task_service),
):
    """查询任务列表

    claimed_by 优先于 status；都不传时返回全部任务（created_at 倒序）。
    """
    if claimed_by is not None:
        return _tasks_json(await service.list_claimed_by(claimed_by))
    if status is not None:
        return _tasks_json(await service.list_by_status(status))
    return _tasks_json(await service.list_all())


@router.get("/api/tasks/available")
async def list_available_tasks(
    assignee: str = Query(default="any", description="执行者类型：human / ai_agent / any"),
    service: TaskService = Depends(get_task_service),
):
    return _tasks_json(await service.list_available(assignee))


@router.get("/api/tasks/stats")
async def task_stats(service: TaskService = Depends(get_task_service)):
    stats = await service.stats()
    return stats.model_dump(by_alias=True)


@router.post("/api/tasks/release-stale")
async def release_stale_claims(
    body: ReleaseStaleRequest | None = None,
    service: TaskService = Depends(get_task_service),
):
    """释放超时认领；未指定 maxAgeHours 时使用 FORCEFIT_STALE_CLAIM_HOURS"""
    max_age = None
    if body is not None and body.max_age_hours is not None:
        max_age = timedelta(hours=body.max_age_hours)
    released = await service.release_stale_claims(max_age)
    return {"released": released, "count": len(released)}


@router.post("/api/tasks", status_code=201)
async def create_task(
    body: Any = Body(default=None),
    service: TaskService = Depends(get_task_service),
):
    """创建任务 -- 201 {"taskId": ...}"""
    if not isinstance(body, dict):
        raise ValidationError("Request body must be a JSON object")
    task_id = await service.create(body)
    return {"taskId": task_id}


@router.get("/api/tasks/{task_id}")
async def get_task(task_id: str, service: TaskService = Depends(get_task_service)):
    return {"task": _task_json(await _get_or_404(service, task_id))}


@router.patch("/api/tasks/{task_id}")
async def update_task(
    task_id: str,
    body: Any = Body(default=None),
    service: TaskService = Depends(get_task_service),
):
    """更新任务；白名单之外的字段静默丢弃"""
    if not isinstance(body, dict):
        raise ValidationError("Request body must be a JSON object")
    await service.update(task_id, body)
    return {"task": _task_json(await _get_or_404(service, task_id))}


@router.put("/api/tasks/{task_id}/status")
async def update_task_status(
    task_id: str,
    body: StatusRequest,
    service: TaskService = Depends(get_task_service),
):
    await service.update_status(task_id, body.status)
    return {"task": _task_json(await _get_or_404(service, task_id))}


@router.put("/api/tasks/{task_id}/priority")
async def update_task_priority(
    task_id: str,
    body: PriorityRequest,
    service: TaskService = Depends(get_task_service),
):
    await service.update_priority(task_id, body.priority)
    return {"task": _task_json(await _get_or_404(service, task_id))}


@router.post("/api/tasks/{task_id}/claim")
async def claim_task(
    task_id: str,
    body: ClaimRequest,
    service: TaskService = Depends(get_task_service),
):
    """认领任务；exclusive=true 且已被他人持有时返回 409"""
    await service.claim(task_id, body.actor_id, exclusive=body.exclusive)
    return {"task": _task_json(await _get_or_404(service, task_id))}


@router.post("/api/tasks/{task_id}/unclaim")
async def unclaim_task(task_id: str, service: TaskService = Depends(get_task_service)):
    await service.unclaim(task_id)
    return {"task": _task_json(await _get_or_404(service, task_id))}


@router.delete("/api/tasks/{task_id}", status_code=204)
async def delete_task(task_id: str, service: TaskService = Depends(get_task_service)):
    """硬删除；不存在的 id 同样返回 204"""
    await service.delete(task_id)
    return Response(status_code=204)


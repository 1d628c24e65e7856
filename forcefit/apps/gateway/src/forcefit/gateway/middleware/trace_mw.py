"""TraceMiddleware -- 任务级 trace_id

对 /api/tasks/{task_id}[/...] 路径绑定 trace_id=trace-{task_id}，
同一任务的认领、更新、释放日志可以串起来检索。
"""

import re

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

# ULID: 26 位 Crockford base32
_TASK_PATH = re.compile(r"^/api/tasks/([0-9A-HJKMNP-TV-Z]{26})(?:/|$)")


class TraceMiddleware(BaseHTTPMiddleware):
    """任务级追踪中间件 -- 为任务操作绑定 trace_id"""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        # available / stats / release-stale 等集合路由不匹配
        match = _TASK_PATH.match(request.url.path)
        if match:
            structlog.contextvars.bind_contextvars(
                task_id=match.group(1),
                trace_id=f"trace-{match.group(1)}",
            )

        return await call_next(request)

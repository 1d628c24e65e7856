"""FastAPI 应用主文件

app 创建 + lifespan 管理：DB 初始化/关闭 + 服务构造 + 路由注册。
TaskService / CoachingService 在 lifespan 中构造一次，经 app.state 注入，不使用全局单例。
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from forcefit.core.config import get_db_path
from forcefit.core.exceptions import (
    ClaimConflictError,
    NotFoundError,
    PersistenceError,
    ValidationError,
)
from forcefit.core.store import create_store_group
from forcefit.provider import (
    EchoMessageAdapter,
    FallbackManager,
    LiteLLMClient,
    StreamingRelay,
    load_provider_config,
)
from starlette.responses import JSONResponse

from .middleware.logging_config import setup_logfire, setup_logging
from .middleware.logging_mw import LoggingMiddleware
from .middleware.trace_mw import TraceMiddleware
from .routes import coaching, health, tasks
from .services.coaching_service import CoachingService
from .services.task_service import TaskService

log = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """应用生命周期管理：启动时初始化 DB 和服务，关闭时清理连接"""
    db_path = get_db_path()
    store_group = await create_store_group(db_path)
    app.state.db_path = db_path
    app.state.store_group = store_group
    app.state.task_service = TaskService(store_group.task_store)

    provider_config = load_provider_config()
    app.state.provider_config = provider_config

    if provider_config.llm_mode == "litellm":
        litellm_client = LiteLLMClient(
            model=provider_config.model,
            proxy_base_url=provider_config.proxy_base_url,
            proxy_api_key=provider_config.proxy_api_key.get_secret_value(),
            timeout_s=provider_config.timeout_s,
        )
        primary = litellm_client
        # 保存 litellm_client 引用供健康检查使用
        app.state.litellm_client = litellm_client
    else:
        primary = EchoMessageAdapter()
        app.state.litellm_client = None

    fallback = EchoMessageAdapter() if provider_config.fallback == "echo" else None
    relay = StreamingRelay(
        FallbackManager(primary=primary, fallback=fallback),
        streaming_enabled=provider_config.streaming,
    )
    app.state.coaching_service = CoachingService(relay)

    log.info(
        "gateway_started",
        db_path=db_path,
        llm_mode=provider_config.llm_mode,
        model=provider_config.model if provider_config.llm_mode == "litellm" else "echo",
        proxy_url=provider_config.proxy_base_url,
        streaming=relay.supports_streaming,
        fallback=provider_config.fallback,
    )

    yield

    # 关闭：清理数据库连接
    if getattr(app.state, "store_group", None):
        await app.state.store_group.conn.close()


def _error_response(status_code: int, code: str, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error": {"code": code, "message": message}},
    )


def register_exception_handlers(app: FastAPI) -> None:
    """协调器异常 → {"error": {"code", "message"}}"""

    @app.exception_handler(NotFoundError)
    async def not_found_handler(request: Request, exc: NotFoundError):
        return _error_response(404, "TASK_NOT_FOUND", str(exc))

    @app.exception_handler(ValidationError)
    async def validation_handler(request: Request, exc: ValidationError):
        return _error_response(400, "VALIDATION_ERROR", str(exc))

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        return _error_response(400, "VALIDATION_ERROR", "Malformed request body")

    @app.exception_handler(ClaimConflictError)
    async def claim_conflict_handler(request: Request, exc: ClaimConflictError):
        return _error_response(409, "CLAIM_CONFLICT", str(exc))

    @app.exception_handler(PersistenceError)
    async def persistence_handler(request: Request, exc: PersistenceError):
        log.error("persistence_error", operation=exc.operation, error=str(exc.original_error))
        return _error_response(503, "PERSISTENCE_ERROR", "Task store is unavailable")


def create_app() -> FastAPI:
    """创建 FastAPI 应用实例"""
    app = FastAPI(
        title="ForceFit Gateway",
        version="0.1.0",
        description="ForceFit 任务协调与教练对话 API",
        lifespan=lifespan,
    )

    # 注册中间件（顺序：先 Trace 后 Logging）
    app.add_middleware(TraceMiddleware)
    app.add_middleware(LoggingMiddleware)

    setup_logging()
    setup_logfire(app)

    register_exception_handlers(app)

    app.include_router(tasks.router, tags=["tasks"])
    app.include_router(coaching.router, tags=["coaching"])
    app.include_router(health.router, tags=["health"])

    return app


# 默认 app 实例（uvicorn 入口）
app = create_app()

"""健康检查路由

GET /health: Liveness 检查，永远返回 200。
GET /ready: Readiness 检查，包含 SQLite 连通性、磁盘空间；
            profile=llm/full 时额外探测 LiteLLM Proxy。
"""

import shutil
from pathlib import Path

import structlog
from fastapi import APIRouter, Query, Request
from starlette.responses import JSONResponse

log = structlog.get_logger()

router = APIRouter()


@router.get("/health")
async def health():
    """Liveness 检查 -- 永远返回 200"""
    return {"status": "ok"}


@router.get("/ready")
async def ready(
    request: Request,
    profile: str | None = Query(
        default=None,
        description="检查配置文件：core（默认）仅核心检查；llm/full 包含 LiteLLM Proxy 健康检查",
    ),
):
    """Readiness 检查 -- 验证核心依赖可用性

    profile 参数:
        - None / "core": sqlite + 磁盘空间，llm_backend="skipped"
        - "llm" / "full": 额外探测 LiteLLM Proxy（echo 模式下为 "skipped"）

    检查项：
    1. sqlite: 数据库连通性
    2. disk_space_mb: 数据库所在磁盘剩余空间
    3. llm_backend: 根据 profile 决定是否探测
    """
    effective_profile = profile or "core"

    checks: dict[str, object] = {}
    all_ok = True

    # 1. SQLite 连通性检查
    try:
        store_group = request.app.state.store_group
        cursor = await store_group.conn.execute("SELECT COUNT(*) FROM tasks")
        await cursor.fetchone()
        checks["sqlite"] = "ok"
    except Exception as e:
        log.warning("readiness_sqlite_failed", error=str(e))
        checks["sqlite"] = f"error: {str(e)}"
        all_ok = False

    # 2. 磁盘空间检查
    try:
        db_path = getattr(request.app.state, "db_path", None)
        target = Path(db_path).parent if db_path else Path(".")
        disk_space_mb = shutil.disk_usage(target).free // (1024 * 1024)
        checks["disk_space_mb"] = disk_space_mb
    except OSError as e:
        log.warning("readiness_disk_check_failed", error=str(e))
        checks["disk_space_mb"] = 0
        all_ok = False

    # 3. LLM 后端健康检查
    checks["llm_backend"] = "skipped"
    if effective_profile in ("llm", "full"):
        litellm_client = getattr(request.app.state, "litellm_client", None)
        if litellm_client is not None:
            if await litellm_client.health_check():
                checks["llm_backend"] = "ok"
            else:
                checks["llm_backend"] = "unreachable"
                all_ok = False

    status_code = 200 if all_ok else 503
    status_text = "ready" if all_ok else "not_ready"

    return JSONResponse(
        status_code=status_code,
        content={
            "status": status_text,
            "profile": effective_profile,
            "checks": checks,
        },
    )

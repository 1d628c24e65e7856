"""可观测性测试

测试内容：
1. HTTP 响应含 X-Request-ID，上游提供时沿用
2. structlog 配置与日志级别
"""

import logging

import structlog
from forcefit.gateway.middleware.logging_config import setup_logging
from httpx import AsyncClient


class TestObservability:
    async def test_request_id_in_response_header(self, client: AsyncClient):
        resp = await client.get("/health")
        request_id = resp.headers.get("x-request-id")
        assert request_id is not None
        assert len(request_id) == 26

    async def test_request_ids_unique(self, client: AsyncClient):
        first = await client.get("/health")
        second = await client.get("/health")
        assert first.headers["x-request-id"] != second.headers["x-request-id"]

    async def test_upstream_request_id_kept(self, client: AsyncClient):
        resp = await client.get("/health", headers={"X-Request-ID": "req-from-proxy"})
        assert resp.headers["x-request-id"] == "req-from-proxy"

    async def test_request_id_on_error_response(self, client: AsyncClient):
        resp = await client.get("/api/tasks/01JNONEXISTENT000000000000")
        assert resp.status_code == 404
        assert "x-request-id" in resp.headers


class TestLoggingConfig:
    def test_structlog_configured(self):
        setup_logging()
        log = structlog.get_logger()
        assert log is not None

    def test_log_level_from_env(self, monkeypatch):
        monkeypatch.setenv("FORCEFIT_LOG_LEVEL", "WARNING")
        setup_logging()
        assert logging.getLogger().level == logging.WARNING

    def test_invalid_log_level_falls_back(self, monkeypatch):
        monkeypatch.setenv("FORCEFIT_LOG_LEVEL", "LOUD")
        setup_logging()
        assert logging.getLogger().level == logging.INFO

    def test_noisy_loggers_quieted(self, monkeypatch):
        monkeypatch.setenv("FORCEFIT_LOG_LEVEL", "DEBUG")
        setup_logging()
        assert logging.getLogger("LiteLLM").level == logging.WARNING
        assert logging.getLogger("aiosqlite").level == logging.WARNING

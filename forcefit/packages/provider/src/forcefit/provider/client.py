"""LiteLLMClient -- 文本生成后端（LiteLLM SDK / Proxy）

complete(): 阻塞调用，返回完整文本 + 成本/用量。
stream(): 增量调用（acompletion(stream=True)），逐个产出文本片段。
"""

import time
from collections.abc import AsyncIterator
from typing import Any

import httpx
import structlog
from litellm import acompletion

from .cost import CostTracker
from .exceptions import BackendError, ProviderError, ProxyUnreachableError
from .models import ModelCallResult

log = structlog.get_logger()

# 健康检查超时（硬编码，应快速响应）
HEALTH_CHECK_TIMEOUT_S = 5

# 教练回复的生成参数
DEFAULT_TEMPERATURE = 0.7
DEFAULT_MAX_TOKENS = 1000
DEFAULT_PRESENCE_PENALTY = 0.3
DEFAULT_FREQUENCY_PENALTY = 0.3

# 连接类异常类型集合（触发 ProxyUnreachableError，进而触发 FallbackManager 降级）
_CONNECTION_ERROR_TYPES = (
    ConnectionError,
    OSError,
    TimeoutError,
    httpx.ConnectError,
    httpx.ConnectTimeout,
    httpx.TimeoutException,
)


def _is_connection_error(e: Exception) -> bool:
    """判断异常是否为连接类错误"""
    if isinstance(e, _CONNECTION_ERROR_TYPES):
        return True
    # LiteLLM 的 APIConnectionError 也属于连接类错误
    error_name = type(e).__name__
    return error_name in ("APIConnectionError", "APITimeoutError")


class LiteLLMClient:
    """LiteLLM 客户端

    配置了 proxy_base_url 时经由 LiteLLM Proxy 调用，否则由 SDK 直连 provider
    （provider API key 从其标准环境变量读取，如 GEMINI_API_KEY）。
    """

    supports_streaming = True

    def __init__(
        self,
        model: str = "gemini/gemini-1.5-flash",
        proxy_base_url: str | None = None,
        proxy_api_key: str = "",
        timeout_s: int = 30,
    ) -> None:
        """
        Args:
            model: 模型名（LiteLLM 格式）
            proxy_base_url: Proxy 基础 URL，None 表示 SDK 直连
            proxy_api_key: Proxy 访问密钥（LITELLM_PROXY_KEY）
            timeout_s: 请求超时（秒）
        """
        self._model = model
        self._proxy_base_url = proxy_base_url.rstrip("/") if proxy_base_url else None
        self._proxy_api_key = proxy_api_key
        self._timeout_s = timeout_s

    @property
    def model(self) -> str:
        return self._model

    def _build_call_kwargs(
        self,
        messages: list[dict[str, str]],
        stream: bool,
        **kwargs: Any,
    ) -> dict[str, Any]:
        call_kwargs: dict[str, Any] = {
            "model": self._model,
            "messages": messages,
            "timeout": self._timeout_s,
            "temperature": DEFAULT_TEMPERATURE,
            "max_tokens": DEFAULT_MAX_TOKENS,
            "presence_penalty": DEFAULT_PRESENCE_PENALTY,
            "frequency_penalty": DEFAULT_FREQUENCY_PENALTY,
            **kwargs,
        }
        if stream:
            call_kwargs["stream"] = True
        if self._proxy_base_url:
            call_kwargs["api_base"] = self._proxy_base_url
            call_kwargs["api_key"] = self._proxy_api_key or "no-key"
        return call_kwargs

    def _wrap_error(self, e: Exception) -> ProviderError:
        """区分连接类错误与业务错误"""
        if isinstance(e, ProviderError):
            return e
        if _is_connection_error(e):
            return ProxyUnreachableError(
                proxy_url=self._proxy_base_url or self._model,
                original_error=e,
            )
        # 模型不存在、配额耗尽、invalid request 等
        return BackendError(f"LLM 调用失败: {e}", recoverable=True)

    async def complete(
        self,
        messages: list[dict[str, str]],
        **kwargs: Any,
    ) -> ModelCallResult:
        """阻塞调用

        Args:
            messages: 消息列表，格式 [{"role": "user", "content": "..."}]
            **kwargs: 其他 LiteLLM 支持的参数（覆盖默认生成参数）

        Returns:
            ModelCallResult，包含完整的响应、成本、路由信息

        Raises:
            ProxyUnreachableError: 连接失败或超时
            BackendError: 后端返回错误（如模型不可用、配额耗尽）
        """
        start_time = time.monotonic()
        log.debug("litellm_call_start", model=self._model, message_count=len(messages))

        try:
            call_kwargs = self._build_call_kwargs(messages, stream=False, **kwargs)
            response = await acompletion(**call_kwargs)
        except Exception as e:
            duration_ms = int((time.monotonic() - start_time) * 1000)
            log.error(
                "litellm_call_failed",
                model=self._model,
                error=str(e),
                error_type=type(e).__name__,
                duration_ms=duration_ms,
            )
            raise self._wrap_error(e) from e

        duration_ms = int((time.monotonic() - start_time) * 1000)
        content = response.choices[0].message.content or ""
        cost_usd, cost_unavailable = CostTracker.calculate_cost(response)
        token_usage = CostTracker.parse_usage(response)
        model_name, provider = CostTracker.extract_model_info(response)

        log.info(
            "litellm_call_completed",
            model_name=model_name,
            provider=provider,
            duration_ms=duration_ms,
            total_tokens=token_usage.total_tokens,
            cost_usd=cost_usd,
        )

        return ModelCallResult(
            content=content,
            model_name=model_name or self._model,
            provider=provider,
            duration_ms=duration_ms,
            token_usage=token_usage,
            cost_usd=cost_usd,
            cost_unavailable=cost_unavailable,
        )

    async def stream(
        self,
        messages: list[dict[str, str]],
        **kwargs: Any,
    ) -> AsyncIterator[str]:
        """增量调用，按到达顺序产出非空文本片段

        Raises:
            ProxyUnreachableError: 连接失败或超时
            BackendError: 后端在开始前或中途失败
        """
        log.debug("litellm_stream_start", model=self._model, message_count=len(messages))
        fragment_count = 0
        response = None
        try:
            call_kwargs = self._build_call_kwargs(messages, stream=True, **kwargs)
            response = await acompletion(**call_kwargs)
            async for chunk in response:
                if not chunk.choices:
                    continue
                delta = chunk.choices[0].delta.content
                if delta:
                    fragment_count += 1
                    yield delta
        except Exception as e:
            log.error(
                "litellm_stream_failed",
                model=self._model,
                fragment_count=fragment_count,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise self._wrap_error(e) from e
        finally:
            # 消费方放弃时同样要关闭上游 HTTP 流
            await _close_response(response)

        log.info("litellm_stream_completed", model=self._model, fragment_count=fragment_count)

    async def health_check(self) -> bool:
        """检查 LiteLLM Proxy 可达性

        发送 GET {proxy_base_url}/health/liveliness。
        未配置 Proxy（SDK 直连）时无可探测端点，视为可用。

        注意: 此方法不抛出异常，所有异常内部捕获并返回 False。
        """
        if not self._proxy_base_url:
            return True
        url = f"{self._proxy_base_url}/health/liveliness"
        try:
            async with httpx.AsyncClient() as http_client:
                resp = await http_client.get(url, timeout=HEALTH_CHECK_TIMEOUT_S)
                return resp.status_code == 200
        except Exception as e:
            log.debug("health_check_failed", url=url, error=str(e))
            return False


async def _close_response(response: Any) -> None:
    """关闭 litellm 流式响应（CustomStreamWrapper.aclose）；无 aclose 时跳过"""
    aclose = getattr(response, "aclose", None)
    if aclose is None:
        return
    try:
        await aclose()
    except Exception as e:
        log.warning("litellm_stream_close_failed", error=str(e), error_type=type(e).__name__)

"""FallbackManager -- 降级管理器

Lazy probe 策略：每次调用时先尝试 primary，失败则切换到 fallback。
不维护显式的"降级状态"标记。
增量调用只在第一个片段发出之前允许降级；之后的失败原样上抛，
避免把两个后端的输出拼进同一条回复。
"""

from collections.abc import AsyncIterator
from contextlib import aclosing
from typing import Any

import structlog

from .exceptions import BackendError, ProviderError
from .models import ModelCallResult

log = structlog.get_logger()


class FallbackManager:
    """降级管理器

    降级链: LiteLLMClient -> EchoMessageAdapter
    """

    def __init__(
        self,
        primary,
        fallback=None,
    ) -> None:
        """
        Args:
            primary: 主后端（LiteLLMClient 或 EchoMessageAdapter）
            fallback: 降级后端，None 表示无降级
        """
        self._primary = primary
        self._fallback = fallback

    @property
    def supports_streaming(self) -> bool:
        """主后端是否支持增量生成"""
        return bool(getattr(self._primary, "supports_streaming", False))

    async def call_with_fallback(
        self,
        messages: list[dict[str, str]],
        **kwargs: Any,
    ) -> ModelCallResult:
        """带降级的阻塞调用

        Returns:
            ModelCallResult
            - primary 成功: is_fallback=False
            - fallback 成功: is_fallback=True, fallback_reason=<错误描述>

        Raises:
            BackendError: primary 失败且无 fallback，或两者均失败
        """
        primary_error: Exception | None = None
        try:
            return await self._primary.complete(messages=messages, **kwargs)
        except Exception as e:
            primary_error = e
            log.warning("primary_failed_attempting_fallback", error=str(e))

        if self._fallback is None:
            raise BackendError(
                f"Primary 调用失败且无 fallback 配置: {primary_error}",
                recoverable=False,
            ) from primary_error

        try:
            result = await self._fallback.complete(messages=messages, **kwargs)
        except Exception as fallback_error:
            log.error(
                "both_primary_and_fallback_failed",
                primary_error=str(primary_error),
                fallback_error=str(fallback_error),
            )
            raise BackendError(
                f"Primary 和 Fallback 均失败。Primary: {primary_error}; "
                f"Fallback: {fallback_error}",
                recoverable=False,
            ) from fallback_error

        log.info("fallback_activated", fallback_reason=str(primary_error))
        return result.model_copy(
            update={
                "is_fallback": True,
                "fallback_reason": f"Primary 失败: {primary_error}",
            }
        )

    async def stream_with_fallback(
        self,
        messages: list[dict[str, str]],
        **kwargs: Any,
    ) -> AsyncIterator[str]:
        """带降级的增量调用

        Raises:
            BackendError / TransportError: 已发出片段后 primary 失败（原样上抛）
            BackendError: 首个片段前失败且无 fallback，或 fallback 也失败
        """
        emitted = 0
        primary_error: Exception | None = None
        async with aclosing(self._primary.stream(messages=messages, **kwargs)) as source:
            try:
                async for fragment in source:
                    emitted += 1
                    yield fragment
                return
            except Exception as e:
                if emitted:
                    log.error("stream_failed_after_output", fragment_count=emitted, error=str(e))
                    if isinstance(e, ProviderError):
                        raise
                    raise BackendError(f"流式生成中断: {e}", recoverable=False) from e
                primary_error = e
                log.warning("primary_stream_failed_attempting_fallback", error=str(e))

        if self._fallback is None:
            raise BackendError(
                f"Primary 调用失败且无 fallback 配置: {primary_error}",
                recoverable=False,
            ) from primary_error

        log.info("fallback_activated", fallback_reason=str(primary_error), streaming=True)
        try:
            if getattr(self._fallback, "supports_streaming", False):
                async with aclosing(self._fallback.stream(messages=messages, **kwargs)) as source:
                    async for fragment in source:
                        yield fragment
            else:
                result = await self._fallback.complete(messages=messages, **kwargs)
                yield result.content
        except Exception as fallback_error:
            log.error(
                "both_primary_and_fallback_failed",
                primary_error=str(primary_error),
                fallback_error=str(fallback_error),
            )
            raise BackendError(
                f"Primary 和 Fallback 均失败。Primary: {primary_error}; Fallback: {fallback_error}",
                recoverable=False,
            ) from fallback_error

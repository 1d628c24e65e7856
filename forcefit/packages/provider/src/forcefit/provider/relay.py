"""StreamingRelay -- 把一次对话请求桥接到文本生成后端

后端支持增量生成时返回逐片段的 ChatStream；
否则做一次阻塞调用，把完整文本包装成 "单片段 + done" 的 ChatStream，
消费方除延迟外无法区分两条路径。
"""

from collections.abc import AsyncIterator
from typing import Any

import structlog

from .fallback import FallbackManager
from .models import ModelCallResult
from .streaming import ChatStream

log = structlog.get_logger()


class StreamingRelay:
    """对话中继，进程内构造一次，请求之间不共享可变状态"""

    def __init__(self, backend: FallbackManager, streaming_enabled: bool = True) -> None:
        """
        Args:
            backend: 带降级的后端
            streaming_enabled: 配置开关（FORCEFIT_LLM_STREAMING）
        """
        self._backend = backend
        self._streaming_enabled = streaming_enabled

    @property
    def supports_streaming(self) -> bool:
        """配置开启且主后端支持增量生成"""
        return self._streaming_enabled and self._backend.supports_streaming

    def open_stream(self, messages: list[dict[str, str]], **kwargs: Any) -> ChatStream:
        """打开一条回复的事件序列（惰性：首次 next_event 时才调用后端）"""
        if self.supports_streaming:
            return ChatStream(self._backend.stream_with_fallback(messages, **kwargs))
        return ChatStream(self._single_shot(messages, **kwargs))

    async def complete(self, messages: list[dict[str, str]], **kwargs: Any) -> ModelCallResult:
        """阻塞路径"""
        result = await self._backend.call_with_fallback(messages, **kwargs)
        log.info(
            "relay_completed",
            model_name=result.model_name,
            provider=result.provider,
            duration_ms=result.duration_ms,
            is_fallback=result.is_fallback,
        )
        return result

    async def _single_shot(
        self, messages: list[dict[str, str]], **kwargs: Any
    ) -> AsyncIterator[str]:
        result = await self.complete(messages, **kwargs)
        yield result.content

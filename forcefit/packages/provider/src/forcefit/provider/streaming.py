"""ChatStream -- 单条回复的增量事件序列

显式状态机：
    idle → streaming → done       源正常耗尽，发出一个 done 事件
                     → errored    源抛出异常，发出一个 error 事件（不再发 done）
                     → cancelled  消费方放弃（aclose / 任务取消），不再发任何终止事件

只允许单个消费方、不可重放：进入终态后 next_event() 一律返回 None。
底层源（异步生成器）在任意退出路径上恰好释放一次。
"""

import asyncio
from collections.abc import AsyncIterator
from enum import StrEnum

import structlog

from .exceptions import BackendError, ProviderError
from .wire import RelayEvent

log = structlog.get_logger()

# 发给客户端的错误文本；具体异常只进日志和 ChatStream.error
STREAM_ERROR_MESSAGE = "Failed to generate response"


class StreamState(StrEnum):
    IDLE = "idle"
    STREAMING = "streaming"
    DONE = "done"
    ERRORED = "errored"
    CANCELLED = "cancelled"


TERMINAL_STREAM_STATES = frozenset({StreamState.DONE, StreamState.ERRORED, StreamState.CANCELLED})


class ChatStream:
    """把文本片段源包装为 RelayEvent 序列"""

    def __init__(
        self,
        source: AsyncIterator[str],
        error_message: str = STREAM_ERROR_MESSAGE,
    ) -> None:
        self._source = source
        self._error_message = error_message
        self._state = StreamState.IDLE
        self._released = False
        self._fragment_count = 0
        self.error: ProviderError | None = None

    @property
    def state(self) -> StreamState:
        return self._state

    @property
    def is_terminal(self) -> bool:
        return self._state in TERMINAL_STREAM_STATES

    @property
    def released(self) -> bool:
        """底层源是否已释放"""
        return self._released

    @property
    def fragment_count(self) -> int:
        return self._fragment_count

    async def next_event(self) -> RelayEvent | None:
        """拉取下一个事件；序列结束后返回 None"""
        if self.is_terminal:
            return None
        self._state = StreamState.STREAMING

        while True:
            try:
                fragment = await anext(self._source)
            except StopAsyncIteration:
                self._state = StreamState.DONE
                await self._release()
                log.debug("chat_stream_done", fragment_count=self._fragment_count)
                return RelayEvent.done()
            except asyncio.CancelledError:
                await self.aclose()
                raise
            except Exception as e:
                self._state = StreamState.ERRORED
                self.error = e if isinstance(e, ProviderError) else BackendError(str(e))
                await self._release()
                log.warning(
                    "chat_stream_failed",
                    fragment_count=self._fragment_count,
                    error=str(e),
                    error_type=type(e).__name__,
                )
                return RelayEvent.error(self._error_message)

            # 空片段不构成事件
            if fragment:
                self._fragment_count += 1
                return RelayEvent.content(fragment)

    async def aclose(self) -> None:
        """放弃序列并释放底层源；对终态流只做释放"""
        if not self.is_terminal:
            self._state = StreamState.CANCELLED
            log.info("chat_stream_cancelled", fragment_count=self._fragment_count)
        await self._release()

    async def _release(self) -> None:
        if self._released:
            return
        self._released = True
        aclose = getattr(self._source, "aclose", None)
        if aclose is not None:
            await aclose()

    def __aiter__(self) -> "ChatStream":
        return self

    async def __anext__(self) -> RelayEvent:
        event = await self.next_event()
        if event is None:
            raise StopAsyncIteration
        return event

    async def __aenter__(self) -> "ChatStream":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

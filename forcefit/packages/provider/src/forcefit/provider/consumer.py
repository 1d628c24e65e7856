"""消费端 -- 累积器 + 教练对话 HTTP 客户端

StreamAccumulator 维护片段的累积文本与状态，供界面渐进渲染；
CoachingChatClient 发送对话请求，事件流与 JSON 两种响应对调用方表现一致。
"""

import asyncio
from collections.abc import Callable
from typing import Any

import httpx
import structlog
from pydantic import BaseModel

from .exceptions import BackendError, ProviderError, TransportError
from .streaming import StreamState
from .wire import RelayEvent, RelayEventKind, parse_sse_line

log = structlog.get_logger()

CHAT_PATH = "/api/coaching/chat"
TRANSPORT_DROPPED_MESSAGE = "Stream ended without a terminal marker"


class StreamAccumulator:
    """累积片段并跟踪 idle / streaming / done / errored 状态

    进入 done 或 errored 之后不再接受事件。
    errored 时 text 为不完整的部分回复，不能当作完整回复展示。
    """

    def __init__(self) -> None:
        self._parts: list[str] = []
        self.state = StreamState.IDLE
        self.error: str | None = None
        self.exception: ProviderError | None = None

    @property
    def text(self) -> str:
        return "".join(self._parts)

    @property
    def is_streaming(self) -> bool:
        return self.state == StreamState.STREAMING

    @property
    def is_complete(self) -> bool:
        return self.state == StreamState.DONE

    @property
    def incomplete(self) -> bool:
        """已累积文本不是完整回复"""
        return self.state != StreamState.DONE

    @property
    def is_finished(self) -> bool:
        return self.state in (StreamState.DONE, StreamState.ERRORED, StreamState.CANCELLED)

    def start(self) -> None:
        self.state = StreamState.STREAMING

    def feed(self, event: RelayEvent) -> None:
        if self.is_finished:
            return
        self.state = StreamState.STREAMING
        if event.kind == RelayEventKind.CONTENT:
            self._parts.append(event.text)
        elif event.kind == RelayEventKind.DONE:
            self.state = StreamState.DONE
        else:
            self.fail(event.text)

    def complete_with(self, text: str) -> None:
        """非流式响应：整段文本一次到达"""
        self._parts = [text]
        self.state = StreamState.DONE

    def fail(self, message: str) -> None:
        self.state = StreamState.ERRORED
        self.error = message
        self.exception = BackendError(message, recoverable=False)

    def mark_transport_dropped(self, message: str = TRANSPORT_DROPPED_MESSAGE) -> None:
        self.state = StreamState.ERRORED
        self.error = message
        self.exception = TransportError(message)

    def mark_cancelled(self) -> None:
        if not self.is_finished:
            self.state = StreamState.CANCELLED


def _error_from_body(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return f"HTTP {response.status_code}"
    if isinstance(body, dict):
        error = body.get("error") or body.get("detail")
        if isinstance(error, dict):
            error = error.get("message")
        if error:
            return str(error)
    return f"HTTP {response.status_code}"


class CoachingChatClient:
    """教练对话客户端

    用法::

        async with CoachingChatClient("http://localhost:8000") as client:
            reply = await client.send_message("hi", profile, on_update=render)
    """

    def __init__(
        self,
        base_url: str = "http://localhost:8000",
        http_client: httpx.AsyncClient | None = None,
        timeout_s: float = 60.0,
    ) -> None:
        """
        Args:
            base_url: 服务地址
            http_client: 外部提供的 httpx 客户端（测试中注入 ASGITransport）
            timeout_s: 请求超时（秒）
        """
        self._owns_client = http_client is None
        self._http = http_client or httpx.AsyncClient(base_url=base_url, timeout=timeout_s)
        self.accumulator = StreamAccumulator()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._http.aclose()

    async def __aenter__(self) -> "CoachingChatClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def send_message(
        self,
        message: str,
        user_profile: dict[str, Any] | BaseModel,
        chat_history: list[dict[str, Any] | BaseModel] | None = None,
        on_update: Callable[[str], None] | None = None,
    ) -> str:
        """发送一轮对话，返回完整回复文本

        Args:
            message: 用户消息
            user_profile: 用户画像（含 userId、selectedCoach）
            chat_history: 之前的对话轮次
            on_update: 每次累积文本变化时回调

        Raises:
            BackendError: 非成功响应或 error 事件
            TransportError: 流在终止标记前结束或连接中断
        """
        acc = StreamAccumulator()
        self.accumulator = acc
        payload = {
            "message": message,
            "userProfile": _to_json(user_profile),
            "chatHistory": [_to_json(turn) for turn in chat_history or []],
        }

        acc.start()
        try:
            async with self._http.stream("POST", CHAT_PATH, json=payload) as response:
                if not response.is_success:
                    await response.aread()
                    acc.fail(_error_from_body(response))
                elif response.headers.get("content-type", "").startswith("text/event-stream"):
                    await self._consume_stream(response, acc, on_update)
                else:
                    await response.aread()
                    self._consume_json(response, acc, on_update)
        except httpx.TransportError as e:
            log.warning("chat_transport_failed", error=str(e), received_chars=len(acc.text))
            acc.mark_transport_dropped(f"{TRANSPORT_DROPPED_MESSAGE}: {e}")
            raise acc.exception from e
        except asyncio.CancelledError:
            acc.mark_cancelled()
            raise

        if acc.exception is not None:
            log.warning("chat_exchange_failed", error=acc.error, received_chars=len(acc.text))
            raise acc.exception
        return acc.text

    @staticmethod
    async def _consume_stream(
        response: httpx.Response,
        acc: StreamAccumulator,
        on_update: Callable[[str], None] | None,
    ) -> None:
        async for line in response.aiter_lines():
            event = parse_sse_line(line)
            if event is None:
                continue
            acc.feed(event)
            if event.kind == RelayEventKind.CONTENT and on_update is not None:
                on_update(acc.text)
            if event.is_terminal:
                return
        acc.mark_transport_dropped()

    @staticmethod
    def _consume_json(
        response: httpx.Response,
        acc: StreamAccumulator,
        on_update: Callable[[str], None] | None,
    ) -> None:
        try:
            body = response.json()
        except ValueError:
            acc.fail("Malformed response body")
            return
        if not isinstance(body, dict):
            acc.fail("Malformed response body")
        elif body.get("error"):
            acc.fail(str(body["error"]))
        elif isinstance(body.get("content"), str):
            acc.complete_with(body["content"])
            if on_update is not None:
                on_update(acc.text)
        else:
            acc.fail("Malformed response body")


def _to_json(value: dict[str, Any] | BaseModel) -> dict[str, Any]:
    if isinstance(value, BaseModel):
        return value.model_dump(by_alias=True, mode="json", exclude_none=True)
    return value

"""流式线协议编解码

每个逻辑事件一行，以 "data: " 开头、以空行结束：
    data: {"content": "<片段>"}   零个或多个，按序
    data: {"error": "<消息>"}     至多一个，终止
    data: [DONE]                  恰好一个，终止（成功）

解析端对不合法的帧返回 None（跳过），从不因单个坏帧中止整条流。
"""

import json
from enum import StrEnum

import structlog
from pydantic import BaseModel, ConfigDict

log = structlog.get_logger()

DONE_MARKER = "[DONE]"
DATA_PREFIX = "data:"


class RelayEventKind(StrEnum):
    CONTENT = "content"
    ERROR = "error"
    DONE = "done"


class RelayEvent(BaseModel):
    """中继事件：文本片段、错误终止或成功终止"""

    model_config = ConfigDict(frozen=True)

    kind: RelayEventKind
    text: str = ""

    @classmethod
    def content(cls, text: str) -> "RelayEvent":
        return cls(kind=RelayEventKind.CONTENT, text=text)

    @classmethod
    def error(cls, message: str) -> "RelayEvent":
        return cls(kind=RelayEventKind.ERROR, text=message)

    @classmethod
    def done(cls) -> "RelayEvent":
        return cls(kind=RelayEventKind.DONE)

    @property
    def is_terminal(self) -> bool:
        return self.kind != RelayEventKind.CONTENT

    def to_data(self) -> str:
        """事件 → data 字段载荷"""
        if self.kind == RelayEventKind.DONE:
            return DONE_MARKER
        if self.kind == RelayEventKind.ERROR:
            return json.dumps({"error": self.text}, ensure_ascii=False)
        return json.dumps({"content": self.text}, ensure_ascii=False)


def encode_event(event: RelayEvent) -> str:
    """编码为完整的一帧（含结尾空行）"""
    return f"{DATA_PREFIX} {event.to_data()}\n\n"


def parse_data(payload: str) -> RelayEvent | None:
    """解析 data 字段载荷

    Returns:
        RelayEvent；载荷非法（坏 JSON、非对象、空片段）时返回 None
    """
    payload = payload.strip()
    if payload == DONE_MARKER:
        return RelayEvent.done()
    try:
        obj = json.loads(payload)
    except ValueError:
        log.debug("wire_frame_malformed", payload=payload[:200])
        return None
    if not isinstance(obj, dict):
        log.debug("wire_frame_not_object", payload=payload[:200])
        return None

    if "error" in obj:
        error = obj["error"]
        if isinstance(error, dict):
            error = error.get("message")
        return RelayEvent.error(str(error) if error else "Unknown error")

    content = obj.get("content")
    if isinstance(content, str) and content:
        return RelayEvent.content(content)
    return None


def parse_sse_line(line: str) -> RelayEvent | None:
    """解析一行事件流文本；非 data 行（空行、注释、event:/id: 字段）返回 None"""
    if not line.startswith(DATA_PREFIX):
        return None
    return parse_data(line[len(DATA_PREFIX) :])

"""教练对话路由

POST /api/coaching/chat:
  - 输入不合法: 400 {"error": "..."}，不调用后端
  - 后端支持增量生成: text/event-stream，逐帧发出 content / error / [DONE]
  - 仅支持阻塞调用: 200 {"content": "..."} 或 502 {"error": "..."}
"""

import structlog
from fastapi import APIRouter, Depends
from forcefit.core.exceptions import ValidationError
from forcefit.core.models import ChatRequest
from forcefit.provider import STREAM_ERROR_MESSAGE, ProviderError
from sse_starlette.sse import EventSourceResponse
from starlette.responses import JSONResponse

from ..deps import get_coaching_service
from ..services.coaching_service import CoachingService

log = structlog.get_logger()

router = APIRouter()


@router.post("/api/coaching/chat")
async def coaching_chat(
    body: ChatRequest,
    coaching: CoachingService = Depends(get_coaching_service),
):
    """发送一轮教练对话"""
    try:
        prepared = coaching.prepare(body)
    except ValidationError as e:
        log.info("coaching_chat_rejected", reason=str(e))
        return JSONResponse(status_code=400, content={"error": str(e)})

    if not coaching.supports_streaming:
        try:
            content = await coaching.reply(prepared)
        except ProviderError as e:
            log.error("coaching_reply_failed", coach_id=prepared.coach_id, error=str(e))
            return JSONResponse(status_code=502, content={"error": STREAM_ERROR_MESSAGE})
        return {"content": content}

    chat_stream = coaching.open_stream(prepared)

    async def event_generator():
        # 客户端断开时 sse-starlette 取消本生成器，async with 负责释放后端通道
        async with chat_stream:
            async for event in chat_stream:
                yield {"data": event.to_data()}

    return EventSourceResponse(
        event_generator(),
        headers={"Cache-Control": "no-cache", "Connection": "keep-alive"},
        sep="\n",
    )

"""EchoMessageAdapter -- 离线开发用后端

与 LiteLLMClient 同接口（complete / stream）。
metadata 中带 coach_id 时返回该教练风格的固定回复，否则回声 "Echo: {content}"。
回复按最后一条用户消息确定性选取，同一输入总是得到同一文本；
stream() 逐词产出（"w1", " w2", ...），拼接结果与 complete() 完全一致。
FallbackManager 的降级后备统一使用此适配器。
"""

import asyncio
import time
import zlib
from collections.abc import AsyncIterator
from typing import Any

from .models import ModelCallResult, TokenUsage

_COACH_REPLIES: dict[str, list[str]] = {
    "elite-performance": [
        "Marcus here! I see you're ready to push your limits. That's what I want to hear! "
        "Let me design something that will challenge every fiber of your being.",
        "Listen up! Your goals are ambitious, and that's exactly what separates champions "
        "from the rest. I'm going to help you unlock your true potential.",
        "Time to get serious! Based on your profile, I can see you have what it takes. "
        "Let's build a plan that matches your warrior spirit.",
    ],
    "wellness-guru": [
        "Hello! I'm Dr. Serena, and I'm so excited to be part of your wellness journey. "
        "Let's approach this holistically, considering both your body and mind.",
        "What a beautiful question! I believe in creating sustainable, mindful approaches "
        "to fitness that honor your whole being. Let's explore this together.",
        "I love your mindset! Remember, transformation is a journey, not a destination. "
        "Let's create something that nourishes your spirit as well as your body.",
    ],
    "science-based": [
        "Great question! As your science-based coach, I want to give you evidence-backed "
        "strategies that align with the latest research in exercise physiology.",
        "Let me analyze your profile data... Based on current studies, I can recommend an "
        "approach that's optimized for your specific biomarkers and goals.",
        "Excellent! The research shows that personalized programming based on your metrics "
        "will yield the best results. Let's dive into the data.",
    ],
    "motivational-champion": [
        "Hey there, champion! Coach Riley here, and I am SO pumped to work with you! "
        "Your energy is already infectious, and we're going to do amazing things together!",
        "This is INCREDIBLE! I love your enthusiasm and commitment. You're already showing "
        "the mindset of a true champion. Let's celebrate every step of this journey!",
        "YES! That's the spirit I want to see! You're going to absolutely crush your goals, "
        "and I'll be here cheering you on every step of the way!",
    ],
}
_DEFAULT_COACH = "motivational-champion"


class EchoMessageAdapter:
    """离线后端

    supports_streaming 可配置，用于模拟只支持阻塞调用的后端。
    """

    def __init__(self, supports_streaming: bool = True, chunk_delay_s: float = 0.0) -> None:
        """
        Args:
            supports_streaming: 是否声明支持增量生成
            chunk_delay_s: stream() 每个片段之间的模拟延迟（秒）
        """
        self.supports_streaming = supports_streaming
        self._chunk_delay_s = chunk_delay_s

    def reply_for(
        self,
        messages: list[dict[str, str]],
        metadata: dict[str, Any] | None = None,
    ) -> str:
        """计算确定性回复文本"""
        user_content = self._extract_last_user_content(messages)
        coach_id = (metadata or {}).get("coach_id")
        if not coach_id:
            return f"Echo: {user_content}"
        replies = _COACH_REPLIES.get(coach_id, _COACH_REPLIES[_DEFAULT_COACH])
        return replies[zlib.crc32(user_content.encode("utf-8")) % len(replies)]

    async def complete(
        self,
        messages: list[dict[str, str]],
        metadata: dict[str, Any] | None = None,
        **kwargs: Any,
    ) -> ModelCallResult:
        """阻塞调用

        Args:
            messages: 消息列表
            metadata: 调用元数据（coach_id 决定回复风格）
            **kwargs: 忽略

        Returns:
            ModelCallResult，provider="echo"
        """
        start_time = time.monotonic()
        user_content = self._extract_last_user_content(messages)
        response_text = self.reply_for(messages, metadata)

        # 模拟少量延迟
        await asyncio.sleep(0.01)

        # 计算 token（按 word 简单估算）
        prompt_tokens = len(user_content.split())
        completion_tokens = len(response_text.split())

        return ModelCallResult(
            content=response_text,
            model_name="echo",
            provider="echo",
            duration_ms=int((time.monotonic() - start_time) * 1000),
            token_usage=TokenUsage(
                prompt_tokens=prompt_tokens,
                completion_tokens=completion_tokens,
                total_tokens=prompt_tokens + completion_tokens,
            ),
            cost_usd=0.0,
            cost_unavailable=False,
        )

    async def stream(
        self,
        messages: list[dict[str, str]],
        metadata: dict[str, Any] | None = None,
        **kwargs: Any,
    ) -> AsyncIterator[str]:
        """逐词产出回复"""
        words = self.reply_for(messages, metadata).split(" ")
        for i, word in enumerate(words):
            yield word if i == 0 else f" {word}"
            await asyncio.sleep(self._chunk_delay_s)

    @staticmethod
    def _extract_last_user_content(messages: list[dict[str, str]]) -> str:
        """从 messages 中提取最后一条 user message 的 content

        无 user 消息时取最后一条消息，消息为空时返回 "(empty)"
        """
        for msg in reversed(messages):
            if msg.get("role") == "user":
                return msg.get("content", "")

        if messages:
            return messages[-1].get("content", "(empty)")
        return "(empty)"

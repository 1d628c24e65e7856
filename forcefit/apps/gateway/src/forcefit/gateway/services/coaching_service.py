"""CoachingService -- 教练对话请求的校验与提示词构建

prepare() 在任何后端调用之前完成全部校验；校验失败抛 ValidationError，无副作用。
各次对话互相独立，服务本身不保存任何会话状态。
"""

from typing import Any

import structlog
from forcefit.core.coaches import get_coach
from forcefit.core.config import CHAT_HISTORY_LIMIT
from forcefit.core.exceptions import ValidationError
from forcefit.core.models import ChatMessage, ChatRequest, ChatRole, CoachPersona, UserProfile
from forcefit.provider import ChatStream, StreamingRelay
from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

log = structlog.get_logger()

REQUIRED_INPUT_MESSAGE = "Message and user profile are required"


class PreparedChat(BaseModel):
    """校验通过、可直接发给后端的一轮对话"""

    user_id: str
    coach_id: str
    messages: list[dict[str, str]] = Field(default_factory=list)

    @property
    def call_metadata(self) -> dict[str, Any]:
        return {"user_id": self.user_id, "coach_id": self.coach_id}


def _join_or(values: list[str], empty: str) -> str:
    return ", ".join(values) if values else empty


def build_system_prompt(profile: UserProfile, coach: CoachPersona) -> str:
    """由教练人设和用户画像构建系统提示词"""
    if profile.is_on_hormone_replacement:
        hormone = f"Yes - {profile.hormone_details or 'Details not specified'}"
    else:
        hormone = "No"

    lines = [
        f"You are {coach.name}, an elite AI fitness coach.",
        "",
        "COACH IDENTITY:",
        f"- Name: {coach.name}",
        f"- Goes By: {coach.short_name}",
        f"- Specialty: {coach.specialty}",
        f"- Background: {coach.background}",
        f"- Communication Style: {coach.communication_style}",
        f"- Personality: {coach.personality}",
        f"- Expertise: {', '.join(coach.expertise)}",
        "",
        "USER PROFILE:",
        f"- Age: {profile.age if profile.age is not None else 'Not specified'}",
        f"- Gender: {profile.gender or 'Not specified'}",
        f"- Fitness Level: {profile.fitness_level or 'Not specified'}",
        f"- Primary Goals: {_join_or(profile.primary_goals, 'Not specified')}",
        f"- Medical Conditions: {_join_or(profile.medical_conditions, 'None reported')}",
        f"- Hormone Replacement: {hormone}",
        f"- Current Diet: {profile.current_diet or 'Not specified'}",
        f"- Dietary Restrictions: {_join_or(profile.dietary_restrictions, 'None')}",
        f"- Allergies: {_join_or(profile.allergies, 'None')}",
        f"- Activity Level: {profile.activity_level or 'Not specified'}",
        (
            f"- Available Time: {profile.time_availability.weekdays} min/weekday, "
            f"{profile.time_availability.weekends} min/weekend"
        ),
        f"- Equipment: {_join_or(profile.available_equipment, 'None specified')}",
        "",
        "COACHING GUIDELINES:",
        f"- ALWAYS stay in character as {coach.name}",
        "- Use your specific communication style and personality",
        "- Provide personalized advice based on the user's complete profile",
        "- NEVER ignore medical conditions or hormone replacement therapy in recommendations",
        "- Be supportive while maintaining your unique coaching approach",
        "- Ask clarifying questions when you need more information",
        "- Provide specific, actionable advice",
        "- Build rapport and remember the conversation context",
        "- Adapt recommendations for their available time and equipment",
        "- Always prioritize safety and health over rapid results",
    ]
    return "\n".join(lines)


def format_chat_history(history: list[ChatMessage], limit: int) -> list[dict[str, str]]:
    """保留最近 limit 轮，coach 角色映射为 assistant"""
    recent = history[-limit:] if limit > 0 else []
    return [
        {
            "role": "assistant" if turn.role == ChatRole.COACH else "user",
            "content": turn.content,
        }
        for turn in recent
    ]


class CoachingService:
    """教练对话服务"""

    def __init__(self, relay: StreamingRelay, history_limit: int = CHAT_HISTORY_LIMIT) -> None:
        self._relay = relay
        self._history_limit = history_limit

    @property
    def supports_streaming(self) -> bool:
        return self._relay.supports_streaming

    def prepare(self, request: ChatRequest) -> PreparedChat:
        """校验请求并构建消息列表

        Raises:
            ValidationError: message 为空、userProfile 缺失/非法、教练未知或历史格式错误
        """
        message = request.message
        if not isinstance(message, str) or not message.strip():
            raise ValidationError(REQUIRED_INPUT_MESSAGE)
        if not isinstance(request.user_profile, dict):
            raise ValidationError(REQUIRED_INPUT_MESSAGE)

        try:
            profile = UserProfile.model_validate(request.user_profile)
        except PydanticValidationError as e:
            # userId / selectedCoach 缺失或为空
            if any(err["type"] in ("missing", "string_too_short") for err in e.errors()):
                raise ValidationError(REQUIRED_INPUT_MESSAGE) from e
            raise ValidationError(
                f"Invalid user profile: {e.error_count()} invalid field(s)"
            ) from e

        coach = get_coach(profile.selected_coach)
        if coach is None:
            raise ValidationError(f"Unknown coach: {profile.selected_coach}")

        raw_history = request.chat_history or []
        if not isinstance(raw_history, list):
            raise ValidationError("Invalid chat history")
        try:
            history = [ChatMessage.model_validate(turn) for turn in raw_history]
        except PydanticValidationError as e:
            raise ValidationError("Invalid chat history") from e

        messages = [
            {"role": "system", "content": build_system_prompt(profile, coach)},
            *format_chat_history(history, self._history_limit),
            {"role": "user", "content": message},
        ]
        log.info(
            "coaching_chat_prepared",
            user_id=profile.user_id,
            coach_id=coach.id,
            history_turns=len(history),
            sent_turns=len(messages) - 2,
        )
        return PreparedChat(user_id=profile.user_id, coach_id=coach.id, messages=messages)

    def open_stream(self, prepared: PreparedChat) -> ChatStream:
        """增量路径"""
        return self._relay.open_stream(prepared.messages, metadata=prepared.call_metadata)

    async def reply(self, prepared: PreparedChat) -> str:
        """阻塞路径，返回完整回复

        Raises:
            ProviderError: 后端失败
        """
        result = await self._relay.complete(prepared.messages, metadata=prepared.call_metadata)
        return result.content

"""Coaching Domain Model -- 用户画像、对话消息、教练人设

ChatRequest 在 HTTP 边界保持宽松类型，由 CoachingService 做业务校验，
缺失 message / userProfile 时以 ValidationError 拒绝，不触发任何后端调用。
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .enums import ChatRole

_CAMEL_CONFIG = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class TimeAvailability(BaseModel):
    """每日可训练时长（分钟）"""

    weekdays: int = Field(default=30, ge=0)
    weekends: int = Field(default=60, ge=0)


class UserProfile(BaseModel):
    """用户画像 -- user_id 与 selected_coach 必填，其余用于构建系统提示词"""

    model_config = _CAMEL_CONFIG

    user_id: str = Field(min_length=1, description="用户 ID")
    selected_coach: str = Field(min_length=1, description="所选教练人设 ID")
    age: int | None = None
    gender: str | None = None
    fitness_level: str | None = None
    primary_goals: list[str] = Field(default_factory=list)
    dietary_restrictions: list[str] = Field(default_factory=list)
    allergies: list[str] = Field(default_factory=list)
    medical_conditions: list[str] = Field(default_factory=list)
    is_on_hormone_replacement: bool = False
    hormone_details: str | None = None
    current_diet: str | None = None
    activity_level: str | None = None
    available_equipment: list[str] = Field(default_factory=list)
    workout_preferences: list[str] = Field(default_factory=list)
    time_availability: TimeAvailability = Field(default_factory=TimeAvailability)


class ChatMessage(BaseModel):
    """一轮历史对话"""

    model_config = _CAMEL_CONFIG

    role: ChatRole
    content: str
    id: str | None = None
    timestamp: datetime | None = None


class ChatRequest(BaseModel):
    """教练对话请求体（HTTP 边界）"""

    model_config = _CAMEL_CONFIG

    message: Any = None
    user_profile: Any = None
    chat_history: Any = None


class CoachPersona(BaseModel):
    """教练人设"""

    id: str
    name: str
    specialty: str
    description: str
    personality: str
    background: str
    expertise: list[str] = Field(default_factory=list)
    communication_style: str = ""

    @property
    def short_name(self) -> str:
        """称呼用的名字（如 Marcus）"""
        first = self.name.split(" ")[0]
        if first in ("Dr.", "Coach") and len(self.name.split(" ")) > 1:
            return self.name.split(" ")[1]
        return first

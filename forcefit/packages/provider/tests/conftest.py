"""Provider 包测试 fixtures -- 教练对话格式的 messages"""

import pytest


@pytest.fixture
def sample_messages() -> list[dict[str, str]]:
    """单轮用户消息"""
    return [{"role": "user", "content": "Ready to train today!"}]


@pytest.fixture
def multi_turn_messages() -> list[dict[str, str]]:
    """系统提示词 + 两轮历史 + 新消息"""
    return [
        {"role": "system", "content": "You are Dr. Serena Mindful, an elite AI fitness coach."},
        {"role": "user", "content": "I feel stiff after runs."},
        {"role": "assistant", "content": "Let's add ten minutes of mobility work."},
        {"role": "user", "content": "What about recovery days?"},
    ]

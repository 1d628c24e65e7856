"""配置常量模块 -- 可通过环境变量覆盖

包含数据库路径、认领超时、对话历史窗口等可配置常量。
"""

import os
from pathlib import Path


def _get_base_dir() -> Path:
    """获取项目 data 基础目录"""
    return Path(os.environ.get("FORCEFIT_DATA_DIR", "data"))


def get_db_path() -> str:
    """获取 SQLite 数据库路径"""
    return os.environ.get(
        "FORCEFIT_DB_PATH",
        str(_get_base_dir() / "sqlite" / "forcefit.db"),
    )


def get_stale_claim_hours() -> float:
    """获取认领过期阈值（小时），超过即可被自动释放"""
    return float(os.environ.get("FORCEFIT_STALE_CLAIM_HOURS", "2"))


# 发送给模型的历史消息条数上限（仅保留最近 N 条）
CHAT_HISTORY_LIMIT: int = int(
    os.environ.get("FORCEFIT_CHAT_HISTORY_LIMIT", "10")
)

# 任务标题最大长度
TASK_TITLE_MAX_LENGTH: int = 200

"""SQLite 数据库初始化

PRAGMA 配置 + tasks 表 DDL + 索引创建。
使用 aiosqlite 异步操作。
"""

import aiosqlite

# tasks 表 DDL
# tags / dependencies / metadata 为 JSON 文本列；时间戳为 ISO-8601 UTC 文本
_TASKS_DDL = """
CREATE TABLE IF NOT EXISTS tasks (
    task_id        TEXT PRIMARY KEY,
    title          TEXT NOT NULL,
    description    TEXT NOT NULL DEFAULT '',
    priority       TEXT NOT NULL DEFAULT 'medium',
    priority_rank  INTEGER NOT NULL DEFAULT 1,
    status         TEXT NOT NULL DEFAULT 'pending',
    assignee       TEXT NOT NULL DEFAULT 'any',
    assigned_to    TEXT,
    claimed_by     TEXT,
    claimed_at     TEXT,
    due_date       TEXT,
    created_at     TEXT NOT NULL,
    updated_at     TEXT NOT NULL,
    completed_at   TEXT,
    released_at    TEXT,
    tags           TEXT NOT NULL DEFAULT '[]',
    dependencies   TEXT,
    created_by     TEXT NOT NULL DEFAULT 'system',
    metadata       TEXT NOT NULL DEFAULT '{}'
);
"""

_TASKS_INDEXES = [
    "CREATE INDEX IF NOT EXISTS idx_tasks_created_at ON tasks(created_at DESC);",
    (
        "CREATE INDEX IF NOT EXISTS idx_tasks_status_priority "
        "ON tasks(status, priority_rank DESC, created_at DESC);"
    ),
    "CREATE INDEX IF NOT EXISTS idx_tasks_claimed_by ON tasks(claimed_by, claimed_at DESC);",
]


async def init_db(conn: aiosqlite.Connection) -> None:
    """初始化数据库：设置 PRAGMA + 创建表 + 创建索引

    同时将 row_factory 设为 aiosqlite.Row，Store 按列名读取。

    Args:
        conn: aiosqlite 数据库连接
    """
    conn.row_factory = aiosqlite.Row

    # 设置 PRAGMA
    await conn.execute("PRAGMA journal_mode = WAL;")
    await conn.execute("PRAGMA busy_timeout = 5000;")

    await conn.execute(_TASKS_DDL)
    for idx_sql in _TASKS_INDEXES:
        await conn.execute(idx_sql)

    await conn.commit()


async def verify_wal_mode(conn: aiosqlite.Connection) -> bool:
    """验证 WAL 模式是否生效

    Returns:
        True 如果 WAL 模式已启用
    """
    cursor = await conn.execute("PRAGMA journal_mode;")
    row = await cursor.fetchone()
    return row is not None and row[0].lower() == "wal"

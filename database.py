import logging
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

logger = logging.getLogger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS tasks (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    title TEXT NOT NULL,
    description TEXT,
    status TEXT NOT NULL DEFAULT 'pending',
    due_date TEXT,
    created_at TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%f+00:00', 'now')),
    updated_at TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%f+00:00', 'now'))
);

CREATE INDEX IF NOT EXISTS idx_tasks_status ON tasks(status);
CREATE INDEX IF NOT EXISTS idx_tasks_due_date ON tasks(due_date);
"""


def get_db_connection(db_path="todo.db"):
    # 每个请求一个连接；FastAPI 可能在不同线程里解析依赖和执行路由
    conn = sqlite3.connect(str(db_path), check_same_thread=False)
    conn.row_factory = sqlite3.Row  # 返回 dict 风格
    # SQLite 自带的 lower/LIKE 只处理 ASCII，搜索用 Python 的 casefold
    conn.create_function("casefold", 1, _casefold, deterministic=True)
    return conn


# 初始化数据库（建表 + 索引，可重复执行）
def init_db(db_path="todo.db"):
    path = Path(db_path)
    if path.parent != Path("."):
        path.parent.mkdir(parents=True, exist_ok=True)
    conn = get_db_connection(path)
    try:
        conn.executescript(SCHEMA)
        conn.commit()
    finally:
        conn.close()
    logger.info("Database initialized path=%s", path)


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="microseconds")


def _casefold(value):
    return value.casefold() if isinstance(value, str) else value


def _execute(conn, sql, params=()):
    logger.debug("Executing SQL: %s", " ".join(sql.split()))
    logger.debug("With Params: %s", params)
    return conn.execute(sql, tuple(params))


# 🔵 查询任务列表（状态过滤 + 关键字搜索，按创建时间倒序）
def fetch_tasks(conn, status: Optional[str] = None, search: Optional[str] = None) -> List[sqlite3.Row]:
    query = "SELECT * FROM tasks"
    params = []

    where_clauses = []
    if status:
        where_clauses.append("status = ?")
        params.append(status)

    if search:
        # 在 title 和 description 中做子串匹配，不区分大小写（含非 ASCII 字符）
        needle = search.casefold()
        where_clauses.append("(instr(casefold(title), ?) > 0 OR instr(casefold(description), ?) > 0)")
        params.extend([needle, needle])

    if where_clauses:
        query += " WHERE " + " AND ".join(where_clauses)

    # id 单调递增，用来打破 created_at 相同的情况
    query += " ORDER BY created_at DESC, id DESC"

    return _execute(conn, query, params).fetchall()


# 🟡 查询单个任务
def fetch_task(conn, task_id: int) -> Optional[sqlite3.Row]:
    return _execute(conn, "SELECT * FROM tasks WHERE id = ?", (task_id,)).fetchone()


# 🟢 新建任务，created_at 与 updated_at 使用同一个时间戳
def insert_task(conn, title, description, status, due_date) -> int:
    now = utc_now()
    cursor = _execute(
        conn,
        "INSERT INTO tasks (title, description, status, due_date, created_at, updated_at) VALUES (?, ?, ?, ?, ?, ?)",
        (title, description, status, due_date, now, now),
    )
    conn.commit()
    return cursor.lastrowid


# 🟠 全量更新（id / created_at 不变）
def update_task(conn, task_id: int, title, description, status, due_date) -> int:
    cursor = _execute(
        conn,
        "UPDATE tasks SET title = ?, description = ?, status = ?, due_date = ?, updated_at = ? WHERE id = ?",
        (title, description, status, due_date, utc_now(), task_id),
    )
    conn.commit()
    return cursor.rowcount


# 🟣 只更新状态
def update_task_status(conn, task_id: int, status) -> int:
    cursor = _execute(
        conn,
        "UPDATE tasks SET status = ?, updated_at = ? WHERE id = ?",
        (status, utc_now(), task_id),
    )
    conn.commit()
    return cursor.rowcount


# 🔴 删除任务
def delete_task(conn, task_id: int) -> int:
    cursor = _execute(conn, "DELETE FROM tasks WHERE id = ?", (task_id,))
    conn.commit()
    return cursor.rowcount


# 如果你直接运行 database.py，可以初始化数据库
if __name__ == "__main__":
    from config import get_settings

    init_db(get_settings().database_path)

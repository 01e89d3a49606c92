import logging
import re
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import APIRouter, Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

import database
from config import Settings, get_settings
from errors import InvalidInput, NotFound, register_exception_handlers
from logging_setup import setup_logging
from models import DEFAULT_STATUS, StatusPayload, Task, TaskPayload

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/tasks", tags=["tasks"])

_ID_RE = re.compile(r"[0-9]+")

# SQLite INTEGER 上限，超过的 id 不可能存在
MAX_TASK_ID = 2**63 - 1


def get_db(request: Request):
    conn = database.get_db_connection(request.app.state.settings.database_path)
    try:
        yield conn
    finally:
        conn.close()


def valid_task_id(task_id: str) -> int:
    # 只接受正整数 id，其余一律 400
    if not _ID_RE.fullmatch(task_id) or int(task_id) <= 0:
        raise InvalidInput()
    if int(task_id) > MAX_TASK_ID:
        raise NotFound()
    return int(task_id)


def envelope(data=None, *, message: Optional[str] = None, count: Optional[int] = None) -> dict:
    body = {"success": True}
    if data is not None:
        body["data"] = data
    if count is not None:
        body["count"] = count
    if message is not None:
        body["message"] = message
    return body


def _as_dict(row) -> dict:
    return Task.model_validate(dict(row)).model_dump()


def _require_task(conn, task_id: int):
    row = database.fetch_task(conn, task_id)
    if row is None:
        raise NotFound()
    return row


# 🔵 Read - 获取所有任务 (状态过滤 + 搜索)
@router.get("")
def list_tasks(status: Optional[str] = None, search: Optional[str] = None, conn=Depends(get_db)):
    tasks = [_as_dict(row) for row in database.fetch_tasks(conn, status=status, search=search)]
    return envelope(tasks, count=len(tasks))


# 🟡 Read - 获取单个任务
@router.get("/{task_id}")
def read_task(task_id: int = Depends(valid_task_id), conn=Depends(get_db)):
    return envelope(_as_dict(_require_task(conn, task_id)))


# 🟢 Create - 添加任务
@router.post("", status_code=201)
def create_task(payload: TaskPayload, conn=Depends(get_db)):
    task_id = database.insert_task(
        conn,
        payload.title,
        payload.description,
        payload.status or DEFAULT_STATUS,
        payload.due_date,
    )
    logger.info("Task created id=%s", task_id)
    return envelope(_as_dict(_require_task(conn, task_id)), message="Task created successfully")


# 🟠 Update - 全量修改任务
@router.put("/{task_id}")
def update_task(payload: TaskPayload, task_id: int = Depends(valid_task_id), conn=Depends(get_db)):
    existing = _require_task(conn, task_id)

    # 没有传 status 时保留原来的状态（status 列不允许为空）
    status = payload.status or existing["status"]

    database.update_task(conn, task_id, payload.title, payload.description, status, payload.due_date)
    logger.info("Task updated id=%s", task_id)
    return envelope(_as_dict(_require_task(conn, task_id)), message="Task updated successfully")


# 🟣 Update - 只修改状态
@router.patch("/{task_id}/status")
def patch_task_status(payload: StatusPayload, task_id: int = Depends(valid_task_id), conn=Depends(get_db)):
    _require_task(conn, task_id)
    database.update_task_status(conn, task_id, payload.status)
    logger.info("Task status updated id=%s status=%s", task_id, payload.status)
    return envelope(_as_dict(_require_task(conn, task_id)), message="Task status updated successfully")


# 🔴 Delete - 删除任务
@router.delete("/{task_id}")
def delete_task(task_id: int = Depends(valid_task_id), conn=Depends(get_db)):
    _require_task(conn, task_id)
    database.delete_task(conn, task_id)
    logger.info("Task deleted id=%s", task_id)
    return envelope(message="Task deleted successfully")


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # 确保数据库已初始化
        database.init_db(settings.database_path)
        yield

    app = FastAPI(title="Task Manager API", lifespan=lifespan)
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_exception_handlers(app)
    app.include_router(router, prefix=settings.api_prefix)

    @app.get("/health", tags=["health"])
    def health():
        return envelope(message="Task Manager API running")

    return app


app = create_app()


if __name__ == "__main__":
    _settings = get_settings()
    setup_logging(_settings.log_level)
    uvicorn.run(app, host=_settings.host, port=_settings.port, log_config=None)

from datetime import date, datetime
from typing import Literal, Optional, get_args

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_core import PydanticCustomError

TaskStatus = Literal["pending", "in-progress", "completed", "cancelled"]
STATUSES = get_args(TaskStatus)
DEFAULT_STATUS = "pending"

TITLE_MAX_LENGTH = 255
DESCRIPTION_MAX_LENGTH = 1000

TITLE_MESSAGE = "Title is required and must be less than 255 characters"
DESCRIPTION_MESSAGE = "Description must be less than 1000 characters"
STATUS_MESSAGE = "Status must be one of: " + ", ".join(STATUSES)
DUE_DATE_MESSAGE = "Due date must be a valid ISO 8601 date"


def parse_due_date(value: str) -> date:
    """Parse an ISO 8601 date ("2099-01-01") or datetime ("2099-01-01T10:00:00Z")."""
    text = value.strip()
    try:
        return date.fromisoformat(text)
    except ValueError:
        pass
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    return datetime.fromisoformat(text).date()


def _validate_status(value: Optional[str]) -> Optional[str]:
    if value is not None and value not in STATUSES:
        raise PydanticCustomError("status", STATUS_MESSAGE)
    return value


class Task(BaseModel):
    """A stored task, exactly as the service returns it."""

    model_config = ConfigDict(frozen=True)

    id: int
    title: str
    description: Optional[str] = None
    status: TaskStatus = DEFAULT_STATUS
    due_date: Optional[str] = None  # "YYYY-MM-DD"
    created_at: str
    updated_at: str


# 创建 / 全量更新共用同一套校验规则；所有错误一次性返回
class TaskPayload(BaseModel):
    title: Optional[str] = Field(default=None, validate_default=True)
    description: Optional[str] = None
    status: Optional[str] = None
    due_date: Optional[str] = None  # "YYYY-MM-DD"

    @field_validator("title")
    @classmethod
    def _check_title(cls, v: Optional[str]) -> str:
        v = (v or "").strip()
        if not 1 <= len(v) <= TITLE_MAX_LENGTH:
            raise PydanticCustomError("title", TITLE_MESSAGE)
        return v

    @field_validator("description")
    @classmethod
    def _check_description(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = v.strip()
        if len(v) > DESCRIPTION_MAX_LENGTH:
            raise PydanticCustomError("description", DESCRIPTION_MESSAGE)
        return v or None

    @field_validator("status")
    @classmethod
    def _check_status(cls, v: Optional[str]) -> Optional[str]:
        return _validate_status(v)

    @field_validator("due_date")
    @classmethod
    def _check_due_date(cls, v: Optional[str]) -> Optional[str]:
        if v is None or v.strip() == "":
            return None
        try:
            parse_due_date(v)
        except ValueError:
            raise PydanticCustomError("due_date", DUE_DATE_MESSAGE)
        return v.strip()


class StatusPayload(BaseModel):
    status: Optional[str] = Field(default=None, validate_default=True)

    @field_validator("status")
    @classmethod
    def _check_status(cls, v: Optional[str]) -> str:
        if v is None:
            raise PydanticCustomError("status", STATUS_MESSAGE)
        return _validate_status(v)

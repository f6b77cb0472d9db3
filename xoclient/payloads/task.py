# xoclient/payloads/task.py
"""
Task payloads.

The server is inconsistent about a task's ``result``: it can be a bare string
(usually the ID of the object the task created), a structured record
(``{"id": ..., "code": ..., "message": ...}``) or some other JSON value.
TaskResult accepts all of them and serializes back to the shape it came from.
"""
from enum import Enum
from typing import Any, List, Optional, Union
from uuid import UUID

from pydantic import Field, StrictInt, StrictStr, model_serializer, model_validator

from ..codec import APITime, as_uuid
from .base import XOModel


class TaskStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    SUCCESS = "success"
    FAILURE = "failure"
    INTERRUPTED = "interrupted"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES = frozenset({TaskStatus.SUCCESS, TaskStatus.FAILURE, TaskStatus.INTERRUPTED})


class TaskCall(XOModel):
    method: str = ""
    duration: Optional[int] = None
    params: Any = None


class TaskResult(XOModel):
    id: Optional[UUID] = None
    # set when the server answered with a bare string
    string_id: Optional[str] = Field(default=None, exclude=True)
    # set when the result was neither a string nor an object (booleans, lists, numbers)
    raw: Any = Field(default=None, exclude=True)
    code: Optional[Union[StrictInt, StrictStr]] = None
    message: Optional[str] = None
    name: Optional[str] = None
    stack: Optional[str] = None
    call: Optional[TaskCall] = None
    params: Any = None
    data: Any = None

    @model_validator(mode="before")
    @classmethod
    def _accept_scalars(cls, value):
        if isinstance(value, str):
            return {"string_id": value, "id": as_uuid(value)}
        if value is not None and not isinstance(value, (dict, TaskResult)):
            return {"raw": value}
        return value

    @model_serializer(mode="wrap")
    def _dump(self, handler):
        if self.string_id is not None:
            return self.string_id
        if self.raw is not None:
            return self.raw
        return handler(self)

    @property
    def resource_id(self) -> Optional[str]:
        """The created object's ID, whichever form the server used."""
        if self.id is not None:
            return str(self.id)
        return self.string_id


class TaskProperties(XOModel):
    name: Optional[str] = None
    method: Optional[str] = None
    params: Any = None
    object_id: Optional[str] = Field(default=None, alias="objectId")
    user_id: Optional[str] = Field(default=None, alias="userId")
    type: Optional[str] = None


class Task(XOModel):
    id: str = ""
    name: Optional[str] = None
    status: TaskStatus
    properties: Optional[TaskProperties] = None
    started_at: Optional[APITime] = Field(default=None, alias="start")
    updated_at: Optional[APITime] = Field(default=None, alias="updatedAt")
    ended_at: Optional[APITime] = Field(default=None, alias="end")
    abortion_requested_at: Optional[APITime] = Field(default=None, alias="abortionRequestedAt")
    result: Optional[TaskResult] = None
    warnings: Optional[List[Any]] = None
    infos: Optional[List[Any]] = None
    message: Optional[str] = None
    stack: Optional[str] = None
    # subtasks are owned copies, not references
    tasks: List["Task"] = Field(default_factory=list)

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    @property
    def succeeded(self) -> bool:
        return self.status is TaskStatus.SUCCESS

    @property
    def error_message(self) -> Optional[str]:
        if self.status is TaskStatus.SUCCESS:
            return None
        if self.message:
            return self.message
        if self.result is not None and self.result.message:
            return self.result.message
        if self.status in (TaskStatus.FAILURE, TaskStatus.INTERRUPTED):
            return f"task {self.id or '?'} ended with status {self.status.value}"
        return None


Task.model_rebuild()

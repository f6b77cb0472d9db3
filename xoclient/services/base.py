# xoclient/services/base.py
import logging
from typing import Any, Dict, List, Optional, Type, TypeVar, Union
from uuid import UUID

from ..codec import as_uuid, decode
from ..context import CancelScope
from ..errors import DecodeError, InvariantError, NotFoundError, ServerError, ValidationFailed
from ..paths import REST_PREFIX, PathBuilder
from ..payloads.task import Task
from ..rest import RestClient
from ..tasks import TaskService, ensure_success

logger = logging.getLogger(__name__)

T = TypeVar("T")

ObjectID = Union[UUID, str]


def require_id(value: Optional[ObjectID], what: str) -> str:
    if isinstance(value, UUID):
        return str(value)
    if not isinstance(value, str) or not value.strip():
        raise ValidationFailed(f"{what} must be a non-empty id")
    return value.strip()


def require_text(value: Optional[str], what: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationFailed(f"{what} must not be empty")
    return value


def list_params(limit: Optional[int] = None, filter: Optional[str] = None,
                fields: Optional[str] = "*") -> Dict[str, Any]:
    if limit is not None and limit < 0:
        raise ValidationFailed("limit must not be negative")
    params: Dict[str, Any] = {"fields": fields}
    if limit:
        params["limit"] = limit
    if filter:
        params["filter"] = filter
    return params


def created_id(task: Task, operation: str) -> UUID:
    """The UUID a successful creation task reports."""
    ensure_success(task, operation)
    raw = task.result.resource_id if task.result is not None else None
    if not raw:
        raise ServerError(f"{operation} finished without reporting the new object's id", data=task)
    ident = as_uuid(raw)
    if ident is None:
        raise InvariantError(f"{operation} reported a non-UUID id {raw!r}")
    return ident


class RestService:
    """
    Base for services over one REST collection (``resource``).

    Mutating actions go through settle(): a plain success answer is accepted as
    is, anything else is treated as a task envelope and waited on.
    """

    resource = ""

    def __init__(self, rest: RestClient, tasks: TaskService):
        self.rest = rest
        self.tasks = tasks

    def path(self, *segments: Any) -> PathBuilder:
        builder = PathBuilder().resource(self.resource)
        for segment in segments:
            builder.id_string(str(segment))
        return builder

    def fetch(self, object_id: ObjectID, model: Type[T], scope: Optional[CancelScope] = None) -> T:
        path = self.path(require_id(object_id, f"{self.resource} id")).build()
        return self.rest.get(path, out=model, scope=scope)

    def fetch_all(self, model: Type[T], params: Optional[Dict[str, Any]] = None, path: Optional[str] = None,
                  scope: Optional[CancelScope] = None) -> List[T]:
        """
        GET a collection. With ``fields`` the server returns full objects; without,
        it returns resource URLs which are fetched one by one.
        """
        path = path or self.resource
        data = self.rest.get(path, params=params, scope=scope)
        if data is None:
            return []
        if not isinstance(data, list):
            raise DecodeError(f"expected a list from {path}, got {type(data).__name__}")
        items = []
        for item in data:
            if isinstance(item, str):
                try:
                    items.append(self.rest.get(self._href(item), out=model, scope=scope))
                except NotFoundError:
                    logger.warning("%s disappeared while listing %s, skipping", item, path)
            else:
                items.append(decode(model, item))
        logger.debug("listed %d objects from %s", len(items), path)
        return items

    def add_tag(self, object_id: ObjectID, tag: str, scope: Optional[CancelScope] = None):
        ident = require_id(object_id, f"{self.resource} id")
        path = self.path(ident, "tags", require_text(tag, "tag")).build()
        self.rest.put(path, scope=scope)
        logger.info("tag %r added to %s %s", tag, self.resource, ident)

    def remove_tag(self, object_id: ObjectID, tag: str, scope: Optional[CancelScope] = None):
        ident = require_id(object_id, f"{self.resource} id")
        path = self.path(ident, "tags", require_text(tag, "tag")).build()
        self.rest.delete(path, scope=scope)
        logger.info("tag %r removed from %s %s", tag, self.resource, ident)

    def run_action(self, object_id: ObjectID, verb: str, body: Any = None,
                   scope: Optional[CancelScope] = None) -> Optional[Task]:
        ident = require_id(object_id, f"{self.resource} id")
        path = self.path(ident).actions_group().action(verb).build()
        logger.debug("%s %s: %s", self.resource, ident, verb)
        envelope = self.rest.post(path, body=body, scope=scope)
        return self.settle(envelope, f"{verb} {self.resource} {ident}", scope)

    def settle(self, envelope: Any, operation: str, scope: Optional[CancelScope] = None) -> Optional[Task]:
        if envelope is None:
            return None
        if isinstance(envelope, bool) or (isinstance(envelope, dict) and set(envelope) == {"success"}):
            ok = envelope if isinstance(envelope, bool) else envelope["success"]
            if ok is not True:
                raise ServerError(f"{operation} returned an unsuccessful status")
            return None
        task = self.tasks.handle_task_response(envelope, wait_for_completion=True, scope=scope)
        try:
            return ensure_success(task, operation)
        except ServerError:
            logger.error("%s failed: %s", operation, task.error_message)
            raise

    @staticmethod
    def _href(value: str) -> str:
        if value.startswith(REST_PREFIX + "/"):
            return value[len(REST_PREFIX) + 1:]
        return value.lstrip("/")

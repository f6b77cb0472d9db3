# xoclient/tasks.py
"""
Task engine: turns "the server accepted the request" into "the operation finished".

Most mutating REST calls answer with a task reference instead of a result.
TaskService.handle_task_response() normalizes every envelope shape the server
uses and, when asked, polls the task until it reaches a terminal state:

    envelope = rest.post(f"pools/{pool_id}/actions/create_vm", body=params)
    task = tasks.handle_task_response(envelope, wait_for_completion=True)
    if task.succeeded:
        vm_id = task.result.id
"""
import json
import logging
import threading
from collections import OrderedDict
from typing import Any, Dict, List, Optional, Tuple

from .codec import as_uuid, decode
from .context import CancelScope
from .errors import (DeadlineExceeded, DecodeError, InvariantError, NotFoundError, OperationCancelled,
                     ServerError, ValidationFailed, XOError)
from .paths import REST_PREFIX, PathBuilder, extract_id_from_path, extract_task_id, is_task_url
from .payloads.task import Task, TaskResult, TaskStatus
from .rest import RestClient

logger = logging.getLogger(__name__)

DEFAULT_LIST_LIMIT = 100
POLL_INTERVAL = 0.5
MAX_POLL_INTERVAL = 5.0
RAMP_POLLS = 10
ABORT_GRACE = 2.0
LEDGER_SIZE = 1024


def ensure_success(task: Task, operation: str) -> Task:
    """Raise ServerError for a task that ended in failure or was interrupted."""
    if task.status is not TaskStatus.SUCCESS:
        raise ServerError(f"{operation} failed: {task.error_message}", data=task)
    return task


class TaskService:
    def __init__(self, rest: RestClient, poll_interval: float = POLL_INTERVAL,
                 max_poll_interval: float = MAX_POLL_INTERVAL, ramp_polls: int = RAMP_POLLS,
                 abort_grace: float = ABORT_GRACE, ledger_size: int = LEDGER_SIZE):
        self.rest = rest
        self.poll_interval = poll_interval
        self.max_poll_interval = max_poll_interval
        self.ramp_polls = ramp_polls
        self.abort_grace = abort_grace
        self._ledger_size = ledger_size
        self._terminal: "OrderedDict[str, Tuple[TaskStatus, Optional[TaskResult]]]" = OrderedDict()
        self._lock = threading.Lock()

    # ------------------ single task ------------------

    def get(self, task_id: str, scope: Optional[CancelScope] = None) -> Task:
        task_id = self._clean_id(task_id)
        path = PathBuilder().resource("tasks").id_string(task_id).build()
        task = self.rest.get(path, out=Task, scope=scope)
        if not task.id:
            task = task.model_copy(update={"id": task_id})
        self._record(task_id, task)
        return task

    def list(self, params: Optional[Dict[str, Any]] = None, scope: Optional[CancelScope] = None) -> List[Task]:
        query = dict(params or {})
        query.setdefault("limit", DEFAULT_LIST_LIMIT)
        data = self.rest.get("tasks", params=query, scope=scope)
        if data is None:
            return []
        if not isinstance(data, list):
            raise DecodeError(f"expected a list of tasks, got {type(data).__name__}")
        tasks = []
        for item in data:
            if isinstance(item, str):
                try:
                    tasks.append(self.get(item, scope=scope))
                except NotFoundError:
                    logger.warning("task %s disappeared while listing, skipping", item)
            else:
                tasks.append(decode(Task, item))
        logger.debug("listed %d tasks", len(tasks))
        return tasks

    def abort(self, task_id: str, scope: Optional[CancelScope] = None, retry: bool = True):
        """Request cancellation. Aborting a task that already ended is a no-op."""
        task_id = self._clean_id(task_id)
        with self._lock:
            if task_id in self._terminal:
                logger.debug("task %s already ended, nothing to abort", task_id)
                return
        path = PathBuilder().resource("tasks").id_string(task_id).actions_group().action("abort").build()
        try:
            self.rest.post(path, scope=scope, retry=retry)
        except ServerError as exc:
            if exc.status_code is None or exc.status_code >= 500 or isinstance(exc, NotFoundError):
                raise
            task = self.get(task_id, scope=scope)
            if task.is_terminal:
                logger.debug("task %s ended before abort: %s", task_id, task.status.value)
                return
            raise
        logger.info("abort requested for task %s", task_id)

    def wait(self, task_id: str, scope: Optional[CancelScope] = None, timeout: Optional[float] = None) -> Task:
        """
        Poll until the task is terminal. The interval starts at poll_interval and
        grows linearly to max_poll_interval over ramp_polls polls.

        Cancelling ``scope`` (or running past its deadline or ``timeout``) sends one
        best-effort abort, bounded by abort_grace seconds, then raises
        OperationCancelled (or DeadlineExceeded).
        """
        task_id = self._clean_id(task_id)
        if scope is None:
            scope = CancelScope(timeout)
        elif timeout is not None:
            scope = scope.child(timeout)
        with scope:
            polls = 0
            while True:
                try:
                    scope.check()
                    task = self.get(task_id, scope=scope)
                except OperationCancelled as exc:
                    self._abort_quietly(task_id)
                    raise OperationCancelled(f"wait for task {task_id} cancelled") from exc
                except DeadlineExceeded as exc:
                    self._abort_quietly(task_id)
                    raise DeadlineExceeded(f"task {task_id} did not finish in time") from exc
                if task.is_terminal:
                    logger.info("task %s finished: %s", task_id, task.status.value)
                    return task
                logger.debug("task %s is %s (poll %d)", task_id, task.status.value, polls + 1)
                scope.sleep(self.interval(polls))
                polls += 1

    def interval(self, polls: int) -> float:
        if self.ramp_polls <= 0:
            return self.max_poll_interval
        step = min(polls, self.ramp_polls) / self.ramp_polls
        return self.poll_interval + (self.max_poll_interval - self.poll_interval) * step

    # ------------------ envelopes ------------------

    def handle_task_response(self, envelope: Any, wait_for_completion: bool = True,
                             scope: Optional[CancelScope] = None) -> Task:
        """
        Normalize what a mutating call returned into a Task.

        - a full task record is returned as is;
        - {"taskId": ...}, a /rest/v0/tasks/<id> URL or an opaque non-UUID string
          is followed (waited on, or fetched once);
        - a bare UUID, a resource URL or {"id": ...} is the finished result and
          becomes a synthetic successful task carrying that id.
        """
        if isinstance(envelope, Task):
            return envelope
        if isinstance(envelope, bytes):
            envelope = envelope.decode("utf-8", errors="replace")
        if isinstance(envelope, str):
            return self._from_string(envelope.strip(), wait_for_completion, scope)
        if isinstance(envelope, dict):
            if "status" in envelope:
                return decode(Task, envelope)
            if "taskId" in envelope:
                task_id = envelope["taskId"]
                if not isinstance(task_id, str) or not task_id.strip():
                    raise DecodeError(f"invalid taskId {task_id!r}")
                return self._follow(task_id, wait_for_completion, scope)
            if set(envelope) == {"id"}:
                return self._synthetic(envelope["id"])
        raise DecodeError(f"unrecognized task response: {str(envelope)[:200]}")

    def _from_string(self, text: str, wait_for_completion: bool, scope: Optional[CancelScope]) -> Task:
        if not text:
            raise DecodeError("empty task response")
        if text[0] in "{\"":
            try:
                data = json.loads(text)
            except ValueError as exc:
                raise DecodeError(f"invalid JSON task response: {exc}") from exc
            return self.handle_task_response(data, wait_for_completion, scope)
        if is_task_url(text):
            return self._follow(text, wait_for_completion, scope)
        if as_uuid(text) is not None:
            return self._synthetic(text)
        if text.startswith(REST_PREFIX + "/"):
            resource = text[len(REST_PREFIX) + 1:].split("/", 1)[0]
            return self._synthetic(extract_id_from_path(text, resource))
        return self._follow(text, wait_for_completion, scope)

    def _follow(self, task_id: str, wait_for_completion: bool, scope: Optional[CancelScope]) -> Task:
        if wait_for_completion:
            return self.wait(task_id, scope=scope)
        return self.get(task_id, scope=scope)

    @staticmethod
    def _synthetic(value: Any) -> Task:
        if not isinstance(value, str) or not value:
            raise DecodeError(f"invalid resource id {value!r}")
        return Task(status=TaskStatus.SUCCESS, result=decode(TaskResult, value))

    # ------------------ internals ------------------

    @staticmethod
    def _clean_id(task_id: str) -> str:
        if not isinstance(task_id, str) or not task_id.strip():
            raise ValidationFailed("task id must be a non-empty string")
        return extract_task_id(task_id)

    def _record(self, task_id: str, task: Task):
        with self._lock:
            seen = self._terminal.get(task_id)
            if seen is not None:
                status, result = seen
                if task.status is not status or task.result != result:
                    raise InvariantError(f"task {task_id} changed after ending with {status.value}: "
                                         f"now {task.status.value}")
                self._terminal.move_to_end(task_id)
            elif task.is_terminal:
                self._terminal[task_id] = (task.status, task.result)
                while len(self._terminal) > self._ledger_size:
                    self._terminal.popitem(last=False)

    def _abort_quietly(self, task_id: str):
        try:
            self.abort(task_id, scope=CancelScope(self.abort_grace), retry=False)
        except XOError as exc:
            # must not mask the cancellation
            logger.warning("best-effort abort of task %s failed: %s", task_id, exc)

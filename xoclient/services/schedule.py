# xoclient/services/schedule.py
import logging
from typing import List, Optional

from ..context import CancelScope
from ..payloads.schedule import Schedule
from .base import ObjectID, require_id, require_text
from .jsonrpc import JsonRpcService

logger = logging.getLogger(__name__)


def _schedule_params(schedule: Schedule) -> dict:
    return {
        "name": schedule.name,
        "cron": require_text(schedule.cron, "cron expression"),
        "enabled": schedule.enabled,
        "timezone": schedule.timezone,
        "jobId": require_id(schedule.job_id, "job id"),
    }


class ScheduleService:
    def __init__(self, jsonrpc: JsonRpcService):
        self.jsonrpc = jsonrpc

    def get(self, schedule_id: ObjectID, scope: Optional[CancelScope] = None) -> Schedule:
        ident = require_id(schedule_id, "schedule id")
        return self.jsonrpc.call("schedule.get", {"id": ident}, Schedule, scope=scope, schedule_id=ident)

    def get_all(self, scope: Optional[CancelScope] = None) -> List[Schedule]:
        schedules = self.jsonrpc.call("schedule.getAll", {}, List[Schedule], scope=scope)
        logger.debug("found %d schedules", len(schedules))
        return schedules

    def create(self, schedule: Schedule, scope: Optional[CancelScope] = None) -> Schedule:
        created = self.jsonrpc.call("schedule.create", _schedule_params(schedule), Schedule, scope=scope)
        logger.info("schedule %s created for job %s", created.id, created.job_id)
        return created

    def update(self, schedule_id: ObjectID, schedule: Schedule, scope: Optional[CancelScope] = None) -> Schedule:
        ident = require_id(schedule_id, "schedule id")
        params = dict(_schedule_params(schedule), id=ident)
        ok = self.jsonrpc.call("schedule.set", params, scope=scope, schedule_id=ident)
        self.jsonrpc.validate_result(ok, f"update schedule {ident}")
        return self.get(ident, scope=scope)

    def delete(self, schedule_id: ObjectID, scope: Optional[CancelScope] = None):
        ident = require_id(schedule_id, "schedule id")
        self.jsonrpc.call("schedule.delete", {"id": ident}, scope=scope, schedule_id=ident)
        logger.info("schedule %s deleted", ident)

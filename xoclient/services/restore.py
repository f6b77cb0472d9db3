# xoclient/services/restore.py
import logging
from typing import List, Optional

from ..context import CancelScope
from ..errors import XOError
from ..paths import PathBuilder
from ..payloads.backup import BackupLog, BackupLogStatus
from ..payloads.restore import ImportOptions, RestoreLog, RestoreOptions, RestorePoint
from ..payloads.task import Task
from .base import ObjectID, RestService, list_params, require_id

logger = logging.getLogger(__name__)

RESTORE_POINT_LIMIT = 200


class RestoreService(RestService):
    resource = "backup"

    def get_restore_points(self, vm_id: ObjectID, limit: Optional[int] = RESTORE_POINT_LIMIT,
                           scope: Optional[CancelScope] = None) -> List[RestorePoint]:
        ident = require_id(vm_id, "VM id")
        logs = self.fetch_all(BackupLog, list_params(limit), path=self.path("logs").build(), scope=scope)
        points = [
            RestorePoint(id=log.id, name=log.name, backup_time=log.end or log.start, job_id=log.job_id,
                         size=log.size)
            for log in logs
            if log.status is BackupLogStatus.SUCCESS and log.covers_vm(ident)
        ]
        logger.debug("VM %s: %d restore points", ident, len(points))
        return points

    def restore_vm(self, backup_id: ObjectID, options: Optional[RestoreOptions] = None,
                   scope: Optional[CancelScope] = None) -> Optional[Task]:
        """Restore a backup and wait for the restore task."""
        ident = require_id(backup_id, "backup id")
        path = self.path("restore", ident).build()
        body = options.to_payload() if options is not None else None
        try:
            envelope = self.rest.post(path, body=body, scope=scope)
            task = self.settle(envelope, f"restore backup {ident}", scope)
        except XOError as exc:
            logger.error("restore of backup %s failed: %s", ident, exc)
            raise
        logger.info("backup %s restored", ident)
        return task

    def import_vm(self, options: ImportOptions, wait_for_completion: bool = True,
                  scope: Optional[CancelScope] = None) -> Task:
        require_id(options.sr_id, "SR id")
        envelope = self.rest.post(self.path("import").build(), body=options.to_payload(), scope=scope)
        return self.tasks.handle_task_response(envelope, wait_for_completion=wait_for_completion, scope=scope)

    def list_restore_logs(self, limit: Optional[int] = None, scope: Optional[CancelScope] = None) -> List[RestoreLog]:
        return self.fetch_all(RestoreLog, list_params(limit), path="restore/logs", scope=scope)

    def get_restore_log(self, log_id: str, scope: Optional[CancelScope] = None) -> RestoreLog:
        ident = require_id(log_id, "restore log id")
        path = PathBuilder().resource("restore").resource("logs").id_string(ident).build()
        return self.rest.get(path, out=RestoreLog, scope=scope)

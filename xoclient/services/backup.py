# xoclient/services/backup.py
import logging
from typing import List, Optional, Union

from ..codec import decode
from ..context import CancelScope
from ..errors import DecodeError, NotFoundError, ValidationFailed, XOError
from ..paths import PathBuilder, extract_task_id, is_task_url
from ..payloads.backup import BackupJob, BackupJobType, BackupLog, BackupLogStatus, VMBackup
from .base import ObjectID, RestService, require_id, require_text

logger = logging.getLogger(__name__)

DEFAULT_LOG_LIMIT = 100

JobTypes = Union[BackupJobType, str, None]


def _job_types(job_type: JobTypes) -> List[BackupJobType]:
    if job_type is None:
        return list(BackupJobType)
    try:
        return [BackupJobType(job_type)]
    except ValueError:
        raise ValidationFailed(f"unknown backup job type {job_type!r}") from None


class BackupService(RestService):
    """
    Backup jobs live in one collection per type (backup/jobs/vm, .../metadata,
    .../mirror). Lookups by id without a type try each collection in turn.
    """

    resource = "backup"

    def _jobs_path(self, job_type: BackupJobType) -> PathBuilder:
        return self.path("jobs", job_type.value)

    def list_jobs(self, job_type: JobTypes = None, scope: Optional[CancelScope] = None) -> List[BackupJob]:
        jobs = []
        for jt in _job_types(job_type):
            try:
                found = self.fetch_all(BackupJob, {"fields": "*"}, path=self._jobs_path(jt).build(), scope=scope)
            except NotFoundError:
                logger.warning("backup job collection %s is not available", jt.value)
                continue
            jobs.extend(job.model_copy(update={"job_type": jt}) for job in found)
        logger.debug("found %d backup jobs", len(jobs))
        return jobs

    def get_job(self, job_id: ObjectID, job_type: JobTypes = None,
                scope: Optional[CancelScope] = None) -> BackupJob:
        ident = require_id(job_id, "backup job id")
        for jt in _job_types(job_type):
            path = self._jobs_path(jt).id_string(ident).build()
            try:
                job = self.rest.get(path, out=BackupJob, scope=scope)
            except NotFoundError:
                continue
            return job.model_copy(update={"job_type": jt})
        raise NotFoundError(f"backup job {ident} not found", status_code=404)

    def create_job(self, job: BackupJob, scope: Optional[CancelScope] = None) -> BackupJob:
        require_text(job.name, "backup job name")
        path = self._jobs_path(job.job_type).build()
        try:
            envelope = self.rest.post(path, body=job.to_payload(), scope=scope)
            if isinstance(envelope, dict) and "name" in envelope:
                created = decode(BackupJob, envelope)
            else:
                task = self.settle(envelope, f"create backup job {job.name!r}", scope)
                new_id = task.result.resource_id if task is not None and task.result is not None else None
                if not new_id:
                    raise DecodeError(f"creating backup job {job.name!r} returned no id")
                created = self.get_job(new_id, job.job_type, scope=scope)
        except XOError as exc:
            logger.error("failed to create backup job %r: %s", job.name, exc)
            raise
        logger.info("backup job %s (%s) created", created.id, job.job_type.value)
        return created.model_copy(update={"job_type": job.job_type})

    def update_job(self, job: BackupJob, scope: Optional[CancelScope] = None) -> BackupJob:
        if job.id is None:
            raise ValidationFailed("backup job id is required to update a job")
        ident = str(job.id)
        path = self._jobs_path(job.job_type).id_string(ident).build()
        self.settle(self.rest.put(path, body=job.to_payload(), scope=scope), f"update backup job {ident}", scope)
        return self.get_job(ident, job.job_type, scope=scope)

    def delete_job(self, job_id: ObjectID, job_type: JobTypes = None, scope: Optional[CancelScope] = None):
        ident = require_id(job_id, "backup job id")
        for jt in _job_types(job_type):
            path = self._jobs_path(jt).id_string(ident).build()
            try:
                envelope = self.rest.delete(path, scope=scope)
            except NotFoundError:
                continue
            self.settle(envelope, f"delete backup job {ident}", scope)
            logger.info("backup job %s deleted", ident)
            return
        raise NotFoundError(f"backup job {ident} not found", status_code=404)

    def run_job(self, job_id: ObjectID, job_type: JobTypes = None, scope: Optional[CancelScope] = None) -> str:
        """Start a run of the job and return the id of the task tracking it."""
        ident = require_id(job_id, "backup job id")
        for jt in _job_types(job_type):
            path = self._jobs_path(jt).id_string(ident).actions_group().action("run").build()
            try:
                envelope = self.rest.post(path, scope=scope)
            except NotFoundError:
                continue
            task_id = _task_id(envelope)
            logger.info("backup job %s started, task %s", ident, task_id)
            return task_id
        raise NotFoundError(f"backup job {ident} not found", status_code=404)

    def list_logs(self, job_id: ObjectID, limit: Optional[int] = DEFAULT_LOG_LIMIT,
                  scope: Optional[CancelScope] = None) -> List[BackupLog]:
        ident = require_id(job_id, "backup job id")
        params = {"fields": "*", "filter": f"jobId:{ident}", "limit": limit}
        logs = self.fetch_all(BackupLog, params, path=self.path("logs").build(), scope=scope)
        return [log for log in logs if log.job_id == ident]

    def list_vm_backups(self, vm_id: ObjectID, limit: Optional[int] = DEFAULT_LOG_LIMIT,
                        scope: Optional[CancelScope] = None) -> List[VMBackup]:
        """Successful backup runs that included the VM."""
        ident = require_id(vm_id, "VM id")
        logs = self.fetch_all(BackupLog, {"fields": "*", "limit": limit}, path=self.path("logs").build(),
                              scope=scope)
        backups = [
            VMBackup(id=log.id, name=log.name, job_id=log.job_id, backup_time=log.end or log.start,
                     size=log.size)
            for log in logs
            if log.status is BackupLogStatus.SUCCESS and log.covers_vm(ident)
        ]
        logger.debug("VM %s: %d backups in %d logs", ident, len(backups), len(logs))
        return backups


def _task_id(envelope) -> str:
    if isinstance(envelope, dict) and isinstance(envelope.get("taskId"), str):
        return extract_task_id(envelope["taskId"])
    if isinstance(envelope, str) and envelope.strip():
        text = envelope.strip()
        return extract_task_id(text) if is_task_url(text) else text
    raise DecodeError(f"backup job run returned no task: {envelope!r}")

# xoclient/payloads/backup.py
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import Field

from ..codec import APITime, Selection, UUIDOrString
from .base import XOModel


class BackupJobMode(str, Enum):
    DELTA = "delta"
    FULL = "full"
    METADATA = "metadata"


class BackupJobType(str, Enum):
    VM = "vm"
    METADATA = "metadata"
    MIRROR = "mirror"


class BackupSettings(XOModel):
    retention: Optional[int] = None
    remote_enabled: Optional[bool] = Field(default=None, alias="remoteEnabled")
    remote_retention: Optional[int] = None
    report_recipients: Optional[List[str]] = None
    report_when_fail_only: Optional[bool] = None
    offline_backup: Optional[bool] = None
    checkpoint_snapshot: Optional[bool] = None
    compression_enabled: Optional[bool] = None


class BackupJob(XOModel):
    """
    A backup job. ``vms`` and ``remotes`` accept a single ID, a list of IDs or a
    selection map and are always sent back as {"id": X} or {"id": {"__or": [...]}}.
    """

    id: Optional[UUIDOrString] = None
    name: str = ""
    mode: Optional[BackupJobMode] = None
    schedule: Optional[str] = None
    enabled: Optional[bool] = None
    vms: Optional[Selection] = None
    remotes: Optional[Selection] = None
    settings: Optional[BackupSettings] = None
    # which backup/jobs/<type> collection the job lives in; not part of the payload
    job_type: BackupJobType = Field(default=BackupJobType.VM, exclude=True)


class BackupLogStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    SUCCESS = "success"
    FAILURE = "failure"
    INTERRUPTED = "interrupted"
    SKIPPED = "skipped"


class BackupLog(XOModel):
    id: UUIDOrString
    name: str = ""
    status: BackupLogStatus
    error: Optional[str] = None
    duration: int = 0
    size: int = 0
    job_id: Optional[str] = Field(default=None, alias="jobId")
    start: Optional[APITime] = None
    end: Optional[APITime] = None
    data: Optional[Dict[str, Any]] = None
    # per-object subtasks; VM entries carry {"data": {"type": "VM", "id": ...}}
    tasks: List[Dict[str, Any]] = Field(default_factory=list)

    def covers_vm(self, vm_id: str) -> bool:
        for task in self.tasks:
            data = task.get("data") or {}
            if data.get("type") == "VM" and data.get("id") == vm_id:
                return True
        return False


class VMBackup(XOModel):
    id: UUIDOrString
    name: str = ""
    job_id: Optional[str] = None
    backup_time: Optional[APITime] = None
    size: int = 0
    type: str = "vm"
    can_restore: bool = True

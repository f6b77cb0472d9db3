# xoclient/payloads/restore.py
from typing import Any, Dict, Optional

from ..codec import APITime, UUIDOrString
from .base import XOModel


class RestorePoint(XOModel):
    id: UUIDOrString
    name: str = ""
    backup_time: Optional[APITime] = None
    job_id: Optional[str] = None
    type: str = "backup"
    size: int = 0


class RestoreOptions(XOModel):
    start_after_restore: Optional[bool] = None
    pool_id: Optional[UUIDOrString] = None
    sr_id: Optional[UUIDOrString] = None
    new_name_pattern: Optional[str] = None


class ImportOptions(XOModel):
    sr_id: UUIDOrString
    backup_id: Optional[UUIDOrString] = None
    name_pattern: Optional[str] = None
    start_on_boot: Optional[bool] = None
    network_config: Optional[Dict[str, str]] = None


class RestoreLog(XOModel):
    id: str
    status: Optional[str] = None
    message: Optional[str] = None
    start: Optional[APITime] = None
    end: Optional[APITime] = None
    data: Any = None

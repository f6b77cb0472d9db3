# xoclient/payloads/snapshot.py
from datetime import datetime, timezone
from typing import Dict, List, Optional
from uuid import UUID

from pydantic import Field

from ..codec import UUIDOrString, Videoram
from .base import XOModel
from .vm import CPUs, Boot, Memory


class OsVersion(XOModel):
    name: Optional[str] = None
    uname: Optional[str] = None
    distro: Optional[str] = None
    major: Optional[str] = None
    minor: Optional[str] = None


class Snapshot(XOModel):
    id: Optional[UUID] = None
    uuid: Optional[str] = None
    type: Optional[str] = None
    name_label: str = ""
    name_description: Optional[str] = None
    power_state: Optional[str] = None
    memory: Optional[Memory] = None
    cpus: Optional[CPUs] = Field(default=None, alias="CPUs")
    cores_per_socket: Optional[int] = Field(default=None, alias="coresPerSocket")
    vifs: Optional[List[str]] = Field(default=None, alias="VIFs")
    vbds: Optional[List[str]] = Field(default=None, alias="$VBDs")
    tags: Optional[List[str]] = None
    auto_poweron: bool = False
    boot: Optional[Boot] = None
    secure_boot: Optional[bool] = Field(default=None, alias="secureBoot")
    videoram: Optional[Videoram] = None
    vga: Optional[str] = None
    addresses: Optional[Dict[str, str]] = None
    os_version: Optional[OsVersion] = None
    install_time: Optional[int] = Field(default=None, alias="installTime")
    start_time: Optional[int] = Field(default=None, alias="startTime")
    pool_id: Optional[UUIDOrString] = Field(default=None, alias="$poolId")
    container: Optional[str] = Field(default=None, alias="$container")
    xapi_ref: Optional[str] = Field(default=None, alias="_xapiRef")
    # seconds since the epoch
    snapshot_time: Optional[int] = None
    snapshot_of: Optional[UUIDOrString] = Field(default=None, alias="$snapshot_of")

    @property
    def created_at(self) -> datetime:
        return datetime.fromtimestamp(self.snapshot_time or 0, tz=timezone.utc)

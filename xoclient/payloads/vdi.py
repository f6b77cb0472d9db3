# xoclient/payloads/vdi.py
from enum import Enum
from typing import Dict, List, Optional
from uuid import UUID

from pydantic import Field

from ..codec import UUIDOrString, extensible
from .base import XOModel


class VDIType(str, Enum):
    USER = "user"
    SYSTEM = "system"
    SUSPEND = "suspend"
    RRD = "rrd"
    REDO_LOG = "redo_log"
    PVS_CACHE = "pvs_cache"
    METADATA = "metadata"
    HA_STATEFILE = "ha_statefile"
    EPHEMERAL = "ephemeral"
    CRASHDUMP = "crashdump"
    CBT_METADATA = "cbt_metadata"


AnyVDIType = extensible(VDIType)


class VDIFormat(str, Enum):
    RAW = "raw"
    VHD = "vhd"


class VDI(XOModel):
    id: Optional[UUID] = None
    uuid: Optional[UUIDOrString] = None
    type: Optional[str] = None
    name_label: str = ""
    name_description: str = ""
    size: int = 0
    usage: int = 0
    vdi_type: Optional[AnyVDIType] = Field(default=None, alias="VDI_type")
    cbt_enabled: Optional[bool] = None
    missing: bool = False
    parent: Optional[UUIDOrString] = None
    image_format: Optional[str] = None
    snapshots: Optional[List[str]] = None
    tags: Optional[List[str]] = None
    current_operations: Optional[Dict[str, str]] = None
    other_config: Optional[Dict[str, str]] = None
    sr: Optional[UUIDOrString] = Field(default=None, alias="$SR")
    vbds: Optional[List[str]] = Field(default=None, alias="$VBDs")
    pool_id: Optional[UUIDOrString] = Field(default=None, alias="$poolId")
    xapi_ref: Optional[str] = Field(default=None, alias="_xapiRef")

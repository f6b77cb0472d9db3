# xoclient/payloads/storage.py
from typing import Dict, List, Optional
from uuid import UUID

from pydantic import Field

from ..codec import UUIDOrString
from .base import XOModel


class StorageRepository(XOModel):
    id: Optional[UUID] = None
    uuid: Optional[str] = None
    type: Optional[str] = None
    name_label: str = ""
    name_description: Optional[str] = None
    pool_id: Optional[UUIDOrString] = Field(default=None, alias="$poolId")
    sr_type: Optional[str] = Field(default=None, alias="SR_type")
    container: Optional[str] = Field(default=None, alias="$container")
    content_type: Optional[str] = None
    shared: Optional[bool] = None
    other_config: Optional[Dict[str, str]] = None
    sm_config: Optional[Dict[str, str]] = None
    pbds: Optional[List[str]] = Field(default=None, alias="$PBDs")
    physical_usage: int = 0
    size: int = 0
    usage: int = 0
    tags: Optional[List[str]] = None
    xapi_ref: Optional[str] = Field(default=None, alias="_xapiRef")

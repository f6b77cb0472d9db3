# xoclient/payloads/network.py
from typing import Dict, List, Optional
from uuid import UUID

from pydantic import Field

from ..codec import UUIDOrString
from .base import XOModel


class Network(XOModel):
    id: Optional[UUID] = None
    uuid: Optional[str] = None
    type: Optional[str] = None
    name_label: str = ""
    name_description: str = ""
    bridge: Optional[str] = None
    mtu: Optional[int] = Field(default=None, alias="MTU")
    automatic: Optional[bool] = None
    default_is_locked: Optional[bool] = Field(default=None, alias="defaultIsLocked")
    nbd: Optional[bool] = None
    insecure_nbd: Optional[bool] = Field(default=None, alias="insecureNbd")
    current_operations: Optional[Dict[str, str]] = None
    other_config: Optional[Dict[str, str]] = None
    tags: Optional[List[str]] = None
    pifs: Optional[List[str]] = Field(default=None, alias="PIFs")
    vifs: Optional[List[str]] = Field(default=None, alias="VIFs")
    pool: Optional[UUIDOrString] = Field(default=None, alias="$pool")
    pool_id: Optional[UUIDOrString] = Field(default=None, alias="$poolId")
    xapi_ref: Optional[str] = Field(default=None, alias="_xapiRef")

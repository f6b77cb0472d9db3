# xoclient/payloads/pool.py
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import Field

from ..codec import UUIDOrString
from .base import XOModel


class PoolCPUs(XOModel):
    cores: int = 0
    sockets: int = 0


class Pool(XOModel):
    id: Optional[UUID] = None
    uuid: Optional[UUIDOrString] = None
    type: Optional[str] = None
    name_label: str = ""
    name_description: str = ""
    auto_poweron: bool = False
    current_operations: Optional[Dict[str, Any]] = None
    default_sr: Optional[str] = Field(default=None, alias="default_SR")
    ha_enabled: bool = Field(default=False, alias="HA_enabled")
    ha_srs: Optional[List[str]] = Field(default=None, alias="haSrs")
    master: Optional[str] = None
    tags: Optional[List[str]] = None
    migration_compression: Optional[bool] = Field(default=None, alias="migrationCompression")
    other_config: Optional[Dict[str, Any]] = Field(default=None, alias="otherConfig")
    cpus: Optional[PoolCPUs] = None
    zstd_supported: Optional[bool] = Field(default=None, alias="zstdSupported")
    vtpm_supported: Optional[bool] = Field(default=None, alias="vtpmSupported")
    platform_version: Optional[str] = None
    pool_ref: Optional[str] = Field(default=None, alias="$pool")
    pool_id: Optional[str] = Field(default=None, alias="$poolId")
    xapi_ref: Optional[str] = Field(default=None, alias="_xapiRef")


class InstallParams(XOModel):
    method: Optional[str] = None
    repository: Optional[str] = None


class VDIParams(XOModel):
    destroy: Optional[bool] = None
    userdevice: Optional[str] = None
    size: Optional[int] = None
    sr: Optional[str] = None
    name_description: Optional[str] = None
    name_label: Optional[str] = None


class VIFParams(XOModel):
    destroy: Optional[bool] = None
    device: Optional[str] = None
    ipv4_allowed: Optional[List[str]] = None
    ipv6_allowed: Optional[List[str]] = None
    mac: Optional[str] = None
    network: Optional[str] = None


class CreateVMParams(XOModel):
    name_label: str
    template: str
    name_description: Optional[str] = None
    affinity: Optional[str] = None
    auto_poweron: Optional[bool] = None
    boot: Optional[bool] = None
    clone: Optional[bool] = None
    cloud_config: Optional[str] = None
    destroy_cloud_config_vdi: Optional[bool] = None
    install: Optional[InstallParams] = None
    memory: Optional[int] = None
    network_config: Optional[str] = None
    vdis: Optional[List[VDIParams]] = None
    vifs: Optional[List[VIFParams]] = None


class CreateNetworkParams(XOModel):
    name: str
    description: Optional[str] = None
    pif: Optional[str] = None
    mtu: Optional[int] = None
    vlan: int = 0

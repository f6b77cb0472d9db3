# xoclient/payloads/host.py
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import Field

from ..codec import UUIDOrString
from .base import XOModel


class HostCPUInfo(XOModel):
    cpu_count: Optional[str] = None
    socket_count: Optional[str] = None
    threads_per_core: Optional[str] = None
    vendor: Optional[str] = None
    speed: Optional[str] = None
    modelname: Optional[str] = None
    family: Optional[str] = None
    model: Optional[str] = None
    stepping: Optional[str] = None
    flags: Optional[str] = None


class HostCPUCores(XOModel):
    cores: int = 0
    sockets: int = 0


class HostMemory(XOModel):
    usage: int = 0
    size: int = 0


class HostCertificate(XOModel):
    fingerprint: str = ""
    not_after: Optional[int] = Field(default=None, alias="notAfter")


class Host(XOModel):
    id: Optional[UUID] = None
    uuid: Optional[str] = None
    type: Optional[str] = None
    name_label: str = ""
    name_description: str = ""
    address: Optional[str] = None
    hostname: Optional[str] = None
    build: Optional[str] = None
    version: Optional[str] = None
    product_brand: Optional[str] = Field(default=None, alias="productBrand")
    power_state: Optional[str] = None
    power_on_mode: Optional[str] = Field(default=None, alias="powerOnMode")
    cpu_info: Optional[HostCPUInfo] = Field(default=None, alias="CPUs")
    bios_strings: Optional[Dict[str, str]] = None
    cpus: Optional[HostCPUCores] = None
    memory: Optional[HostMemory] = None
    enabled: bool = False
    hvm_capable: Optional[bool] = Field(default=None, alias="hvmCapable")
    multipathing: Optional[bool] = None
    reboot_required: Optional[bool] = Field(default=None, alias="rebootRequired")
    control_domain: Optional[UUIDOrString] = Field(default=None, alias="controlDomain")
    pool: Optional[UUIDOrString] = Field(default=None, alias="$pool")
    pool_id: Optional[UUIDOrString] = Field(default=None, alias="$poolId")
    start_time: Optional[int] = Field(default=None, alias="startTime")
    agent_start_time: Optional[int] = Field(default=None, alias="agentStartTime")
    license_expiry: Optional[int] = None
    current_operations: Optional[Dict[str, Any]] = None
    other_config: Optional[Dict[str, Any]] = Field(default=None, alias="otherConfig")
    resident_vms: Optional[List[str]] = Field(default=None, alias="residentVms")
    pifs: Optional[List[str]] = Field(default=None, alias="PIFs")
    pcis: Optional[List[str]] = Field(default=None, alias="PCIs")
    pgpus: Optional[List[str]] = Field(default=None, alias="PGPUs")
    tags: Optional[List[str]] = None
    certificates: Optional[List[HostCertificate]] = None
    xapi_ref: Optional[str] = Field(default=None, alias="_xapiRef")

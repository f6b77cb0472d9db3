# xoclient/payloads/vm.py
from enum import Enum
from typing import Dict, List, Optional
from uuid import UUID

from pydantic import Field

from ..codec import UUIDOrString, Videoram
from .base import XOModel


class PowerState(str, Enum):
    HALTED = "Halted"
    RUNNING = "Running"
    PAUSED = "Paused"
    SUSPENDED = "Suspended"


class Memory(XOModel):
    dynamic: Optional[List[int]] = None
    static: Optional[List[int]] = None
    size: Optional[int] = None


class CPUs(XOModel):
    number: int = 0
    max: Optional[int] = None


class Boot(XOModel):
    firmware: Optional[str] = None
    order: Optional[str] = None


class VM(XOModel):
    id: Optional[UUID] = None
    template: Optional[UUIDOrString] = None
    name_label: str = ""
    name_description: str = ""
    power_state: Optional[PowerState] = None
    memory: Optional[Memory] = None
    cpus: Optional[CPUs] = Field(default=None, alias="CPUs")
    vifs: Optional[List[str]] = Field(default=None, alias="VIFs")
    vbds: Optional[List[str]] = Field(default=None, alias="$VBDs")
    tags: Optional[List[str]] = None
    auto_poweron: bool = False
    high_availability: Optional[str] = None
    virtualization_mode: Optional[str] = Field(default=None, alias="virtualizationMode")
    start_delay: Optional[int] = Field(default=None, alias="startDelay")
    exp_nested_hvm: Optional[bool] = Field(default=None, alias="expNestedHvm")
    boot: Optional[Boot] = None
    videoram: Optional[Videoram] = None
    vga: Optional[str] = None
    xenstore_data: Optional[Dict[str, str]] = Field(default=None, alias="xenStoreData")
    blocked_operations: Optional[Dict[str, str]] = Field(default=None, alias="blockedOperations")
    pool_id: Optional[UUIDOrString] = Field(default=None, alias="$poolId")
    container: Optional[str] = Field(default=None, alias="$container")

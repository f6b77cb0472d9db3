# xoclient/payloads/__init__.py
from .backup import (BackupJob, BackupJobMode, BackupJobType, BackupLog, BackupLogStatus, BackupSettings,
                     VMBackup)
from .host import Host
from .hub_recipe import K8sClusterOptions
from .network import Network
from .pool import CreateNetworkParams, CreateVMParams, InstallParams, Pool, VDIParams, VIFParams
from .restore import ImportOptions, RestoreLog, RestoreOptions, RestorePoint
from .schedule import Schedule
from .snapshot import Snapshot
from .storage import StorageRepository
from .task import TERMINAL_STATUSES, Task, TaskCall, TaskProperties, TaskResult, TaskStatus
from .vdi import VDI, VDIFormat, VDIType
from .vm import VM, Boot, CPUs, Memory, PowerState

__all__ = [
    "BackupJob", "BackupJobMode", "BackupJobType", "BackupLog", "BackupLogStatus", "BackupSettings", "VMBackup",
    "Host", "K8sClusterOptions", "Network",
    "CreateNetworkParams", "CreateVMParams", "InstallParams", "Pool", "VDIParams", "VIFParams",
    "ImportOptions", "RestoreLog", "RestoreOptions", "RestorePoint", "Schedule", "Snapshot",
    "StorageRepository", "TERMINAL_STATUSES", "Task", "TaskCall", "TaskProperties", "TaskResult", "TaskStatus",
    "VDI", "VDIFormat", "VDIType", "VM", "Boot", "CPUs", "Memory", "PowerState",
]

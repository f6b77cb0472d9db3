# xoclient/services/__init__.py
from .backup import BackupService
from .host import HostService
from .hub_recipe import HubRecipeService
from .jsonrpc import JsonRpcService
from .network import NetworkService
from .pool import PoolService
from .restore import RestoreService
from .schedule import ScheduleService
from .snapshot import SnapshotService
from .storage_repository import StorageRepositoryService
from .vdi import VDIService
from .vm import VMService

__all__ = [
    "BackupService", "HostService", "HubRecipeService", "JsonRpcService", "NetworkService", "PoolService",
    "RestoreService", "ScheduleService", "SnapshotService", "StorageRepositoryService", "VDIService", "VMService",
]

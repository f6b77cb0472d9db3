# xoclient/client.py
import logging
from typing import Any, Callable, Optional

from requests import Session as HTTPSession

from .config import ClientConfig
from .errors import XOError
from .legacy import LegacyClient
from .log import configure_logging
from .retry import Retrier
from .services import (BackupService, HostService, HubRecipeService, JsonRpcService, NetworkService, PoolService,
                       RestoreService, ScheduleService, SnapshotService, StorageRepositoryService, VDIService,
                       VMService)
from .session import Session
from .tasks import TaskService

logger = logging.getLogger(__name__)


class XOClient:
    """
    Entry point: one signed-in session to an XO server, with a service per resource.

        with XOClient.from_env() as xo:
            pool = xo.pool().get_all(limit=1)[0]
            vm_id = xo.pool().create_vm(pool.id, CreateVMParams(name_label="vm1", template=tpl_id))
            xo.vm().start(vm_id)

    Construction dials the JSON-RPC socket and signs in; an authentication
    failure raises AuthError and leaves nothing open.
    """

    def __init__(self, config: ClientConfig, *, http_session: Optional[HTTPSession] = None,
                 ws_connect: Optional[Callable[..., Any]] = None, retrier: Optional[Retrier] = None):
        self.config = config
        configure_logging(config.development, config.logger)
        self.session = Session(config, http_session=http_session, ws_connect=ws_connect, retrier=retrier)
        try:
            self.session.open()
        except XOError:
            self.session.close()
            raise
        logger.info("connected to %s", config.url)

        rest = self.session.rest
        self._tasks = TaskService(rest)
        self._jsonrpc = JsonRpcService(self.session.rpc)
        self._vm = VMService(rest, self._tasks)
        self._pool = PoolService(rest, self._tasks)
        self._host = HostService(rest, self._tasks)
        self._network = NetworkService(rest, self._tasks)
        self._vdi = VDIService(rest, self._tasks)
        self._storage_repository = StorageRepositoryService(rest, self._tasks)
        self._snapshot = SnapshotService(rest, self._tasks)
        self._restore = RestoreService(rest, self._tasks)
        self._backup = BackupService(rest, self._tasks)
        self._schedule = ScheduleService(self._jsonrpc)
        self._hub_recipe = HubRecipeService(self._jsonrpc)
        self._legacy = LegacyClient(self.session.rpc)

    @classmethod
    def from_env(cls, **kwargs) -> "XOClient":
        return cls(ClientConfig.from_env(), **kwargs)

    def vm(self) -> VMService:
        return self._vm

    def pool(self) -> PoolService:
        return self._pool

    def host(self) -> HostService:
        return self._host

    def network(self) -> NetworkService:
        return self._network

    def vdi(self) -> VDIService:
        return self._vdi

    def storage_repository(self) -> StorageRepositoryService:
        return self._storage_repository

    def snapshot(self) -> SnapshotService:
        return self._snapshot

    def restore(self) -> RestoreService:
        return self._restore

    def backup(self) -> BackupService:
        return self._backup

    def schedule(self) -> ScheduleService:
        return self._schedule

    def task(self) -> TaskService:
        return self._tasks

    def jsonrpc(self) -> JsonRpcService:
        return self._jsonrpc

    def hub_recipe(self) -> HubRecipeService:
        return self._hub_recipe

    def legacy(self) -> LegacyClient:
        return self._legacy

    def close(self):
        self.session.close()
        logger.info("client for %s closed", self.config.url)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False

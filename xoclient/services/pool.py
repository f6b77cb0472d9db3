# xoclient/services/pool.py
import logging
from typing import List, Optional
from uuid import UUID

from ..context import CancelScope
from ..errors import ValidationFailed, XOError
from ..payloads.pool import CreateNetworkParams, CreateVMParams, Pool
from ..payloads.task import Task
from .base import ObjectID, RestService, created_id, list_params, require_id, require_text

logger = logging.getLogger(__name__)

MAX_VLAN = 4094


class PoolService(RestService):
    resource = "pools"

    def get(self, pool_id: ObjectID, scope: Optional[CancelScope] = None) -> Pool:
        return self.fetch(pool_id, Pool, scope=scope)

    def get_all(self, limit: Optional[int] = None, scope: Optional[CancelScope] = None) -> List[Pool]:
        return self.fetch_all(Pool, list_params(limit), scope=scope)

    def create_vm(self, pool_id: ObjectID, params: CreateVMParams, scope: Optional[CancelScope] = None) -> UUID:
        """Create a VM on the pool and return its id once the creation task succeeded."""
        ident = require_id(pool_id, "pool id")
        require_text(params.name_label, "VM name")
        require_text(params.template, "template")
        return self._create(ident, "create_vm", params, f"create VM {params.name_label!r}", scope)

    def create_network(self, pool_id: ObjectID, params: CreateNetworkParams,
                       scope: Optional[CancelScope] = None) -> UUID:
        ident = require_id(pool_id, "pool id")
        validate_network_params(params)
        return self._create(ident, "create_network", params, f"create network {params.name!r}", scope)

    def emergency_shutdown(self, pool_id: ObjectID, scope: Optional[CancelScope] = None) -> Optional[Task]:
        return self.run_action(pool_id, "emergency_shutdown", scope=scope)

    def rolling_reboot(self, pool_id: ObjectID, scope: Optional[CancelScope] = None) -> Optional[Task]:
        return self.run_action(pool_id, "rolling_reboot", scope=scope)

    def rolling_update(self, pool_id: ObjectID, scope: Optional[CancelScope] = None) -> Optional[Task]:
        return self.run_action(pool_id, "rolling_update", scope=scope)

    def _create(self, pool_id: str, verb: str, params, operation: str, scope: Optional[CancelScope]) -> UUID:
        path = self.path(pool_id).actions_group().action(verb).build()
        try:
            envelope = self.rest.post(path, body=params, scope=scope)
            logger.debug("%s on pool %s answered %r", verb, pool_id, envelope)
            task = self.tasks.handle_task_response(envelope, wait_for_completion=True, scope=scope)
            new_id = created_id(task, operation)
        except XOError as exc:
            logger.error("%s on pool %s failed: %s", operation, pool_id, exc)
            raise
        logger.info("%s on pool %s: %s", operation, pool_id, new_id)
        return new_id


def validate_network_params(params: CreateNetworkParams):
    require_text(params.name, "network name")
    if not 0 <= params.vlan <= MAX_VLAN:
        raise ValidationFailed(f"VLAN must be between 0 and {MAX_VLAN}, got {params.vlan}")
    if params.mtu is not None and params.mtu <= 0:
        raise ValidationFailed(f"MTU must be positive, got {params.mtu}")

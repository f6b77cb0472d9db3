# xoclient/services/snapshot.py
import logging
from typing import List, Optional

from ..context import CancelScope
from ..errors import XOError
from ..payloads.snapshot import Snapshot
from .base import ObjectID, RestService, created_id, list_params, require_id, require_text

logger = logging.getLogger(__name__)


class SnapshotService(RestService):
    resource = "vm-snapshots"

    def get_by_id(self, snapshot_id: ObjectID, scope: Optional[CancelScope] = None) -> Snapshot:
        return self.fetch(snapshot_id, Snapshot, scope=scope)

    def list_by_vm(self, vm_id: ObjectID, limit: Optional[int] = None,
                   scope: Optional[CancelScope] = None) -> List[Snapshot]:
        """Snapshots of one VM. The server filter is applied again locally."""
        ident = require_id(vm_id, "VM id")
        params = list_params(limit, f"$snapshot_of:{ident}")
        snapshots = [s for s in self.fetch_all(Snapshot, params, scope=scope) if str(s.snapshot_of) == ident]
        logger.debug("VM %s has %d snapshots", ident, len(snapshots))
        return snapshots

    def create(self, vm_id: ObjectID, name: str, scope: Optional[CancelScope] = None) -> Snapshot:
        """Snapshot the VM, wait for the task and return the new snapshot."""
        ident = require_id(vm_id, "VM id")
        body = {"name_label": require_text(name, "snapshot name")}
        path = f"vms/{ident}/actions/snapshot"
        try:
            envelope = self.rest.post(path, body=body, scope=scope)
            task = self.tasks.handle_task_response(envelope, wait_for_completion=True, scope=scope)
            snapshot_id = created_id(task, f"snapshot VM {ident}")
        except XOError as exc:
            logger.error("failed to snapshot VM %s: %s", ident, exc)
            raise
        logger.info("snapshot %s of VM %s created", snapshot_id, ident)
        return self.get_by_id(snapshot_id, scope=scope)

    def delete(self, snapshot_id: ObjectID, scope: Optional[CancelScope] = None):
        ident = require_id(snapshot_id, "snapshot id")
        envelope = self.rest.delete(self.path(ident).build(), scope=scope)
        self.settle(envelope, f"delete snapshot {ident}", scope)
        logger.info("snapshot %s deleted", ident)

    def revert(self, vm_id: ObjectID, snapshot_id: ObjectID, scope: Optional[CancelScope] = None):
        vm = require_id(vm_id, "VM id")
        snapshot = require_id(snapshot_id, "snapshot id")
        path = self.path().actions_group().action("revert").build()
        envelope = self.rest.post(path, body={"vm": vm, "snapshot": snapshot}, scope=scope)
        self.settle(envelope, f"revert VM {vm} to snapshot {snapshot}", scope)
        logger.info("VM %s reverted to snapshot %s", vm, snapshot)

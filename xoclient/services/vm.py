# xoclient/services/vm.py
import logging
from typing import List, Optional

from ..context import CancelScope
from ..errors import ValidationFailed, XOError
from ..payloads.pool import CreateVMParams, VIFParams
from ..payloads.task import Task
from ..payloads.vm import VM
from .base import ObjectID, RestService, created_id, list_params, require_id, require_text

logger = logging.getLogger(__name__)


class VMService(RestService):
    resource = "vms"

    def get_by_id(self, vm_id: ObjectID, scope: Optional[CancelScope] = None) -> VM:
        return self.fetch(vm_id, VM, scope=scope)

    def list(self, limit: Optional[int] = None, filter: Optional[str] = None, fields: str = "*",
             scope: Optional[CancelScope] = None) -> List[VM]:
        return self.fetch_all(VM, list_params(limit, filter, fields), scope=scope)

    def create(self, vm: VM, scope: Optional[CancelScope] = None) -> VM:
        """
        Create ``vm`` from its template on its pool, wait for the creation task
        and return the VM as the server now sees it.
        """
        if not vm.pool_id:
            raise ValidationFailed("pool id is required to create a VM")
        pool_id = str(vm.pool_id)
        if not vm.template:
            raise ValidationFailed("template is required to create a VM")
        params = CreateVMParams(
            name_label=require_text(vm.name_label, "VM name"),
            name_description=vm.name_description or None,
            template=str(vm.template),
            boot=False,
            vifs=[VIFParams(network=n) for n in vm.vifs] if vm.vifs else None,
        )
        path = f"pools/{pool_id}/actions/create_vm"
        logger.debug("creating VM %r on pool %s", vm.name_label, pool_id)
        try:
            envelope = self.rest.post(path, body=params, scope=scope)
            task = self.tasks.handle_task_response(envelope, wait_for_completion=True, scope=scope)
            vm_id = created_id(task, f"create VM {vm.name_label!r}")
        except XOError as exc:
            logger.error("failed to create VM %r on pool %s: %s", vm.name_label, pool_id, exc)
            raise
        logger.info("VM %s created on pool %s", vm_id, pool_id)
        return self.get_by_id(vm_id, scope=scope)

    def update(self, vm: VM, scope: Optional[CancelScope] = None) -> VM:
        if vm.id is None:
            raise ValidationFailed("VM id is required to update a VM")
        path = self.path(vm.id).build()
        return self.rest.put(path, body=vm.to_payload(), out=VM, scope=scope)

    def delete(self, vm_id: ObjectID, scope: Optional[CancelScope] = None):
        ident = require_id(vm_id, "VM id")
        self.settle(self.rest.delete(self.path(ident).build(), scope=scope), f"delete VM {ident}", scope)
        logger.info("VM %s deleted", ident)

    # ------------------ power actions ------------------

    def start(self, vm_id: ObjectID, scope: Optional[CancelScope] = None) -> Optional[Task]:
        return self.run_action(vm_id, "start", scope=scope)

    def clean_shutdown(self, vm_id: ObjectID, scope: Optional[CancelScope] = None) -> Optional[Task]:
        return self.run_action(vm_id, "clean_shutdown", scope=scope)

    def hard_shutdown(self, vm_id: ObjectID, scope: Optional[CancelScope] = None) -> Optional[Task]:
        return self.run_action(vm_id, "hard_shutdown", scope=scope)

    def clean_reboot(self, vm_id: ObjectID, scope: Optional[CancelScope] = None) -> Optional[Task]:
        return self.run_action(vm_id, "clean_reboot", scope=scope)

    def hard_reboot(self, vm_id: ObjectID, scope: Optional[CancelScope] = None) -> Optional[Task]:
        return self.run_action(vm_id, "hard_reboot", scope=scope)

    def suspend(self, vm_id: ObjectID, scope: Optional[CancelScope] = None) -> Optional[Task]:
        return self.run_action(vm_id, "suspend", scope=scope)

    def resume(self, vm_id: ObjectID, scope: Optional[CancelScope] = None) -> Optional[Task]:
        return self.run_action(vm_id, "resume", scope=scope)

    def snapshot(self, vm_id: ObjectID, name: str, scope: Optional[CancelScope] = None) -> Optional[Task]:
        body = {"name_label": require_text(name, "snapshot name")}
        return self.run_action(vm_id, "snapshot", body=body, scope=scope)

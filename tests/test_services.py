# tests/test_services.py
import io
from urllib.parse import unquote, urlsplit
from uuid import UUID

import pytest

from xoclient.errors import DecodeError, InvariantError, NotFoundError, ServerError, ValidationFailed
from xoclient.payloads.backup import BackupJob, BackupJobType
from xoclient.payloads.pool import CreateNetworkParams, CreateVMParams
from xoclient.payloads.restore import ImportOptions
from xoclient.payloads.vm import VM
from xoclient.services import (BackupService, NetworkService, PoolService, RestoreService, SnapshotService,
                               StorageRepositoryService, VDIService, VMService)
from xoclient.services.base import list_params, require_id

from .conftest import query_of

POOL = "6b1c1a52-2f2a-4a0e-9f52-6b8d6d1c2a11"
VM_ID = "1f3b7c2e-5d8a-4e1b-9c6f-0a2b3c4d5e6f"
NEW_ID = "9a7d7f5e-3b8c-4c1e-8f0a-1b2c3d4e5f60"
TEMPLATE = "0c1d2e3f-4a5b-4c6d-8e7f-8091a2b3c4d5"


def done(result=NEW_ID, task_id="t1"):
    return 200, {"id": task_id, "status": "success", "result": result}


@pytest.fixture
def vms(rest, tasks):
    return VMService(rest, tasks)


@pytest.fixture
def pools(rest, tasks):
    return PoolService(rest, tasks)


# ------------------ helpers ------------------

def test_require_id():
    assert require_id(UUID(VM_ID), "VM id") == VM_ID
    assert require_id(" abc ", "VM id") == "abc"
    for bad in ("", "  ", None, 42):
        with pytest.raises(ValidationFailed):
            require_id(bad, "VM id")


def test_list_params():
    assert list_params() == {"fields": "*"}
    assert list_params(10, "power_state:Running") == {"fields": "*", "limit": 10, "filter": "power_state:Running"}
    with pytest.raises(ValidationFailed):
        list_params(-1)


# ------------------ pools ------------------

def test_create_network_accepts_highest_vlan(pools, stub):
    stub.on("POST", f"pools/{POOL}/actions/create_network", (202, "/rest/v0/tasks/t1"))
    stub.on("GET", "tasks/t1", done())

    network_id = pools.create_network(POOL, CreateNetworkParams(name="storage", vlan=4094, pif="pif-1"))

    assert network_id == UUID(NEW_ID)


@pytest.mark.parametrize("params", [
    CreateNetworkParams(name="storage", vlan=4095),
    CreateNetworkParams(name="storage", vlan=-1),
    CreateNetworkParams(name="", vlan=10),
    CreateNetworkParams(name="storage", vlan=10, mtu=0),
])
def test_create_network_validation(pools, stub, params):
    with pytest.raises(ValidationFailed):
        pools.create_network(POOL, params)
    assert stub.calls() == []


def test_create_vm_waits_for_task(pools, stub):
    stub.on("POST", f"pools/{POOL}/actions/create_vm", (202, "/rest/v0/tasks/t1"))
    stub.on("GET", "tasks/t1", (200, {"id": "t1", "status": "pending"}), done())

    vm_id = pools.create_vm(POOL, CreateVMParams(name_label="web-1", template=TEMPLATE))

    assert vm_id == UUID(NEW_ID)


def test_create_vm_failure_is_server_error(pools, stub):
    stub.on("POST", f"pools/{POOL}/actions/create_vm", (202, "/rest/v0/tasks/t1"))
    stub.on("GET", "tasks/t1", (200, {"id": "t1", "status": "failure", "message": "no space left"}))

    with pytest.raises(ServerError, match="no space left"):
        pools.create_vm(POOL, CreateVMParams(name_label="web-1", template=TEMPLATE))


def test_create_vm_with_non_uuid_result(pools, stub):
    stub.on("POST", f"pools/{POOL}/actions/create_vm", (202, "/rest/v0/tasks/t1"))
    stub.on("GET", "tasks/t1", done(result="OpaqueRef:1"))

    with pytest.raises(InvariantError):
        pools.create_vm(POOL, CreateVMParams(name_label="web-1", template=TEMPLATE))


def test_pool_list(pools, stub):
    stub.on("GET", "pools", (200, [{"id": POOL, "name_label": "lab", "HA_enabled": True}]))
    [pool] = pools.get_all(limit=5)
    assert pool.ha_enabled
    assert query_of(stub.calls()[0]) == {"fields": "*", "limit": "5"}


def test_rolling_reboot(pools, stub):
    stub.on("POST", f"pools/{POOL}/actions/rolling_reboot", (202, {"taskId": "t1"}))
    stub.on("GET", "tasks/t1", done(result=None))
    assert pools.rolling_reboot(POOL).succeeded


# ------------------ VMs ------------------

def test_vm_create_then_fetch(vms, stub):
    stub.on("POST", f"pools/{POOL}/actions/create_vm", (202, "/rest/v0/tasks/t1"))
    stub.on("GET", "tasks/t1", done())
    stub.on("GET", f"vms/{NEW_ID}", (200, {"id": NEW_ID, "name_label": "web-1", "power_state": "Halted"}))

    vm = vms.create(VM(name_label="web-1", template=TEMPLATE, pool_id=POOL, vifs=["net-1"]))

    assert vm.id == UUID(NEW_ID)
    body = stub.calls("POST")[0].body
    assert '"boot": false' in body
    assert '"vifs": [{"network": "net-1"}]' in body


def test_vm_create_requires_pool_and_template(vms, stub):
    with pytest.raises(ValidationFailed):
        vms.create(VM(name_label="web-1", template=TEMPLATE))
    with pytest.raises(ValidationFailed):
        vms.create(VM(name_label="web-1", pool_id=POOL))
    assert stub.calls() == []


def test_vm_list_follows_hrefs(vms, stub):
    stub.on("GET", "vms", (200, [f"/rest/v0/vms/{VM_ID}", "/rest/v0/vms/gone"]))
    stub.on("GET", f"vms/{VM_ID}", (200, {"id": VM_ID, "name_label": "web-1"}))

    found = vms.list()

    assert [v.id for v in found] == [UUID(VM_ID)]


def test_vm_list_rejects_non_list(vms, stub):
    stub.on("GET", "vms", (200, {"not": "a list"}))
    with pytest.raises(DecodeError):
        vms.list()


@pytest.mark.parametrize("verb", ["start", "clean_shutdown", "hard_shutdown", "clean_reboot", "hard_reboot",
                                  "suspend", "resume"])
def test_power_actions(vms, stub, verb):
    stub.on("POST", f"vms/{VM_ID}/actions/{verb}", (202, "/rest/v0/tasks/t1"))
    stub.on("GET", "tasks/t1", done(result=None))

    task = getattr(vms, verb)(VM_ID)

    assert task.succeeded


def test_power_action_plain_success(vms, stub):
    stub.on("POST", f"vms/{VM_ID}/actions/start", (200, {"success": True}))
    assert vms.start(VM_ID) is None


def test_power_action_unsuccessful_status(vms, stub):
    stub.on("POST", f"vms/{VM_ID}/actions/start", (200, {"success": False}))
    with pytest.raises(ServerError):
        vms.start(VM_ID)


def test_power_action_task_failure(vms, stub):
    stub.on("POST", f"vms/{VM_ID}/actions/start", (202, "/rest/v0/tasks/t1"))
    stub.on("GET", "tasks/t1", (200, {"id": "t1", "status": "failure",
                                      "result": {"code": "VM_BAD_POWER_STATE", "message": "already running"}}))
    with pytest.raises(ServerError, match="already running"):
        vms.start(VM_ID)


def test_vm_missing(vms, stub):
    with pytest.raises(NotFoundError):
        vms.get_by_id(VM_ID)


def test_tags(vms, stub):
    stub.on("PUT", f"vms/{VM_ID}/tags/prod", (204, None))
    stub.on("DELETE", f"vms/{VM_ID}/tags/prod", (204, None))

    vms.add_tag(VM_ID, "prod")
    vms.remove_tag(VM_ID, "prod")

    assert [r.method for r in stub.calls()] == ["PUT", "DELETE"]
    with pytest.raises(ValidationFailed):
        vms.add_tag(VM_ID, "")


def test_add_then_remove_tag_restores_tags(vms, stub):
    tags = {"prod", "web"}

    def tag_of(request):
        return unquote(urlsplit(request.url).path.rsplit("/", 1)[-1])

    def add(request):
        tags.add(tag_of(request))
        return 204, None

    def remove(request):
        tags.discard(tag_of(request))
        return 204, None

    stub.on("GET", f"vms/{VM_ID}", lambda request: (200, {"id": VM_ID, "tags": sorted(tags)}))
    stub.on("PUT", f"vms/{VM_ID}/tags/backup%20nightly", add)
    stub.on("DELETE", f"vms/{VM_ID}/tags/backup%20nightly", remove)
    before = vms.get_by_id(VM_ID).tags

    vms.add_tag(VM_ID, "backup nightly")
    assert "backup nightly" in vms.get_by_id(VM_ID).tags
    vms.remove_tag(VM_ID, "backup nightly")

    assert vms.get_by_id(VM_ID).tags == before


def test_vm_delete(vms, stub):
    stub.on("DELETE", f"vms/{VM_ID}", (204, None))
    vms.delete(VM_ID)
    assert len(stub.calls("DELETE")) == 1


# ------------------ storage ------------------

def test_sr_list_builds_filter(rest, tasks, stub):
    stub.on("GET", "srs", (200, [{"id": NEW_ID, "name_label": "Local", "SR_type": "lvm", "$poolId": POOL}]))
    srs = StorageRepositoryService(rest, tasks)

    [sr] = srs.list({"pool_id": POOL, "sr_type": "lvm"})

    assert sr.sr_type == "lvm"
    assert query_of(stub.calls()[0])["filter"] == f"$poolId:{POOL},SR_type:lvm"


def test_sr_list_rejects_unknown_keys(rest, tasks):
    with pytest.raises(ValidationFailed):
        StorageRepositoryService(rest, tasks).list({"colour": "blue"})


def test_vdi_export_and_import(rest, tasks, stub):
    vdis = VDIService(rest, tasks)
    stub.on("GET", f"vdis/{VM_ID}.vhd", (200, b"\x00" * 2048))
    stub.on("PUT", f"vdis/{VM_ID}.raw", (202, "/rest/v0/tasks/t1"))
    stub.on("GET", "tasks/t1", done(result=None))
    sink = io.BytesIO()

    assert vdis.export(VM_ID, "vhd", sink) == 2048
    assert vdis.import_content(VM_ID, "raw", io.BytesIO(b"abc"), 3).succeeded

    with pytest.raises(ValidationFailed):
        vdis.export(VM_ID, "qcow2", sink)
    with pytest.raises(ValidationFailed):
        vdis.import_content(VM_ID, "raw", io.BytesIO(b""), 0)


def test_vdi_migrate(rest, tasks, stub):
    stub.on("POST", f"vdis/{VM_ID}/actions/migrate", (202, "/rest/v0/tasks/t1"))
    stub.on("GET", "tasks/t1", done(result=None))
    VDIService(rest, tasks).migrate(VM_ID, NEW_ID)
    assert f'"srId": "{NEW_ID}"' in stub.calls("POST")[0].body


def test_network_delete(rest, tasks, stub):
    stub.on("DELETE", f"networks/{NEW_ID}", (202, "/rest/v0/tasks/t1"))
    stub.on("GET", "tasks/t1", done(result=None))
    NetworkService(rest, tasks).delete(NEW_ID)
    assert len(stub.calls("GET", "tasks/t1")) == 1


# ------------------ snapshots ------------------

def test_snapshot_create(rest, tasks, stub):
    stub.on("POST", f"vms/{VM_ID}/actions/snapshot", (202, "/rest/v0/tasks/t1"))
    stub.on("GET", "tasks/t1", done())
    stub.on("GET", f"vm-snapshots/{NEW_ID}", (200, {"id": NEW_ID, "name_label": "pre", "$snapshot_of": VM_ID}))

    snapshot = SnapshotService(rest, tasks).create(VM_ID, "pre")

    assert snapshot.snapshot_of == UUID(VM_ID)


def test_snapshot_list_filters_locally(rest, tasks, stub):
    stub.on("GET", "vm-snapshots", (200, [
        {"id": NEW_ID, "$snapshot_of": VM_ID},
        {"id": TEMPLATE, "$snapshot_of": POOL},
    ]))
    found = SnapshotService(rest, tasks).list_by_vm(VM_ID)
    assert [s.id for s in found] == [UUID(NEW_ID)]
    assert query_of(stub.calls()[0])["filter"] == f"$snapshot_of:{VM_ID}"


def test_snapshot_revert(rest, tasks, stub):
    stub.on("POST", "vm-snapshots/actions/revert", (200, True))
    SnapshotService(rest, tasks).revert(VM_ID, NEW_ID)
    assert len(stub.calls("POST")) == 1


# ------------------ backups ------------------

def test_backup_jobs_skip_missing_collections(rest, tasks, stub):
    stub.on("GET", "backup/jobs/vm", (200, [{"id": "j1", "name": "nightly", "mode": "delta", "vms": "a"}]))
    stub.on("GET", "backup/jobs/mirror", (200, []))

    jobs = BackupService(rest, tasks).list_jobs()

    assert [(j.name, j.job_type) for j in jobs] == [("nightly", BackupJobType.VM)]


def test_backup_job_lookup_tries_each_type(rest, tasks, stub):
    stub.on("GET", "backup/jobs/metadata/j2", (200, {"id": "j2", "name": "config"}))
    job = BackupService(rest, tasks).get_job("j2")
    assert job.job_type is BackupJobType.METADATA
    with pytest.raises(NotFoundError):
        BackupService(rest, tasks).get_job("j404")


def test_backup_job_create(rest, tasks, stub):
    stub.on("POST", "backup/jobs/vm", (200, {"id": "j3", "name": "weekly", "vms": {"id": {"__or": ["a", "b"]}}}))

    job = BackupService(rest, tasks).create_job(BackupJob(name="weekly", vms=["a", "b"]))

    assert job.id == "j3"
    assert '"vms": {"id": {"__or": ["a", "b"]}}' in stub.calls("POST")[0].body


def test_backup_run_returns_task_id(rest, tasks, stub):
    stub.on("POST", "backup/jobs/vm/j1/actions/run", (202, "/rest/v0/tasks/run-1"))
    assert BackupService(rest, tasks).run_job("j1", "vm") == "run-1"


def test_vm_backups_from_logs(rest, tasks, stub):
    stub.on("GET", "backup/logs", (200, [
        {"id": "l1", "status": "success", "jobId": "j1", "end": 1714564800000,
         "tasks": [{"data": {"type": "VM", "id": VM_ID}}]},
        {"id": "l2", "status": "failure", "jobId": "j1", "tasks": [{"data": {"type": "VM", "id": VM_ID}}]},
        {"id": "l3", "status": "success", "jobId": "j1", "tasks": [{"data": {"type": "VM", "id": NEW_ID}}]},
    ]))

    backups = BackupService(rest, tasks).list_vm_backups(VM_ID)
    points = RestoreService(rest, tasks).get_restore_points(VM_ID)

    assert [b.id for b in backups] == ["l1"]
    assert [p.id for p in points] == ["l1"]


def test_restore_and_import(rest, tasks, stub):
    stub.on("POST", "backup/restore/l1", (202, "/rest/v0/tasks/t1"))
    stub.on("POST", "backup/import", (202, "/rest/v0/tasks/t2"))
    stub.on("GET", "tasks/t1", done(result=None))
    stub.on("GET", "tasks/t2", (200, {"id": "t2", "status": "running"}))
    restores = RestoreService(rest, tasks)

    assert restores.restore_vm("l1").succeeded
    task = restores.import_vm(ImportOptions(sr_id=NEW_ID), wait_for_completion=False)
    assert task.id == "t2"
    assert not task.is_terminal

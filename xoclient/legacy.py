# xoclient/legacy.py
"""
Legacy JSON-RPC view of the XO server: lookup by example, tags and raw calls.

    legacy = client.legacy()
    pools = legacy.get_pool_by_name("lab-1")
    srs = legacy.get_storage_repository(StorageRepository(name_label="Local", pool_id=pools[0].id))
"""
import logging
from typing import Any, Dict, List, NamedTuple, Optional

from pydantic import Field

from .codec import IntOrString
from .context import CancelScope
from .errors import DecodeError, NotFoundError, ValidationFailed
from .jsonrpc import JsonRpcClient
from .lookup import LookupModel, find_all_matching, get_all_objects_of_type
from .payloads.base import XOModel

logger = logging.getLogger(__name__)


class PoolCpuInfo(XOModel):
    cores: IntOrString = 0
    sockets: IntOrString = 0


class Pool(LookupModel):
    kind = "pool"
    match_fields = ("name_label", "master")

    name_label: str = ""
    description: str = Field(default="", alias="name_description")
    cpus: Optional[PoolCpuInfo] = None
    default_sr: str = Field(default="", alias="default_SR")
    master: str = ""


class StorageRepository(LookupModel):
    kind = "SR"
    match_fields = ("name_label", "pool_id", "sr_type", "container", "uuid")

    uuid: str = ""
    name_label: str = ""
    pool_id: str = Field(default="", alias="$poolId")
    sr_type: str = Field(default="", alias="SR_type")
    container: str = Field(default="", alias="$container")
    physical_usage: IntOrString = 0
    size: IntOrString = 0
    usage: IntOrString = 0
    tags: List[str] = Field(default_factory=list)


class TemplateBoot(XOModel):
    firmware: str = ""
    order: str = ""


class TemplateDisk(XOModel):
    bootable: bool = False
    device: str = ""
    size: IntOrString = 0
    type: str = ""
    sr: str = Field(default="", alias="SR")


class TemplateInfo(XOModel):
    arch: str = ""
    disks: List[TemplateDisk] = Field(default_factory=list)


class Template(LookupModel):
    kind = "VM-template"
    match_fields = ("name_label", "pool_id", "uuid")

    uuid: str = ""
    boot: Optional[TemplateBoot] = None
    name_label: str = ""
    pool_id: str = Field(default="", alias="$poolId")
    template_info: Optional[TemplateInfo] = None
    # VBD ids
    vbds: List[str] = Field(default_factory=list, alias="$VBDs")

    @property
    def is_disk_template(self) -> bool:
        return bool(self.vbds) and self.name_label != "Other install media"


class Network(LookupModel):
    kind = "network"
    match_fields = ("name_label", "pool_id", "bridge", "uuid")

    uuid: str = ""
    name_label: str = ""
    name_description: str = ""
    bridge: str = ""
    mtu: IntOrString = 0
    pool_id: str = Field(default="", alias="$poolId")
    pifs: List[str] = Field(default_factory=list, alias="PIFs")
    automatic: bool = False
    default_is_locked: bool = Field(default=False, alias="defaultIsLocked")
    tags: List[str] = Field(default_factory=list)


class Host(LookupModel):
    kind = "host"
    match_fields = ("name_label", "pool_id", "address", "hostname", "uuid")

    uuid: str = ""
    name_label: str = ""
    name_description: str = ""
    address: str = ""
    hostname: str = ""
    power_state: str = ""
    pool_id: str = Field(default="", alias="$poolId")
    tags: List[str] = Field(default_factory=list)


class Bond(LookupModel):
    kind = "bond"
    match_fields = ("master", "mode", "uuid", "pool_id")

    master: str = ""
    mode: str = ""
    uuid: str = ""
    pool_id: str = Field(default="", alias="$poolId")


class VBD(LookupModel):
    kind = "VBD"
    match_fields = ("vm_id", "vdi_id", "position", "device", "pool_id")

    uuid: str = ""
    attached: bool = False
    bootable: bool = False
    device: Optional[str] = None
    is_cd_drive: bool = False
    position: str = ""
    read_only: bool = False
    vdi_id: str = Field(default="", alias="VDI")
    vm_id: str = Field(default="", alias="VM")
    pool_id: str = Field(default="", alias="$poolId")


class TaggedObject(NamedTuple):
    id: str
    type: str


class LegacyClient:
    """JSON-RPC helpers sharing the client's signed-in connection."""

    def __init__(self, rpc: JsonRpcClient):
        self.rpc = rpc

    def call(self, method: str, params: Optional[Dict[str, Any]] = None, out: Any = None,
             scope: Optional[CancelScope] = None):
        return self.rpc.call(method, params, out, scope=scope)

    def get_all_objects_of_type(self, model, scope: Optional[CancelScope] = None) -> list:
        return get_all_objects_of_type(self.rpc, model, scope=scope)

    def find_from_get_all_objects(self, example: LookupModel, scope: Optional[CancelScope] = None) -> list:
        found = find_all_matching(self.rpc, example, scope=scope)
        logger.debug("%d %s objects matched", len(found), example.kind)
        return found

    # ------------------ pools ------------------

    def get_pools(self, example: Optional[Pool] = None) -> List[Pool]:
        return self.find_from_get_all_objects(example or Pool())

    def get_pool_by_name(self, name: str) -> List[Pool]:
        if not name:
            raise ValidationFailed("pool name must not be empty")
        return self.find_from_get_all_objects(Pool(name_label=name))

    # ------------------ storage ------------------

    def get_storage_repository(self, example: StorageRepository) -> List[StorageRepository]:
        return self.find_from_get_all_objects(example)

    def get_storage_repository_by_id(self, sr_id: str) -> StorageRepository:
        if not sr_id:
            raise ValidationFailed("storage repository id must not be empty")
        srs = self.find_from_get_all_objects(StorageRepository(id=sr_id))
        if not srs:
            raise NotFoundError(f"storage repository {sr_id} not found")
        if len(srs) > 1:
            raise DecodeError(f"found {len(srs)} storage repositories with id {sr_id}")
        return srs[0]

    # ------------------ templates ------------------

    def get_template(self, example: Template) -> List[Template]:
        return self.find_from_get_all_objects(example)

    def get_template_vbds(self, template: Template) -> Dict[str, VBD]:
        """VBDs attached to ``template``, keyed by position."""
        if not template.id:
            raise ValidationFailed("template id must not be empty")
        vbds = {}
        for vbd in self.get_all_objects_of_type(VBD):
            if vbd.vm_id == template.id:
                vbds[vbd.position] = vbd
        return vbds

    # ------------------ network / hosts ------------------

    def get_bond(self, example: Bond) -> Bond:
        bonds = self.find_from_get_all_objects(example)
        if len(bonds) != 1:
            raise NotFoundError(f"expected a single bond matching {example.to_payload()}, found {len(bonds)}")
        return bonds[0]

    def get_bonds(self, example: Bond) -> List[Bond]:
        return self.find_from_get_all_objects(example)

    def get_networks(self, example: Network) -> List[Network]:
        return self.find_from_get_all_objects(example)

    def get_hosts(self, example: Host) -> List[Host]:
        return self.find_from_get_all_objects(example)

    # ------------------ tags ------------------

    def add_tag(self, object_id: str, tag: str):
        self._check_tag(object_id, tag)
        self.rpc.call("tag.add", {"id": object_id, "tag": tag})
        logger.info("tag %r added to %s", tag, object_id)

    def remove_tag(self, object_id: str, tag: str):
        self._check_tag(object_id, tag)
        self.rpc.call("tag.remove", {"id": object_id, "tag": tag})
        logger.info("tag %r removed from %s", tag, object_id)

    def get_objects_with_tags(self, tags: List[str]) -> List[TaggedObject]:
        if not tags:
            raise ValidationFailed("at least one tag is required")
        result = self.rpc.call("xo.getAllObjects", {"filter": {"tags": list(tags)}})
        if result is None:
            return []
        if not isinstance(result, dict):
            raise DecodeError(f"xo.getAllObjects returned {type(result).__name__}, expected an object map")
        found = []
        for obj in result.values():
            if not isinstance(obj, dict):
                raise DecodeError("xo.getAllObjects returned a non-object entry")
            obj_id, obj_type = obj.get("id"), obj.get("type")
            if not isinstance(obj_id, str) or not isinstance(obj_type, str):
                raise DecodeError(f"object without id or type: {obj!r:.200}")
            found.append(TaggedObject(obj_id, obj_type))
        logger.debug("found %d objects tagged %s", len(found), tags)
        return found

    @staticmethod
    def _check_tag(object_id: str, tag: str):
        if not object_id:
            raise ValidationFailed("object id must not be empty")
        if not tag:
            raise ValidationFailed("tag must not be empty")

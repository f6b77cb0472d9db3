# xoclient/services/vdi.py
import logging
from typing import BinaryIO, List, Optional, Union

from ..context import CancelScope
from ..errors import ValidationFailed, XOError
from ..payloads.task import Task
from ..payloads.vdi import VDI, VDIFormat
from .base import ObjectID, RestService, list_params, require_id

logger = logging.getLogger(__name__)


def _format(value: Union[VDIFormat, str]) -> VDIFormat:
    try:
        return VDIFormat(value)
    except ValueError:
        raise ValidationFailed(f"unsupported VDI format {value!r}, expected raw or vhd") from None


class VDIService(RestService):
    resource = "vdis"

    def get(self, vdi_id: ObjectID, scope: Optional[CancelScope] = None) -> VDI:
        return self.fetch(vdi_id, VDI, scope=scope)

    def get_all(self, limit: Optional[int] = None, filter: Optional[str] = None,
                scope: Optional[CancelScope] = None) -> List[VDI]:
        return self.fetch_all(VDI, list_params(limit, filter), scope=scope)

    def delete(self, vdi_id: ObjectID, scope: Optional[CancelScope] = None):
        ident = require_id(vdi_id, "VDI id")
        self.settle(self.rest.delete(self.path(ident).build(), scope=scope), f"delete VDI {ident}", scope)
        logger.info("VDI %s deleted", ident)

    def migrate(self, vdi_id: ObjectID, sr_id: ObjectID, scope: Optional[CancelScope] = None) -> Optional[Task]:
        """Move the VDI to another SR and wait for the migration task."""
        body = {"srId": require_id(sr_id, "SR id")}
        return self.run_action(vdi_id, "migrate", body=body, scope=scope)

    def get_tasks(self, vdi_id: ObjectID, limit: Optional[int] = None, filter: Optional[str] = None,
                  scope: Optional[CancelScope] = None) -> List[Task]:
        ident = require_id(vdi_id, "VDI id")
        path = self.path(ident, "tasks").build()
        return self.fetch_all(Task, list_params(limit, filter), path=path, scope=scope)

    def export(self, vdi_id: ObjectID, format: Union[VDIFormat, str], sink: BinaryIO,
               scope: Optional[CancelScope] = None) -> int:
        """
        Stream the VDI content into ``sink`` and return the number of bytes written.
        On failure the bytes already written stay in ``sink``.
        """
        ident = require_id(vdi_id, "VDI id")
        fmt = _format(format)
        path = f"{self.path(ident).build()}.{fmt.value}"
        try:
            written = self.rest.download(path, sink, scope=scope)
        except XOError as exc:
            logger.error("export of VDI %s as %s failed: %s", ident, fmt.value, exc)
            raise
        logger.info("exported VDI %s as %s (%d bytes)", ident, fmt.value, written)
        return written

    def import_content(self, vdi_id: ObjectID, format: Union[VDIFormat, str], reader: BinaryIO, size: int,
                       scope: Optional[CancelScope] = None):
        """Replace the VDI content with ``size`` bytes read from ``reader``."""
        ident = require_id(vdi_id, "VDI id")
        fmt = _format(format)
        if size <= 0:
            raise ValidationFailed("import size must be positive")
        path = f"{self.path(ident).build()}.{fmt.value}"
        try:
            envelope = self.rest.upload(path, reader, size, scope=scope)
        except XOError as exc:
            logger.error("import into VDI %s failed: %s", ident, exc)
            raise
        logger.info("imported %d bytes into VDI %s", size, ident)
        return self.settle(envelope, f"import into VDI {ident}", scope)

# xoclient/services/host.py
from typing import List, Optional

from ..context import CancelScope
from ..payloads.host import Host
from .base import ObjectID, RestService, list_params


class HostService(RestService):
    resource = "hosts"

    def get(self, host_id: ObjectID, scope: Optional[CancelScope] = None) -> Host:
        return self.fetch(host_id, Host, scope=scope)

    def get_all(self, limit: Optional[int] = None, filter: Optional[str] = None,
                scope: Optional[CancelScope] = None) -> List[Host]:
        return self.fetch_all(Host, list_params(limit, filter), scope=scope)

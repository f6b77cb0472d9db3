# xoclient/services/network.py
import logging
from typing import List, Optional

from ..context import CancelScope
from ..payloads.network import Network
from .base import ObjectID, RestService, list_params, require_id

logger = logging.getLogger(__name__)


class NetworkService(RestService):
    resource = "networks"

    def get(self, network_id: ObjectID, scope: Optional[CancelScope] = None) -> Network:
        return self.fetch(network_id, Network, scope=scope)

    def get_all(self, limit: Optional[int] = None, filter: Optional[str] = None,
                scope: Optional[CancelScope] = None) -> List[Network]:
        return self.fetch_all(Network, list_params(limit, filter), scope=scope)

    def delete(self, network_id: ObjectID, scope: Optional[CancelScope] = None):
        ident = require_id(network_id, "network id")
        envelope = self.rest.delete(self.path(ident).build(), scope=scope)
        self.settle(envelope, f"delete network {ident}", scope)
        logger.info("network %s deleted", ident)

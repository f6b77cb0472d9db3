# xoclient/services/storage_repository.py
import logging
from typing import Dict, List, Optional

from ..context import CancelScope
from ..errors import ValidationFailed
from ..payloads.storage import StorageRepository
from .base import ObjectID, RestService, list_params, require_id

logger = logging.getLogger(__name__)

FILTER_KEYS = frozenset({"name_label", "pool_id", "sr_type", "tags"})


def sr_filter(name_label: Optional[str] = None, pool_id: Optional[ObjectID] = None,
              sr_type: Optional[str] = None, tags: Optional[List[str]] = None) -> List[str]:
    """Build the ``filter`` clauses for an SR listing; all of them must hold."""
    clauses = []
    if name_label:
        clauses.append(f"name_label:{name_label}")
    if pool_id:
        clauses.append(f"$poolId:{pool_id}")
    if sr_type:
        clauses.append(f"SR_type:{sr_type}")
    for tag in tags or ():
        clauses.append(f"tags:{tag}")
    return clauses


class StorageRepositoryService(RestService):
    resource = "srs"

    def get_by_id(self, sr_id: ObjectID, scope: Optional[CancelScope] = None) -> StorageRepository:
        return self.fetch(sr_id, StorageRepository, scope=scope)

    def list(self, filter: Optional[Dict[str, object]] = None, limit: Optional[int] = None,
             scope: Optional[CancelScope] = None) -> List[StorageRepository]:
        """
        List SRs. ``filter`` takes the keys name_label, pool_id, sr_type and tags:

            srs.list({"pool_id": pool.id, "sr_type": "lvm"})
        """
        unknown = set(filter or {}) - FILTER_KEYS
        if unknown:
            raise ValidationFailed(f"unknown SR filter keys: {sorted(unknown)}")
        params = list_params(limit)
        clauses = sr_filter(**(filter or {}))
        if clauses:
            params["filter"] = clauses
        srs = self.fetch_all(StorageRepository, params, scope=scope)
        logger.debug("found %d storage repositories", len(srs))
        return srs

    def list_by_pool(self, pool_id: ObjectID, limit: Optional[int] = None,
                     scope: Optional[CancelScope] = None) -> List[StorageRepository]:
        return self.list({"pool_id": require_id(pool_id, "pool id")}, limit=limit, scope=scope)

# xoclient/lookup.py
"""
Find objects over JSON-RPC by example.

A lookup model is a partial object: the fields the caller sets are the query.

    find_all_matching(rpc, Pool(name_label="lab-1"))

fetches every object of the model's kind with ``xo.getAllObjects`` and keeps
those that match. ``getAllObjects`` does not guarantee the type filter is
applied server-side, so results are filtered again here.
"""
import logging
from typing import Any, ClassVar, Dict, List, Tuple, Type, TypeVar

from .codec import decode
from .errors import DecodeError
from .jsonrpc import JsonRpcClient
from .payloads.base import XOModel

logger = logging.getLogger(__name__)

M = TypeVar("M", bound="LookupModel")


def _is_zero(value: Any) -> bool:
    return value is None or value == "" or value == 0 or value == [] or value == {}


class LookupModel(XOModel):
    """
    Base for objects found by example.

    ``kind`` is the XO object type; ``match_fields`` are the scalar fields compared
    when the example sets them. ``tags`` (when the model has it) is a containment
    query: every example tag must be on the candidate.
    """

    kind: ClassVar[str] = ""
    match_fields: ClassVar[Tuple[str, ...]] = ()

    id: str = ""

    def matches(self, candidate: "LookupModel") -> bool:
        if type(candidate) is not type(self):
            return False
        if self.id:
            return self.id == candidate.id
        for name in self.match_fields:
            wanted = getattr(self, name)
            if _is_zero(wanted):
                continue
            if wanted != getattr(candidate, name):
                return False
        tags = getattr(self, "tags", None)
        if tags:
            have = set(getattr(candidate, "tags", None) or ())
            if not set(tags) <= have:
                return False
        return True


def _objects(result: Any) -> List[Dict[str, Any]]:
    if result is None:
        return []
    if isinstance(result, dict):
        items = list(result.values())
    elif isinstance(result, list):
        items = result
    else:
        raise DecodeError(f"xo.getAllObjects returned {type(result).__name__}, expected an object map")
    return [o for o in items if isinstance(o, dict)]


def get_all_objects_of_type(rpc: JsonRpcClient, model: Type[M], **kwargs) -> List[M]:
    """All objects of ``model.kind``, decoded into ``model``."""
    result = rpc.call("xo.getAllObjects", {"filter": {"type": model.kind}}, **kwargs)
    found = []
    for obj in _objects(result):
        if obj.get("type") != model.kind:
            continue
        found.append(decode(model, obj))
    logger.debug("xo.getAllObjects returned %d %s objects", len(found), model.kind)
    return found


def find_all_matching(rpc: JsonRpcClient, example: M, **kwargs) -> List[M]:
    candidates = get_all_objects_of_type(rpc, type(example), **kwargs)
    return [c for c in candidates if example.matches(c)]

# xoclient/paths.py
from typing import Any, Iterable, List, Mapping, Optional, Union
from urllib.parse import quote, urlencode
from uuid import UUID

from .errors import DecodeError

REST_PREFIX = "/rest/v0"
TASK_PREFIX = REST_PREFIX + "/tasks/"


class PathBuilder:
    """
    Fluent builder for REST resource paths, relative to /rest/v0:

        PathBuilder().resource("pools").id(pool_id).actions_group().action("create_vm").build()
        # -> "pools/<pool_id>/actions/create_vm"
    """

    def __init__(self):
        self._segments: List[str] = []

    def _add(self, segment: str) -> "PathBuilder":
        self._segments.append(str(segment))
        return self

    def resource(self, name: str) -> "PathBuilder":
        return self._add(name)

    def id(self, value: Union[UUID, str]) -> "PathBuilder":
        return self._add(str(value))

    def id_string(self, value: str) -> "PathBuilder":
        return self._add(value)

    def action(self, verb: str) -> "PathBuilder":
        return self._add(verb)

    def actions_group(self) -> "PathBuilder":
        return self._add("actions")

    def build(self) -> str:
        return "/".join(quote(s, safe="") for s in self._segments)

    def absolute(self) -> str:
        return f"{REST_PREFIX}/{self.build()}"

    def __str__(self):
        return self.build()


def _param_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, tuple, set, frozenset)):
        items = sorted(value) if isinstance(value, (set, frozenset)) else value
        return ",".join(_param_value(v) for v in items)
    return str(value)


def encode_params(params: Optional[Mapping[str, Any]]) -> str:
    """
    Encode query parameters in insertion order; None values are skipped.
    Lists are comma-joined, which is what ``fields`` and conjunctive ``filter`` expect.
    An empty mapping yields "".
    """
    if not params:
        return ""
    pairs = [(k, _param_value(v)) for k, v in params.items() if v is not None]
    if not pairs:
        return ""
    return urlencode(pairs, safe=",:*$")


def is_task_url(value: str) -> bool:
    return isinstance(value, str) and value.startswith(TASK_PREFIX)


def extract_task_id(value: str) -> str:
    value = value.strip()
    if value.startswith(TASK_PREFIX):
        return value[len(TASK_PREFIX):]
    if value.startswith("tasks/"):
        return value[len("tasks/"):]
    return value


def extract_id_from_path(path: str, resource: str) -> str:
    """
    Return the trailing ID of a resource URL such as "/rest/v0/srs/<id>".
    The prefix must name ``resource`` exactly; anything else is a DecodeError.
    """
    candidates = (f"{REST_PREFIX}/{resource}/", f"/{resource}/", f"{resource}/")
    for prefix in candidates:
        if path.startswith(prefix):
            ident = path[len(prefix):]
            if ident and "/" not in ident:
                return ident
            break
    raise DecodeError(f"{path!r} is not a {resource} resource path")


def ids_from_paths(paths: Iterable[str], resource: str) -> List[str]:
    return [extract_id_from_path(p, resource) for p in paths]

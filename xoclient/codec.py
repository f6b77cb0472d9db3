# xoclient/codec.py
"""
Decoders for the values the XO API sends in more than one shape.

Each one is an ``Annotated`` type usable directly in pydantic models:

    class Task(BaseModel):
        start: Optional[APITime] = None      # RFC3339 string or epoch millis
        videoram: Videoram = 0               # 8, "8" or ""

``decode(tp, data)`` validates raw JSON data against any type and turns
pydantic failures into DecodeError; ``to_jsonable`` does the reverse for
request bodies.
"""
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Annotated, Any, Iterable, Optional, Tuple, Type, Union
from uuid import UUID

from pydantic import PlainSerializer, PlainValidator, TypeAdapter, ValidationError
from pydantic_core import core_schema, to_jsonable_python

from .errors import DecodeError

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


# ------------------ timestamps ------------------

def parse_api_time(value: Any) -> datetime:
    if isinstance(value, datetime):
        if value.tzinfo is None:
            raise ValueError("timestamp must carry a UTC offset")
        return value
    if isinstance(value, bool):
        raise ValueError("boolean is not a timestamp")
    if isinstance(value, int):
        return EPOCH + timedelta(milliseconds=value)
    if isinstance(value, float) and value.is_integer():
        return EPOCH + timedelta(milliseconds=int(value))
    if isinstance(value, str):
        text = value.strip()
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            raise ValueError(f"{value!r} is neither RFC3339 nor epoch milliseconds") from None
        if parsed.tzinfo is None:
            raise ValueError(f"{value!r} has no UTC offset")
        return parsed
    raise ValueError(f"{value!r} is neither RFC3339 nor epoch milliseconds")


def format_api_time(value: datetime) -> str:
    utc = value.astimezone(timezone.utc)
    timespec = "microseconds" if utc.microsecond % 1000 else "milliseconds"
    return utc.isoformat(timespec=timespec).replace("+00:00", "Z")


APITime = Annotated[datetime, PlainValidator(parse_api_time), PlainSerializer(format_api_time, return_type=str)]


# ------------------ integers sent as strings ------------------

def parse_int_or_string(value: Any) -> int:
    if isinstance(value, bool):
        raise ValueError("boolean is not an integer")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        text = value.strip()
        if text == "":
            return 0
        if not text.lstrip("+-").isdigit():
            raise ValueError(f"{value!r} is not a decimal integer")
        return int(text, 10)
    raise ValueError(f"{value!r} is neither an integer nor a decimal string")


IntOrString = Annotated[int, PlainValidator(parse_int_or_string)]
Videoram = IntOrString


# ------------------ UUID or opaque string ------------------

def parse_uuid_or_string(value: Any) -> Union[UUID, str]:
    if isinstance(value, UUID):
        return value
    if isinstance(value, str):
        try:
            return UUID(value)
        except ValueError:
            return value
    raise ValueError(f"{value!r} is not a string")


def as_uuid(value: Any) -> Optional[UUID]:
    if isinstance(value, UUID):
        return value
    if isinstance(value, str):
        try:
            return UUID(value)
        except ValueError:
            return None
    return None


UUIDOrString = Annotated[Union[UUID, str], PlainValidator(parse_uuid_or_string), PlainSerializer(str, return_type=str)]


# ------------------ extensible enums ------------------

def extensible(enum_cls: Type[Enum]):
    """Enum-typed field that keeps unknown members as their raw string instead of failing."""

    def _parse(value):
        if isinstance(value, enum_cls):
            return value
        if not isinstance(value, str):
            raise ValueError(f"{value!r} is not a string")
        try:
            return enum_cls(value)
        except ValueError:
            return value

    def _dump(value):
        return value.value if isinstance(value, Enum) else value

    return Annotated[Union[enum_cls, str], PlainValidator(_parse), PlainSerializer(_dump, return_type=str)]


# ------------------ selection maps ------------------

class Selection:
    """
    One or many object IDs, as used by backup jobs for "vms" and "remotes".

    Accepted on input: "id", ["id1", "id2"], {"id": "id1"}, {"id": {"__or": [...]}}.
    Serialized as None (empty), {"id": X} (one) or {"id": {"__or": [...]}} (many).
    """

    __slots__ = ("ids",)

    def __init__(self, ids: Iterable[str] = ()):
        self.ids: Tuple[str, ...] = tuple(str(i) for i in ids)

    @classmethod
    def parse(cls, value: Any) -> "Selection":
        if value is None:
            return cls()
        if isinstance(value, Selection):
            return value
        if isinstance(value, (str, UUID)):
            return cls._from_ids([value])
        if isinstance(value, (set, frozenset)):
            return cls._from_ids(sorted(str(v) for v in value))
        if isinstance(value, (list, tuple)):
            return cls._from_ids(value)
        if isinstance(value, dict):
            if set(value) != {"id"}:
                raise ValueError(f"selection map must only have an 'id' key, got {sorted(value)}")
            inner = value["id"]
            if isinstance(inner, (str, UUID)):
                return cls._from_ids([inner])
            if isinstance(inner, dict) and set(inner) == {"__or"} and isinstance(inner["__or"], list):
                return cls._from_ids(inner["__or"])
        raise ValueError(f"{value!r} is not a valid selection")

    @classmethod
    def _from_ids(cls, ids) -> "Selection":
        out = []
        for i in ids:
            if isinstance(i, UUID):
                i = str(i)
            if not isinstance(i, str) or not i:
                raise ValueError(f"invalid id {i!r} in selection")
            out.append(i)
        return cls(out)

    def to_json(self) -> Optional[dict]:
        if not self.ids:
            return None
        if len(self.ids) == 1:
            return {"id": self.ids[0]}
        return {"id": {"__or": list(self.ids)}}

    def __len__(self):
        return len(self.ids)

    def __iter__(self):
        return iter(self.ids)

    def __bool__(self):
        return bool(self.ids)

    def __eq__(self, other):
        if isinstance(other, Selection):
            return self.ids == other.ids
        return NotImplemented

    def __hash__(self):
        return hash(self.ids)

    def __repr__(self):
        return f"Selection({list(self.ids)!r})"

    @classmethod
    def __get_pydantic_core_schema__(cls, source, handler):
        return core_schema.no_info_plain_validator_function(
            cls.parse,
            serialization=core_schema.plain_serializer_function_ser_schema(lambda v: v.to_json()),
        )


# ------------------ decode / encode ------------------

def decode(tp: Any, data: Any) -> Any:
    """Validate raw JSON data into ``tp``; failures raise DecodeError."""
    try:
        return TypeAdapter(tp).validate_python(data)
    except ValidationError as exc:
        name = getattr(tp, "__name__", repr(tp))
        raise DecodeError(f"cannot decode {name}: {exc}") from exc


def _fallback(value):
    if isinstance(value, Selection):
        return value.to_json()
    raise TypeError(f"{type(value).__name__} is not JSON serializable")


def to_jsonable(value: Any) -> Any:
    """Turn a request body (models, dicts, UUIDs, datetimes, selections) into plain JSON data."""
    return to_jsonable_python(value, by_alias=True, exclude_none=True, fallback=_fallback)

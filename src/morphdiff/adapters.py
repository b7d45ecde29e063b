"""
Adapters render the payloads of a change tree into a serialization format.

An adapter never influences which changes are reported or where; it only
encodes ``Replace`` values and ``Append`` fragments, and reads/writes the
wire form of a whole tree.
"""

import abc
import dataclasses
import datetime
import decimal
import enum
import fractions
import json
import pathlib
import typing
import uuid
from collections.abc import Mapping
from typing import Any

import yaml

from morphdiff.change import Change
from morphdiff.errors import UnsupportedShape
from morphdiff.observable import RecordShape, resolve


def to_plain(value: Any, *, keep_bytes: bool = False) -> Any:
    """
    Convert an observed value into plain data: dicts, lists, str, int, float,
    bool and None. Bytes become a list of ints, so appended
    fragments still concatenate; ``keep_bytes`` leaves them as bytes.
    """
    if isinstance(value, enum.Enum):
        return to_plain(value.value, keep_bytes=keep_bytes)
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    if isinstance(value, (bytes, bytearray)):
        if keep_bytes:
            return bytes(value)
        return list(value)
    if isinstance(value, Mapping):
        return {k: to_plain(v, keep_bytes=keep_bytes) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_plain(v, keep_bytes=keep_bytes) for v in value]
    if isinstance(value, (set, frozenset)):
        items = [to_plain(v, keep_bytes=keep_bytes) for v in value]
        try:
            return sorted(items)
        except TypeError:
            return items
    if isinstance(value, (datetime.date, datetime.time)):
        return value.isoformat()
    if isinstance(value, datetime.timedelta):
        return value.total_seconds()
    if isinstance(value, complex):
        return [value.real, value.imag]
    if isinstance(value, (decimal.Decimal, fractions.Fraction, uuid.UUID, pathlib.PurePath)):
        return str(value)
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {
            f.name: to_plain(getattr(value, f.name), keep_bytes=keep_bytes)
            for f in dataclasses.fields(value)
        }
    shape = resolve(value)
    if isinstance(shape, RecordShape):
        return {
            name: to_plain(child, keep_bytes=keep_bytes)
            for name, child in shape.children(value)
        }
    raise UnsupportedShape(f"Cannot encode {type(value).__qualname__}")


class Adapter(abc.ABC):
    name: typing.ClassVar[str]

    @abc.abstractmethod
    def encode(self, value: Any) -> Any:
        """Convert one payload into the format's value representation."""

    def render(self, change: Change) -> Change:
        return change.map_values(self.encode)

    @abc.abstractmethod
    def dumps(self, change: Change | None) -> str: ...

    @abc.abstractmethod
    def loads(self, text: str) -> Change | None: ...

    def __repr__(self):
        return f"{type(self).__name__}()"


class JsonAdapter(Adapter):
    name = "json"

    def __init__(self, *, indent: int | None = None):
        self.indent = indent

    def encode(self, value):
        return to_plain(value)

    def dumps(self, change):
        payload = None if change is None else self.render(change).to_dict()
        return json.dumps(payload, ensure_ascii=False, indent=self.indent)

    def loads(self, text):
        data = json.loads(text)
        return None if data is None else Change.from_dict(data)


class YamlAdapter(Adapter):
    name = "yaml"

    def encode(self, value):
        return to_plain(value, keep_bytes=True)

    def dumps(self, change):
        payload = None if change is None else self.render(change).to_dict()
        return yaml.safe_dump(payload, sort_keys=False, default_flow_style=False)

    def loads(self, text):
        data = yaml.safe_load(text)
        return None if data is None else Change.from_dict(data)

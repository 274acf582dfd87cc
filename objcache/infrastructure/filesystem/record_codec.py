"""Passive JSON encoding for cache entry records.

A record is a JSON object with ``group``, ``key``, ``valueKind``,
``expiresAt`` and ``value``. The top-level value is stored as a plain
payload whose shape is given by ``valueKind``; nested values are tagged
nodes of the form ``{"kind": ..., "value": ...}`` so that tuples, sets,
bytes, non-string dict keys and object-like records survive a round trip.

Nothing read from disk is ever executed. Object-like records come back as
``types.SimpleNamespace`` instances carrying the same fields.
"""

import base64
import dataclasses
import json
import logging
from collections.abc import Mapping
from types import SimpleNamespace
from typing import Any, Callable, Dict, Tuple

from objcache.domain.models.common import CacheEntry, CacheKey, GroupName, ValueKind

logger = logging.getLogger(__name__)

RECORD_FIELDS = ("group", "key", "valueKind", "expiresAt", "value")

# Guards against self-referencing containers
MAX_DEPTH = 64


class RecordCodecError(ValueError):
    """Raised when a value cannot be encoded or a record cannot be decoded."""


def _is_object_record(value: Any) -> bool:
    if isinstance(value, SimpleNamespace):
        return True
    return dataclasses.is_dataclass(value) and not isinstance(value, type)


def _object_fields(value: Any) -> Dict[str, Any]:
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {f.name: getattr(value, f.name) for f in dataclasses.fields(value)}
    return dict(vars(value))


# --- Encoding ---

def _encode_strict(value: Any, depth: int = 0) -> Tuple[ValueKind, Any]:
    """Encodes supported shapes exactly; raises RecordCodecError otherwise."""
    if depth > MAX_DEPTH:
        raise RecordCodecError("Value is nested too deeply (recursive structure?)")
    if value is None:
        return ValueKind.NULL, None
    # bool before int: bool is an int subclass
    if isinstance(value, bool):
        return ValueKind.BOOL, value
    if isinstance(value, int):
        return ValueKind.INT, value
    if isinstance(value, float):
        return ValueKind.FLOAT, value
    if isinstance(value, str):
        return ValueKind.STR, value
    if isinstance(value, (bytes, bytearray)):
        return ValueKind.BYTES, base64.b64encode(bytes(value)).decode("ascii")
    if isinstance(value, list):
        return ValueKind.LIST, [_node(item, depth, _encode_strict) for item in value]
    if isinstance(value, tuple):
        return ValueKind.TUPLE, [_node(item, depth, _encode_strict) for item in value]
    if isinstance(value, set):
        return ValueKind.SET, [_node(item, depth, _encode_strict) for item in value]
    if isinstance(value, dict):
        return ValueKind.DICT, [
            [_node(k, depth, _encode_strict), _node(v, depth, _encode_strict)]
            for k, v in value.items()
        ]
    if _is_object_record(value):
        return ValueKind.OBJECT, {
            str(name): _node(field_value, depth, _encode_strict)
            for name, field_value in _object_fields(value).items()
        }
    raise RecordCodecError(f"Unsupported value type: {type(value).__name__}")


def _encode_lossy(value: Any, depth: int = 0) -> Tuple[ValueKind, Any]:
    """Best-effort encoding for shapes the strict encoder rejects.

    Mappings become dicts, other iterables become lists, objects with
    attributes become object records, and anything else becomes its string
    form. Type identity is not preserved.
    """
    try:
        return _encode_strict(value, depth)
    except RecordCodecError:
        if depth > MAX_DEPTH:
            raise
    if isinstance(value, Mapping):
        return ValueKind.DICT, [
            [_node(k, depth, _encode_lossy), _node(v, depth, _encode_lossy)]
            for k, v in value.items()
        ]
    if _is_plain_iterable(value):
        return ValueKind.LIST, [_node(item, depth, _encode_lossy) for item in value]
    if hasattr(value, "__dict__") and not isinstance(value, type) and not callable(value):
        return ValueKind.OBJECT, {
            str(name): _node(field_value, depth, _encode_lossy)
            for name, field_value in vars(value).items()
        }
    return ValueKind.STR, str(value)


def _is_plain_iterable(value: Any) -> bool:
    if isinstance(value, (str, bytes, bytearray)):
        return False
    try:
        iter(value)
    except TypeError:
        return False
    return True


def _node(value: Any, depth: int, encoder: Callable[[Any, int], Tuple[ValueKind, Any]]) -> Dict[str, Any]:
    kind, payload = encoder(value, depth + 1)
    return {"kind": kind.value, "value": payload}


def encode_value(value: Any, warn: bool = True) -> Tuple[ValueKind, Any]:
    """Encodes a value to ``(kind, payload)``, falling back to lossy encoding.

    Args:
        value: The value to encode.
        warn: Log a warning when the lossy fallback is used. Callers that
            only measure values (statistics) pass False.

    Raises:
        RecordCodecError: If neither encoder can handle the value.
    """
    try:
        return _encode_strict(value)
    except RecordCodecError as e:
        if warn:
            logger.warning(f"Falling back to lossy encoding for {type(value).__name__}: {e}")
    try:
        return _encode_lossy(value)
    except RecordCodecError:
        raise
    except Exception as e:
        raise RecordCodecError(f"Lossy encoding failed for {type(value).__name__}: {e}") from e


# --- Decoding ---

def decode_value(kind: Any, payload: Any) -> Any:
    """Rebuilds a value from its kind tag and payload.

    Raises:
        RecordCodecError: If the tag is unknown or the payload does not match it.
    """
    try:
        value_kind = ValueKind(kind)
    except ValueError as e:
        raise RecordCodecError(f"Unknown value kind: {kind!r}") from e

    try:
        if value_kind is ValueKind.NULL:
            if payload is not None:
                raise RecordCodecError("null kind with non-null payload")
            return None
        if value_kind is ValueKind.BOOL:
            return _expect(payload, bool)
        if value_kind is ValueKind.INT:
            if isinstance(payload, bool):
                raise RecordCodecError("int kind with bool payload")
            return _expect(payload, int)
        if value_kind is ValueKind.FLOAT:
            if isinstance(payload, bool):
                raise RecordCodecError("float kind with bool payload")
            return float(_expect(payload, (int, float)))
        if value_kind is ValueKind.STR:
            return _expect(payload, str)
        if value_kind is ValueKind.BYTES:
            return base64.b64decode(_expect(payload, str), validate=True)
        if value_kind is ValueKind.LIST:
            return [_decode_node(item) for item in _expect(payload, list)]
        if value_kind is ValueKind.TUPLE:
            return tuple(_decode_node(item) for item in _expect(payload, list))
        if value_kind is ValueKind.SET:
            return {_decode_node(item) for item in _expect(payload, list)}
        if value_kind is ValueKind.DICT:
            result = {}
            for pair in _expect(payload, list):
                if not isinstance(pair, list) or len(pair) != 2:
                    raise RecordCodecError("dict entries must be [key, value] pairs")
                result[_decode_node(pair[0])] = _decode_node(pair[1])
            return result
        # ValueKind.OBJECT
        fields = _expect(payload, dict)
        return SimpleNamespace(**{name: _decode_node(node) for name, node in fields.items()})
    except TypeError as e:
        # unhashable set members or dict keys
        raise RecordCodecError(f"Cannot rebuild {value_kind.value} value: {e}") from e
    except ValueError as e:
        if isinstance(e, RecordCodecError):
            raise
        raise RecordCodecError(f"Cannot rebuild {value_kind.value} value: {e}") from e


def _decode_node(node: Any) -> Any:
    if not isinstance(node, dict) or set(node) != {"kind", "value"}:
        raise RecordCodecError("Nested value is not a tagged node")
    return decode_value(node["kind"], node["value"])


def _expect(payload: Any, expected: Any) -> Any:
    if not isinstance(payload, expected):
        raise RecordCodecError(f"Payload of type {type(payload).__name__} does not match its kind")
    return payload


# --- Records ---

class RecordCodec:
    """Serializes CacheEntry objects to self-describing JSON text and back."""

    def dumps(self, entry: CacheEntry) -> str:
        """Encodes an entry, setting ``entry.value_kind`` from the value.

        Raises:
            RecordCodecError: If the value cannot be encoded at all.
        """
        kind, payload = encode_value(entry.value)
        entry.value_kind = kind
        record = {
            "group": entry.group,
            "key": entry.key,
            "valueKind": kind.value,
            "expiresAt": int(entry.expires_at),
            "value": payload,
        }
        try:
            text = json.dumps(record, ensure_ascii=False, separators=(",", ":"))
        except (TypeError, ValueError) as e:
            raise RecordCodecError(f"Cannot serialize record for {entry.group}:{entry.key}: {e}") from e
        try:
            text.encode("utf-8")
        except UnicodeEncodeError:
            # lone surrogates are only representable as \u escapes
            text = json.dumps(record, ensure_ascii=True, separators=(",", ":"))
        return text

    def loads(self, text: str) -> CacheEntry:
        """Decodes record text.

        Raises:
            RecordCodecError: If the text is not a well-formed entry record.
        """
        try:
            record = json.loads(text)
        except ValueError as e:
            raise RecordCodecError(f"Record is not valid JSON: {e}") from e
        if not isinstance(record, dict) or any(name not in record for name in RECORD_FIELDS):
            raise RecordCodecError("Record is missing required fields")

        group, key, expires_at = record["group"], record["key"], record["expiresAt"]
        if not isinstance(group, str) or not isinstance(key, str):
            raise RecordCodecError("Record group and key must be strings")
        if isinstance(expires_at, bool) or not isinstance(expires_at, int) or expires_at < 0:
            raise RecordCodecError("Record expiresAt must be a non-negative integer")

        value = decode_value(record["valueKind"], record["value"])
        return CacheEntry(
            group=GroupName(group),
            key=CacheKey(key),
            value=value,
            expires_at=expires_at,
            value_kind=ValueKind(record["valueKind"]),
        )

import json
from dataclasses import dataclass
from datetime import date
from types import SimpleNamespace

import pytest

from objcache.domain.models.common import CacheEntry, ValueKind
from objcache.infrastructure.filesystem.record_codec import (
    RecordCodec,
    RecordCodecError,
    decode_value,
    encode_value,
)


@dataclass
class Point:
    x: int
    y: int


@pytest.fixture
def codec():
    return RecordCodec()


def _round_trip(codec: RecordCodec, value):
    entry = CacheEntry(group="g", key="k", value=value, expires_at=0)
    return codec.loads(codec.dumps(entry)).value


@pytest.mark.parametrize("value", [
    None,
    True,
    0,
    -42,
    3.5,
    "text with ünïcode",
    b"\x00\xffbytes",
    [1, "two", [3.0, None]],
    (1, (2, 3)),
    {1, 2, 3},
    {"a": 1, 2: "b", (3, 4): [5]},
    SimpleNamespace(name="alice", tags=["x", "y"], nested=SimpleNamespace(level=2)),
])
def test_values_round_trip_with_their_structure(codec: RecordCodec, value):
    result = _round_trip(codec, value)
    assert result == value
    assert type(result) is type(value)


def test_record_is_self_describing(codec: RecordCodec):
    entry = CacheEntry(group="options", key="siteurl", value=[1, 2], expires_at=1234)
    record = json.loads(codec.dumps(entry))
    assert set(record) == {"group", "key", "valueKind", "expiresAt", "value"}
    assert record["group"] == "options"
    assert record["key"] == "siteurl"
    assert record["valueKind"] == "list"
    assert record["expiresAt"] == 1234
    assert entry.value_kind is ValueKind.LIST


def test_loads_restores_metadata(codec: RecordCodec):
    entry = CacheEntry(group="g", key="k", value=7, expires_at=99)
    loaded = codec.loads(codec.dumps(entry))
    assert (loaded.group, loaded.key, loaded.value, loaded.expires_at) == ("g", "k", 7, 99)
    assert loaded.value_kind is ValueKind.INT


def test_dataclass_is_stored_as_object_record(codec: RecordCodec):
    result = _round_trip(codec, Point(1, 2))
    assert isinstance(result, SimpleNamespace)
    assert (result.x, result.y) == (1, 2)


def test_unsupported_value_falls_back_to_lossy_encoding(codec: RecordCodec):
    result = _round_trip(codec, {"when": date(2024, 1, 2), "items": frozenset([1])})
    assert result == {"when": "2024-01-02", "items": [1]}


def test_recursive_value_cannot_be_encoded():
    loop = []
    loop.append(loop)
    with pytest.raises(RecordCodecError):
        encode_value(loop)


@pytest.mark.parametrize("text", [
    "",
    "not json",
    "[1, 2, 3]",
    '{"group": "g", "key": "k"}',
    '{"group": "g", "key": "k", "valueKind": "nope", "expiresAt": 0, "value": 1}',
    '{"group": "g", "key": "k", "valueKind": "int", "expiresAt": 0, "value": "1"}',
    '{"group": "g", "key": "k", "valueKind": "int", "expiresAt": -5, "value": 1}',
    '{"group": 1, "key": "k", "valueKind": "int", "expiresAt": 0, "value": 1}',
    '{"group": "g", "key": "k", "valueKind": "list", "expiresAt": 0, "value": [1]}',
    '<?php return array();',
])
def test_foreign_or_malformed_records_are_rejected(codec: RecordCodec, text: str):
    with pytest.raises(RecordCodecError):
        codec.loads(text)


def test_unhashable_set_member_is_rejected():
    payload = [{"kind": "list", "value": []}]
    with pytest.raises(RecordCodecError):
        decode_value("set", payload)


def test_lone_surrogate_text_is_escaped_and_round_trips(codec: RecordCodec):
    entry = CacheEntry(group="g", key="k\udc80", value="bad\ud800", expires_at=0)
    text = codec.dumps(entry)
    text.encode("utf-8")
    loaded = codec.loads(text)
    assert loaded.key == "k\udc80"
    assert loaded.value == "bad\ud800"


def test_non_ascii_text_is_stored_unescaped(codec: RecordCodec):
    text = codec.dumps(CacheEntry(group="g", key="k", value="ünï"))
    assert "ünï" in text

"""JSON:API payload codec.

Decoding turns a JSON:API document into plain dicts that are convenient to use:

- relationships are resolved against the ``included`` section (matched by ``id`` and
  ``type``), recursively;
- ``attributes`` are flattened onto the resource;
- each relationship with ``data`` is hoisted to a key of the same name;
- values under date-like keys (``*_at``, ``*_on``, ``date``, ``*_date``) are parsed
  into ``datetime`` objects.

Encoding walks the payload and serializes ``datetime``/``date`` values as UTC
ISO-8601 strings.
"""

from __future__ import annotations

import json
import re
from datetime import UTC, date, datetime, time
from typing import Any

TIME_FIELD = re.compile(r"(_(at|on)|(^|_)date)$")


def is_time_field(key: str, value: Any) -> bool:
    """Check whether a value should be decoded as a timestamp.

    Args:
        key: Member name
        value: Member value

    Returns:
        True when the key looks like a date/time field and the value is set
    """
    return value is not None and value is not False and bool(TIME_FIELD.search(key))


def format_time(value: datetime | date) -> str:
    """Render a date or datetime as a UTC ISO-8601 string.

    Naive datetimes are taken to be UTC; dates are taken as midnight UTC.

    Example:
        >>> format_time(datetime(2024, 1, 2, 3, 4, 5, tzinfo=UTC))
        '2024-01-02T03:04:05Z'
    """
    if not isinstance(value, datetime):
        value = datetime.combine(value, time.min, tzinfo=UTC)
    elif value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC).strftime("%Y-%m-%dT%H:%M:%SZ")


def parse_time(value: Any) -> Any:
    """Parse a timestamp value, returning it unchanged when it cannot be parsed."""
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value)
        except ValueError:
            return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        try:
            return datetime.fromtimestamp(value, tz=UTC)
        except (OverflowError, OSError, ValueError):
            return value
    return value


class JsonApiSerializer:
    """Encode and decode JSON:API payloads with a pluggable JSON engine.

    Args:
        engine: Module or object providing dump/load callables (default: ``json``)
        dump_method: Name of the encode callable on ``engine``
        load_method: Name of the decode callable on ``engine``

    Example:
        >>> serializer = JsonApiSerializer.any_json()
        >>> serializer.decode('{"data": {"id": "1", "attributes": {"name": "Tent"}}}')
        {'data': {'id': '1', 'name': 'Tent'}}
    """

    def __init__(
        self,
        engine: Any = json,
        dump_method: str = "dumps",
        load_method: str = "loads",
    ) -> None:
        self.engine = engine
        self._dump = getattr(engine, dump_method)
        self._load = getattr(engine, load_method)

    @classmethod
    def any_json(cls) -> JsonApiSerializer:
        """Serializer backed by the standard library ``json`` module."""
        return cls(json)

    # ------------------------------------------------------------------
    # Encoding
    # ------------------------------------------------------------------

    def encode(self, data: Any) -> str:
        """Serialize a payload, converting date/time values to UTC strings."""
        return self._dump(self._encode_object(data))

    dump = encode

    def _encode_object(self, data: Any) -> Any:
        if isinstance(data, dict):
            return {key: self._encode_object(value) for key, value in data.items()}
        if isinstance(data, (list, tuple)):
            return [self._encode_object(item) for item in data]
        if isinstance(data, (datetime, date)):
            return format_time(data)
        return data

    # ------------------------------------------------------------------
    # Decoding
    # ------------------------------------------------------------------

    def decode(self, data: str | bytes | None) -> Any:
        """Parse a JSON:API document into plain Python objects.

        Args:
            data: Raw JSON text

        Returns:
            Decoded document, or None for empty input
        """
        if data is None:
            return None
        if isinstance(data, bytes):
            data = data.decode("utf-8")
        if not data.strip():
            return None
        return self._decode_object(self._load(data), {})

    load = decode

    def _decode_object(self, data: Any, memo: dict[int, Any]) -> Any:
        if isinstance(data, dict):
            return self._decode_hash(data, memo)
        if isinstance(data, list):
            return [self._decode_object(item, memo) for item in data]
        return data

    def _decode_hash(self, node: dict[str, Any], memo: dict[int, Any]) -> dict[str, Any]:
        # Included resources may be shared or reference each other.
        if id(node) in memo:
            return memo[id(node)]
        out: dict[str, Any] = {}
        memo[id(node)] = out

        if "included" in node:
            populate_relationships(node.get("data"), node.get("included") or [])

        for key, value in flatten_resource(node).items():
            out[key] = self._decode_value(key, value, memo)
        return out

    def _decode_value(self, key: str, value: Any, memo: dict[int, Any]) -> Any:
        if isinstance(value, dict):
            return self._decode_hash(value, memo)
        if isinstance(value, list):
            return [self._decode_value(key, item, memo) for item in value]
        if is_time_field(key, value):
            return parse_time(value)
        return value


def flatten_resource(node: dict[str, Any]) -> dict[str, Any]:
    """Merge ``attributes`` onto a resource and hoist relationship data.

    Args:
        node: Resource object as found in a JSON:API document

    Returns:
        New dict without ``attributes``/``relationships`` wrappers
    """
    flat = {k: v for k, v in node.items() if k not in ("attributes", "relationships")}

    attributes = node.get("attributes")
    if isinstance(attributes, dict):
        flat.update(attributes)

    relationships = node.get("relationships")
    if isinstance(relationships, dict):
        for name, value in relationships.items():
            if isinstance(value, dict) and "data" in value:
                if isinstance(value["data"], (dict, list)):
                    flat[name] = value["data"]
    return flat


def _find_include(ref: Any, included: list[Any]) -> dict[str, Any] | None:
    if not (isinstance(ref, dict) and "id" in ref and "type" in ref):
        return None
    for candidate in included:
        if (
            isinstance(candidate, dict)
            and candidate.get("id") == ref["id"]
            and candidate.get("type") == ref["type"]
        ):
            return candidate
    return None


def populate_relationships(
    obj: Any, included: list[Any], _seen: set[int] | None = None
) -> None:
    """Replace relationship references with matching ``included`` resources, in place.

    Unresolvable references are left untouched.

    Args:
        obj: Primary data (a resource or a list of resources)
        included: The document's ``included`` resources
    """
    seen = _seen if _seen is not None else set()

    if isinstance(obj, list):
        for item in obj:
            populate_relationships(item, included, seen)
        return
    if not isinstance(obj, dict) or id(obj) in seen:
        return
    seen.add(id(obj))

    relationships = obj.get("relationships")
    if not isinstance(relationships, dict):
        return

    for value in relationships.values():
        if not (isinstance(value, dict) and "data" in value):
            continue
        ref = value["data"]
        if isinstance(ref, dict):
            found = _find_include(ref, included)
            if found is not None:
                value["data"] = found
                populate_relationships(found, included, seen)
        elif isinstance(ref, list):
            resolved = []
            for item in ref:
                found = _find_include(item, included)
                if found is not None:
                    populate_relationships(found, included, seen)
                    resolved.append(found)
                else:
                    resolved.append(item)
            value["data"] = resolved

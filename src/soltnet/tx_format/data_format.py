"""
Typed-value codec for instruction data.

Packing infers the encoding from the JSON shape of the value:

    - bool            -> one byte (1/0)
    - int             -> that many zero bytes (reserved space)
    - str             -> "0x" hex, otherwise base64
    - list            -> one byte per element
    - None            -> no bytes
    - {"type": ...}   -> u8/u16/u32/u64, boolean, pubkey, bytes, string, object

Unpacking reads a buffer through a schema made of the same typed objects and
returns the schema with each ``data`` field filled in. ``get_byte_length``
measures an unpacked value and must agree with what ``pack_data`` produces
for it.
"""

import base64
import binascii
import json
import struct
from collections.abc import Sequence
from typing import Any

from solders.pubkey import Pubkey

from soltnet.core.errors import (
    InvalidEncoding,
    MissingField,
    OutOfBounds,
    UnsupportedType,
)
from soltnet.core.pubkeys import MAX_SAFE_INTEGER
from soltnet.tx_format.params import resolve_value
from soltnet.tx_format.pubkey import resolve_address
from soltnet.utils.logger import get_logger

logger = get_logger(__name__)

PUBLIC_KEY_SIZE = 32

# type_name: (format_char, size_in_bytes)
_INTEGER_TYPE_INFO = {
    "u8": ("<B", 1),
    "u16": ("<H", 2),
    "u32": ("<I", 4),
    "u64": ("<Q", 8),
}

_FIXED_SIZES = {
    **{name: size for name, (_, size) in _INTEGER_TYPE_INFO.items()},
    "boolean": 1,
    "pubkey": PUBLIC_KEY_SIZE,
}


def parse_uint(value: Any) -> int:
    """Coerce a JSON number, numeric string or bool into a non-negative int."""
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        result = value
    elif isinstance(value, float) and value.is_integer():
        result = int(value)
    elif isinstance(value, str):
        try:
            result = int(value.strip())
        except ValueError as e:
            raise InvalidEncoding(f"Invalid numeric string: {value!r}") from e
    else:
        raise InvalidEncoding(f"Unsupported numeric value: {value!r}")

    if result < 0:
        raise InvalidEncoding(f"Negative value not allowed: {value!r}")
    return result


def parse_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value == "true"
    raise InvalidEncoding(f"Unsupported boolean value: {value!r}")


def decode_string_data(text: str) -> bytes:
    """Decode a "0x"-prefixed hex string or a base64 string."""
    if text.startswith("0x"):
        try:
            return bytes.fromhex(text[2:])
        except ValueError as e:
            raise InvalidEncoding(f"Invalid hex string: {text!r}") from e
    try:
        return base64.b64decode(text, validate=True)
    except binascii.Error as e:
        raise InvalidEncoding(f"Invalid base64 string: {text!r}") from e


def encode_u64(value: int) -> int | str:
    """Represent a u64 as a JSON-safe value (decimal string above 2**53 - 1)."""
    if value > MAX_SAFE_INTEGER:
        return str(value)
    return value


def _require(entry: dict[str, Any], key: str) -> Any:
    if key not in entry:
        raise MissingField(f"Missing {key} in {entry.get('type', 'data')} object")
    return entry[key]


def _pack_byte_array(items: list[Any], params: Sequence[str]) -> bytes:
    out = bytearray()
    for item in items:
        item = resolve_value(item, params)
        if isinstance(item, bool):
            value = int(item)
        elif isinstance(item, int):
            value = item
        elif isinstance(item, str):
            try:
                value = int(item.strip())
            except ValueError as e:
                raise InvalidEncoding(f"Invalid array entry: {item!r}") from e
        else:
            raise InvalidEncoding(f"Unsupported array entry: {item!r}")

        if not -128 <= value <= 255:
            logger.warning(f"Array entry {value} does not fit in a byte, truncating")
        out.append(value & 0xFF)
    return bytes(out)


def _pack_object_entries(data: Any, params: Sequence[str]) -> bytes:
    resolved = resolve_value(data, params)
    if isinstance(resolved, str) and resolved.lstrip().startswith(("[", "{")):
        try:
            resolved = json.loads(resolved)
        except json.JSONDecodeError as e:
            raise UnsupportedType(f"Object data is not a JSON array: {resolved!r}") from e

    if not isinstance(resolved, list):
        raise UnsupportedType("Object data must be array")

    return b"".join(pack_data(entry, params) for entry in resolved)


def _pack_typed(entry: dict[str, Any], params: Sequence[str]) -> bytes:
    kind = _require(entry, "type")

    if kind in _INTEGER_TYPE_INFO:
        fmt, size = _INTEGER_TYPE_INFO[kind]
        value = parse_uint(resolve_value(_require(entry, "data"), params))
        if value >= 1 << (size * 8):
            raise InvalidEncoding(f"Value {value} does not fit in {kind}")
        return struct.pack(fmt, value)

    if kind == "boolean":
        value = parse_bool(resolve_value(_require(entry, "data"), params))
        return b"\x01" if value else b"\x00"

    if kind == "pubkey":
        return bytes(resolve_address(_require(entry, "data"), params))

    if kind == "string":
        data = resolve_value(_require(entry, "data"), params)
        if not isinstance(data, str):
            return pack_data(data, params)
        encoded = data.encode("utf-8")
        length = entry.get("length")
        if isinstance(length, int):
            encoded = encoded[:length].ljust(length, b"\x00")
        return encoded

    if kind == "bytes":
        encoded = pack_data(_require(entry, "data"), params)
        size = entry.get("size", entry.get("Size"))
        if isinstance(size, int) and not isinstance(size, bool):
            encoded = encoded[:size].ljust(size, b"\x00")
        return encoded

    if kind == "object":
        return _pack_object_entries(_require(entry, "data"), params)

    raise UnsupportedType(f"Unsupported data object type: {kind}")


def pack_data(value: Any, params: Sequence[str] = ()) -> bytes:
    """Encode a template data value into instruction bytes.

    Args:
        value: Typed value or literal taken from a template
        params: Parameters for "$N" placeholders

    Returns:
        Encoded bytes

    Raises:
        TxFormatError: On the first value that cannot be encoded
    """
    value = resolve_value(value, params)

    if value is None:
        return b""
    if isinstance(value, bool):
        return b"\x01" if value else b"\x00"
    if isinstance(value, (int, float)):
        return bytes(parse_uint(value))
    if isinstance(value, str):
        return decode_string_data(value)
    if isinstance(value, list):
        return _pack_byte_array(value, params)
    if isinstance(value, dict):
        return _pack_typed(value, params)

    raise UnsupportedType(f"Unsupported data value: {type(value).__name__}")


def _read(buffer: bytes, offset: int, size: int) -> bytes:
    if offset < 0 or offset + size > len(buffer):
        raise OutOfBounds(
            f"Out of bounds: need {size} bytes at offset {offset}, buffer has {len(buffer)}"
        )
    return buffer[offset : offset + size]


def _unpack_sequence(buffer: bytes, schema: list[Any], offset: int) -> list[Any]:
    out = []
    cursor = offset
    for entry in schema:
        result = unpack_data(buffer, entry, cursor)
        cursor += get_byte_length(result)
        out.append(result)
    return out


def _declared_size(schema: dict[str, Any], *keys: str) -> int:
    for key in keys:
        size = schema.get(key)
        if isinstance(size, int) and not isinstance(size, bool):
            return size
    raise MissingField(f"Missing {keys[0]} in {schema.get('type')} schema")


def unpack_data(buffer: bytes, schema: Any, offset: int = 0) -> Any:
    """Decode ``buffer`` through a typed-value schema.

    Args:
        buffer: Raw instruction or account bytes
        schema: Typed object or list of typed objects
        offset: Position of the first byte to read

    Returns:
        The schema with ``data`` fields holding the decoded values

    Raises:
        OutOfBounds: If the schema reads past the end of the buffer
        MissingField: If the schema lacks a required key
        UnsupportedType: If the schema carries an unknown type
    """
    if isinstance(schema, list):
        return _unpack_sequence(buffer, schema, offset)

    if not isinstance(schema, dict):
        raise UnsupportedType("Schema must be object or array")

    kind = schema.get("type")
    if kind is None:
        raise MissingField("Missing type in schema")

    out = dict(schema)

    if kind in _INTEGER_TYPE_INFO:
        fmt, size = _INTEGER_TYPE_INFO[kind]
        (value,) = struct.unpack(fmt, _read(buffer, offset, size))
        out["data"] = encode_u64(value) if kind == "u64" else value
    elif kind == "boolean":
        out["data"] = _read(buffer, offset, 1)[0] != 0
    elif kind == "pubkey":
        out["data"] = str(Pubkey.from_bytes(_read(buffer, offset, PUBLIC_KEY_SIZE)))
    elif kind == "bytes":
        size = _declared_size(schema, "size", "Size")
        out["size"] = size
        out["data"] = base64.b64encode(_read(buffer, offset, size)).decode("ascii")
    elif kind == "string":
        length = _declared_size(schema, "length")
        out["length"] = length
        out["data"] = _read(buffer, offset, length).decode("utf-8", errors="replace")
    elif kind == "object":
        entries = schema.get("data")
        if not isinstance(entries, list):
            raise MissingField("Missing object data")
        out = {"type": "object"}
        if "name" in schema:
            out["name"] = schema["name"]
        out["data"] = _unpack_sequence(buffer, entries, offset)
    else:
        raise UnsupportedType(f"Unknown type: {kind}")

    return out


def get_byte_length(entry: Any) -> int:
    """Return the encoded size of an unpacked typed value."""
    if not isinstance(entry, dict):
        raise UnsupportedType(f"Invalid entry: {entry!r}")

    kind = entry.get("type")
    if kind is None:
        raise MissingField("Missing type")
    if kind in _FIXED_SIZES:
        return _FIXED_SIZES[kind]
    if kind == "bytes":
        return _declared_size(entry, "size")
    if kind == "string":
        return _declared_size(entry, "length")
    if kind == "object":
        entries = entry.get("data")
        if not isinstance(entries, list):
            raise MissingField("Missing object data")
        return sum(get_byte_length(item) for item in entries)

    raise UnsupportedType(f"Unknown type for byte length: {kind}")

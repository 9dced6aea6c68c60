# pyright: standard

import msgspec


def to_json(obj: object) -> bytes:
    """Encode an object to JSON bytes using msgspec."""
    return msgspec.json.encode(obj)


def to_json_text(obj: object) -> str:
    return to_json(obj).decode("utf-8")


def from_json[T](type_spec: type[T], data: bytes | str) -> T:
    """Decode JSON data (bytes or str) into the specified type."""
    return msgspec.json.decode(data, type=type_spec)


def convert[T](obj: object, type_spec: type[T]) -> T:
    """Convert an object to the specified type using msgspec."""
    return msgspec.convert(obj, type_spec)


def clone[T](obj: T) -> T:
    """Deep copy a JSON-compatible value by round-tripping it through the encoder."""
    return from_json(type(obj), to_json(obj))

from collections.abc import Iterable


def split(payload: str, max_size: int) -> list[str]:
    """
    Splits a payload into consecutive pieces of at most `max_size` characters.

    Every piece but the last is exactly `max_size` long. An empty payload
    yields no pieces. The payload is treated as opaque text.
    """
    if max_size <= 0:
        raise ValueError(f"max_size must be positive, got {max_size}")
    return [payload[i : i + max_size] for i in range(0, len(payload), max_size)]


def join(chunks: Iterable[str]) -> str:
    return "".join(chunks)

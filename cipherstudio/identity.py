from __future__ import annotations

import secrets
import time

_ALPHABET = "0123456789abcdefghijklmnopqrstuvwxyz"


def _base36(n: int) -> str:
    if n <= 0:
        return "0"
    out: list[str] = []
    while n:
        n, r = divmod(n, 36)
        out.append(_ALPHABET[r])
    return "".join(reversed(out))


def generate_id() -> str:
    """Return a fresh project id: base-36 millisecond time plus 64 random bits.

    The time prefix keeps ids roughly sortable by creation; the random suffix
    makes collisions within the same millisecond negligible.
    """
    ts = _base36(time.time_ns() // 1_000_000)
    rnd = _base36(secrets.randbits(64)).rjust(13, "0")
    return f"{ts}{rnd}"

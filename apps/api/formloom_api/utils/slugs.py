"""Slug and identifier helpers."""

import re
import secrets
import time

_ALPHABET = "0123456789abcdefghijklmnopqrstuvwxyz"

_NON_WORD = re.compile(r"[^\w\s-]", re.ASCII)
_SEPARATOR_RUNS = re.compile(r"[\s_-]+", re.ASCII)
_EDGE_HYPHENS = re.compile(r"^-+|-+$")


def base36(value: int) -> str:
    """Encode a non-negative integer in lowercase base 36."""
    if value < 0:
        raise ValueError("base36 requires a non-negative integer")
    if value == 0:
        return "0"
    digits = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(_ALPHABET[rem])
    return "".join(reversed(digits))


def now_ms() -> int:
    return int(time.time() * 1000)


def generate_slug(text: str) -> str:
    """Derive a URL-safe slug from a display name.

    Lowercases, drops anything that is not a word character, whitespace or
    hyphen, collapses whitespace/underscore/hyphen runs to one hyphen and
    trims hyphens from both ends. May return an empty string.
    """
    slug = text.lower().strip()
    slug = _NON_WORD.sub("", slug)
    slug = _SEPARATOR_RUNS.sub("-", slug)
    return _EDGE_HYPHENS.sub("", slug)


def generate_id() -> str:
    """Random base-36 string followed by the base-36 millisecond timestamp."""
    return base36(secrets.randbits(52)) + base36(now_ms())

"""
Pair key helpers.

Wrestler pairs are unordered. Every table that stores a pair keeps the lower
id first so that (A, B) and (B, A) collide on the same key.
"""

from typing import Tuple


def normalize_pair(a: int, b: int) -> Tuple[int, int]:
    return (a, b) if a < b else (b, a)


def pair_key(a: int, b: int) -> str:
    low, high = normalize_pair(a, b)
    return f"{low}|{high}"

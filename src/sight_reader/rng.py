from __future__ import annotations

"""
Deterministic seeded PRNG for score generation.

Same seed, same stream, on every platform. The generator never touches
the global ``random`` module.
"""

from typing import Sequence, TypeVar

T = TypeVar("T")

_MASK32 = 0xFFFFFFFF


def _imul(a: int, b: int) -> int:
    # 32-bit wrapping multiply
    return (a * b) & _MASK32


class Mulberry32:
    """Mulberry32: 32-bit state, one add and two multiply-xorshift rounds per draw."""

    __slots__ = ("_state",)

    def __init__(self, seed: int) -> None:
        self._state = int(seed) & _MASK32

    def next_uint32(self) -> int:
        self._state = (self._state + 0x6D2B79F5) & _MASK32
        t = self._state
        t = _imul(t ^ (t >> 15), t | 1)
        t ^= (t + _imul(t ^ (t >> 7), t | 61)) & _MASK32
        return (t ^ (t >> 14)) & _MASK32

    def random(self) -> float:
        # Uniform [0,1) using 32-bit integer / 2**32
        return self.next_uint32() / 4294967296.0

    def choice(self, items: Sequence[T]) -> T:
        if not items:
            raise IndexError("cannot choose from an empty sequence")
        return items[int(self.random() * len(items))]

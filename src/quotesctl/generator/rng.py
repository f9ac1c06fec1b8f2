"""Deterministic xorshift64 random stream.

One stream per invocation is passed explicitly to everything that draws from
it (instrument walks, symbol selection, timestamp jitter). Identical seeds
produce identical draw sequences, which keeps generated fixtures reproducible.
"""

from __future__ import annotations

import time

MASK64 = 0xFFFFFFFFFFFFFFFF
_UNIT_SCALE = 1.0 / (1 << 53)


class RandomStream:
    """
    xorshift64 generator over a single 64-bit state word.

    The state is never zero: zero is a fixed point of the shift/xor steps, so a
    zero seed is replaced by wall-clock nanoseconds with the low bit forced on.
    """

    def __init__(self, seed: int = 0) -> None:
        """
        Initialize the stream.

        Args:
            seed: Any integer; negative values are taken as their 64-bit
                two's complement. 0 means "seed from the wall clock".
        """
        state = seed & MASK64
        if state == 0:
            state = (time.time_ns() | 1) & MASK64
        self._state = state
        self.seed = seed

    @property
    def state(self) -> int:
        return self._state

    def draw64(self) -> int:
        """Advance the state and return it as an unsigned 64-bit integer."""
        x = self._state
        x ^= (x << 13) & MASK64
        x ^= x >> 7
        x ^= (x << 17) & MASK64
        self._state = x
        return x

    def draw_unit(self) -> float:
        """Uniform float in [0, 1) built from the high 53 bits of a draw."""
        return (self.draw64() >> 11) * _UNIT_SCALE

    def draw_bounded(self, n: int) -> int:
        """
        Integer in [0, n) by modulo reduction.

        Slightly biased when n is not a power of two. Fine for synthetic
        data, not for anything security related.
        """
        if n <= 0:
            raise ValueError(f"Bound must be positive, got: {n}")
        return self.draw64() % n

    def draw_signed_unit(self) -> float:
        """Uniform float in [-1, 1)."""
        return self.draw_unit() * 2.0 - 1.0

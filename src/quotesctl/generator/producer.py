"""Payload producer shared by the interactive and paced delivery loops.

A single producer type with two variants, selected once per invocation:
``RANDOM_WALK`` draws ticks from the instrument set, ``FILE`` reads the next
replay lines.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
from dataclasses import dataclass, field

from quotesctl.constants import SourceKind
from quotesctl.data.line_source import LineSource
from quotesctl.generator.instruments import Instrument
from quotesctl.generator.rng import RandomStream
from quotesctl.time.calendar import now_ms


@dataclass
class PayloadProducer:
    """Next-payload capability over either a random walk or a replay file."""

    kind: SourceKind
    instruments: list[Instrument] = field(default_factory=list)
    rng: RandomStream | None = None
    with_timestamp: bool = False
    lines: LineSource | None = None
    clock: Callable[[], int] = now_ms

    @classmethod
    def random_walk(
        cls,
        instruments: list[Instrument],
        rng: RandomStream,
        with_timestamp: bool = False,
        clock: Callable[[], int] = now_ms,
    ) -> PayloadProducer:
        if not instruments:
            raise ValueError("At least one instrument is required")
        return cls(
            kind=SourceKind.RANDOM_WALK,
            instruments=instruments,
            rng=rng,
            with_timestamp=with_timestamp,
            clock=clock,
        )

    @classmethod
    def from_file(cls, lines: LineSource) -> PayloadProducer:
        return cls(kind=SourceKind.FILE, lines=lines)

    @property
    def total(self) -> int | None:
        """Total payloads available, None for the unbounded random walk."""
        if self.kind == SourceKind.FILE:
            return self.lines.total
        return None

    @property
    def produced(self) -> int | None:
        if self.kind == SourceKind.FILE:
            return self.lines.position
        return None

    def exhausted(self) -> bool:
        if self.kind == SourceKind.FILE:
            return self.lines.done()
        return False

    def _random_payload(self) -> str:
        instrument = self.instruments[self.rng.draw_bounded(len(self.instruments))]
        instrument.tick(self.rng)
        if self.with_timestamp:
            return instrument.format_with_timestamp(self.clock())
        return instrument.format_compact()

    def next_payload(self) -> str | None:
        """One payload, or None once a file source is exhausted."""
        if self.kind == SourceKind.FILE:
            return self.lines.next_line()
        return self._random_payload()

    def next_batch(self, n: int) -> list[str]:
        """Up to ``n`` payloads in production order."""
        if self.kind == SourceKind.FILE:
            return self.lines.next_batch(n)
        return [self._random_payload() for _ in range(max(n, 0))]


def generate_range(
    instruments: list[Instrument],
    rng: RandomStream,
    from_ms: int,
    to_ms: int,
    interval_ms: int,
) -> Iterator[str]:
    """
    Timestamped ticks for ``[from_ms, to_ms)``.

    The cursor advances by ``interval_ms``; at each step every instrument
    ticks once and is stamped with the step start plus a jitter drawn from
    ``[0, interval_ms)``.
    """
    if interval_ms <= 0:
        raise ValueError(f"Interval must be positive, got: {interval_ms}")

    t_ms = from_ms
    while t_ms < to_ms:
        for instrument in instruments:
            instrument.tick(rng)
            jitter = rng.draw_bounded(interval_ms)
            yield instrument.format_with_timestamp(t_ms + jitter)
        t_ms += interval_ms

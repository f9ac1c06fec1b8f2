"""Delivery loops.

Four disciplines share one DeliveryChannel contract:

- Interactive: one command per input line (Enter, N, q).
- Paced: one payload per pacer tick until cancelled or the source runs dry.
  With a file producer this is the paced file replay.
- Bulk generate: a timestamped range written to stdout, then optionally sent
  in chunks or at a fixed rate.

Each loop runs on a single task with at most one send in flight. A send
failure propagates to the caller; nothing is retried.
"""

from __future__ import annotations

import asyncio
import logging
import sys
import threading
import time
from dataclasses import dataclass
from typing import TextIO

import click

from quotesctl.constants import (
    BULK_PROGRESS_EVERY,
    DEFAULT_CHUNK_SIZE,
    PACED_PROGRESS_EVERY,
    PaceEvent,
    SourceKind,
)
from quotesctl.delivery.base import DeliveryChannel, DeliveryError, to_batch
from quotesctl.delivery.pacing import Pacer
from quotesctl.generator.instruments import Instrument
from quotesctl.generator.producer import PayloadProducer, generate_range
from quotesctl.generator.rng import RandomStream
from quotesctl.time.calendar import format_epoch

logger = logging.getLogger(__name__)

QUIT_COMMANDS = frozenset({"q", "quit"})


@dataclass
class DeliveryStats:
    """Outcome of one delivery loop."""

    sent: int = 0
    elapsed: float = 0.0
    cancelled: bool = False
    total: int | None = None
    batches: int = 0

    @property
    def rate(self) -> float:
        if self.elapsed <= 0:
            return 0.0
        return self.sent / self.elapsed

    def progress(self) -> str:
        count = f"{self.sent}/{self.total}" if self.total is not None else str(self.sent)
        return f"{count} sent ({self.rate:.1f} msg/s)"

    def summary(self) -> str:
        label = "stopped" if self.cancelled else "done"
        count = f"{self.sent}/{self.total}" if self.total is not None else str(self.sent)
        return f"{label}: {count} sent in {self.elapsed:.1f}s ({self.rate:.1f} msg/s)"


class InputReader:
    """
    Feeds lines from a blocking text stream into the event loop.

    A daemon thread does the blocking reads and hands each line over with
    ``call_soon_threadsafe``, so waiting for input can race cancellation
    without pinning interpreter shutdown on a pending read.
    """

    def __init__(self, stream: TextIO):
        self.stream = stream
        self._queue: asyncio.Queue[str | None] = asyncio.Queue()
        self._thread: threading.Thread | None = None

    def start(self) -> None:
        loop = asyncio.get_running_loop()

        def pump() -> None:
            try:
                for line in iter(self.stream.readline, ""):
                    loop.call_soon_threadsafe(self._queue.put_nowait, line)
                loop.call_soon_threadsafe(self._queue.put_nowait, None)
            except RuntimeError:
                # Event loop closed while we were blocked on input
                return

        self._thread = threading.Thread(target=pump, name="input-reader", daemon=True)
        self._thread.start()

    async def readline(self, cancel: asyncio.Event) -> str | None:
        """Next raw line, or None at end of input or on cancellation."""
        if self._thread is None:
            self.start()
        if cancel.is_set():
            return None

        line_wait = asyncio.ensure_future(self._queue.get())
        cancel_wait = asyncio.ensure_future(cancel.wait())
        try:
            await asyncio.wait({line_wait, cancel_wait}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            pending = [task for task in (line_wait, cancel_wait) if not task.done()]
            for task in pending:
                task.cancel()
            await asyncio.gather(*pending, return_exceptions=True)

        if line_wait.done() and not line_wait.cancelled():
            return line_wait.result()
        return None


def parse_count(command: str) -> int | None:
    """Positive integer command, or None for anything else."""
    try:
        n = int(command)
    except ValueError:
        return None
    return n if n > 0 else None


async def run_interactive(
    channel: DeliveryChannel,
    producer: PayloadProducer,
    stdin: TextIO | None = None,
    out: TextIO | None = None,
    cancel: asyncio.Event | None = None,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> DeliveryStats:
    """
    Operator-driven delivery.

    Empty line sends one payload, a positive integer N sends N payloads in
    batches of at most ``chunk_size``, ``q``/``quit`` stops. End of input or
    an exhausted file ends the loop without error.
    """
    out = out or sys.stdout
    cancel = cancel or asyncio.Event()
    reader = InputReader(stdin or sys.stdin)
    is_file = producer.kind == SourceKind.FILE
    stats = DeliveryStats(total=producer.total)
    start = time.monotonic()

    while not producer.exhausted():
        if is_file:
            click.echo(f"[{producer.produced}/{producer.total}] > ", nl=False, file=out)
        else:
            click.echo("> ", nl=False, file=out)

        raw = await reader.readline(cancel)
        if raw is None:
            stats.cancelled = cancel.is_set()
            break
        command = raw.strip()

        if command in QUIT_COMMANDS:
            click.echo("Bye!", file=out)
            break

        if command == "":
            payload = producer.next_payload()
            if payload is None:
                continue
            await channel.send_lines([payload])
            stats.sent += 1
            stats.batches += 1
            click.echo(f"  -> {payload}", file=out)
            continue

        n = parse_count(command)
        if n is None:
            click.echo("  unknown command (Enter, N, q)", file=out)
            continue

        batch = producer.next_batch(n)
        if not batch:
            click.echo("  EOF", file=out)
            continue
        for payload in batch:
            click.echo(f"  -> {payload}", file=out)
        stats.batches += await channel.send_chunked(to_batch(batch), chunk_size)
        stats.sent += len(batch)
        if is_file:
            click.echo(f"  sent {len(batch)} lines", file=out)

    if is_file and producer.exhausted():
        click.echo("  EOF: all lines sent", file=out)

    stats.elapsed = time.monotonic() - start
    logger.info(f"Interactive session ended: {stats.sent} sent in {stats.batches} batches")
    return stats


async def run_paced(
    channel: DeliveryChannel,
    producer: PayloadProducer,
    rate: float,
    cancel: asyncio.Event | None = None,
    out: TextIO | None = None,
    err: TextIO | None = None,
    progress_every: int = PACED_PROGRESS_EVERY,
) -> DeliveryStats:
    """
    Send one payload per pacer tick.

    Stops when ``cancel`` is set (summary says "stopped") or when a file
    producer is exhausted ("done"). A send already started always completes
    before cancellation is looked at again.
    """
    out = out or sys.stdout
    err = err or sys.stderr
    pacer = Pacer(rate, cancel)
    stats = DeliveryStats(total=producer.total)

    click.echo("Sending... (Ctrl+C to stop)", file=out)
    start = time.monotonic()
    pacer.start()

    while not producer.exhausted():
        if await pacer.next_event() is PaceEvent.CANCEL:
            stats.cancelled = True
            break

        payload = producer.next_payload()
        if payload is None:
            break
        try:
            await channel.send_lines([payload])
        except DeliveryError as e:
            click.echo("", file=err)
            logger.error(f"Send failed after {stats.sent} messages: {e}")
            raise
        stats.sent += 1
        stats.batches += 1

        if progress_every > 0 and stats.sent % progress_every == 0:
            stats.elapsed = time.monotonic() - start
            click.echo(f"\r  {stats.progress()}", nl=False, file=err)

    stats.elapsed = time.monotonic() - start
    lead = "\n" if stats.cancelled else "\r"
    click.echo(f"{lead}  {stats.summary()}", file=out)
    return stats


async def run_bulk_generate(
    instruments: list[Instrument],
    rng: RandomStream,
    from_sec: int,
    to_sec: int,
    interval_ms: int,
    channel: DeliveryChannel | None = None,
    rate: float = 0.0,
    out: TextIO | None = None,
    err: TextIO | None = None,
    cancel: asyncio.Event | None = None,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    progress_every: int = BULK_PROGRESS_EVERY,
) -> DeliveryStats:
    """
    Generate ``[from_sec, to_sec)`` at ``interval_ms`` and optionally deliver it.

    Every line goes to ``out`` first, in generation order. With a channel and
    no rate the lines are sent back-to-back in ``chunk_size`` batches; with a
    positive rate they are sent one at a time at 1/rate spacing.
    """
    out = out or sys.stdout
    err = err or sys.stderr
    if to_sec <= from_sec:
        raise ValueError("--to must be after --from")
    if interval_ms <= 0:
        raise ValueError(f"Interval must be positive, got: {interval_ms}")

    logger.info(
        f"Generating {format_epoch(from_sec)} -> {format_epoch(to_sec)} "
        f"every {interval_ms}ms for {len(instruments)} symbols"
    )
    lines: list[str] = []
    for line in generate_range(instruments, rng, from_sec * 1000, to_sec * 1000, interval_ms):
        click.echo(line, file=out)
        lines.append(line)
    out.flush()

    click.echo(
        f"Generated {len(lines)} ticks ({len(instruments)} symbols x {to_sec - from_sec}s, "
        f"interval {interval_ms}ms)",
        file=err,
    )

    stats = DeliveryStats(total=len(lines))
    if channel is None or not lines:
        return stats

    click.echo(f"Sending {len(lines)} messages...", file=err)
    start = time.monotonic()

    if rate <= 0:
        stats.batches = await channel.send_chunked(to_batch(lines), chunk_size)
        stats.sent = len(lines)
    else:
        pacer = Pacer(rate, cancel)
        pacer.start()
        for line in lines:
            if await pacer.next_event() is PaceEvent.CANCEL:
                stats.cancelled = True
                break
            await channel.send_lines([line])
            stats.sent += 1
            stats.batches += 1
            if progress_every > 0 and stats.sent % progress_every == 0:
                stats.elapsed = time.monotonic() - start
                click.echo(f"\r  {stats.progress()}", nl=False, file=err)

    stats.elapsed = time.monotonic() - start
    click.echo(f"\r  {stats.summary()}", file=err)
    return stats

"""Base delivery channel interface."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterator, Sequence
from dataclasses import dataclass


class DeliveryError(ConnectionError):
    """A batch could not be delivered. Fatal to the running loop."""


@dataclass(frozen=True)
class OutboundMessage:
    """One serialized record, optionally carrying its own record timestamp."""

    payload: bytes
    timestamp_ms: int | None = None

    @classmethod
    def from_text(cls, text: str, timestamp_ms: int | None = None) -> OutboundMessage:
        return cls(text.encode("utf-8"), timestamp_ms)


def to_batch(lines: Sequence[str]) -> list[OutboundMessage]:
    """Wrap text payloads as untimestamped messages, preserving order."""
    return [OutboundMessage.from_text(line) for line in lines]


def chunked(items: Sequence, size: int) -> Iterator[Sequence]:
    """Consecutive slices of at most ``size`` items."""
    if size <= 0:
        raise ValueError(f"Chunk size must be positive, got: {size}")
    for start in range(0, len(items), size):
        yield items[start : start + size]


class DeliveryChannel(ABC):
    """
    Abstract transport for batches of serialized records.

    A channel is owned by exactly one delivery loop for one invocation and is
    never sent to concurrently.
    """

    def __init__(self) -> None:
        self.messages_sent = 0
        self.batches_sent = 0

    @abstractmethod
    async def open(self) -> None:
        """Prepare the underlying transport."""
        pass

    @abstractmethod
    async def close(self) -> None:
        """Release the underlying transport."""
        pass

    @abstractmethod
    async def _send(self, batch: Sequence[OutboundMessage]) -> None:
        pass

    async def send(self, batch: Sequence[OutboundMessage]) -> None:
        """
        Deliver one ordered, non-empty batch in a single attempt.

        Raises:
            DeliveryError: If the transport rejects or times out the batch.
        """
        if not batch:
            return
        await self._send(batch)
        self.messages_sent += len(batch)
        self.batches_sent += 1

    async def send_lines(self, lines: Sequence[str]) -> None:
        await self.send(to_batch(lines))

    async def send_chunked(self, messages: Sequence[OutboundMessage], chunk_size: int) -> int:
        """Send ``messages`` back-to-back in chunks; returns the number of batches."""
        batches = 0
        for chunk in chunked(messages, chunk_size):
            await self.send(chunk)
            batches += 1
        return batches

    async def __aenter__(self) -> DeliveryChannel:
        await self.open()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

"""Shared test fixtures."""

from __future__ import annotations

import asyncio
from collections.abc import Sequence

import pytest

from quotesctl.delivery.base import DeliveryChannel, DeliveryError, OutboundMessage


class RecordingChannel(DeliveryChannel):
    """In-memory channel that keeps every batch it was handed."""

    def __init__(self, fail_after: int | None = None, send_delay: float = 0.0):
        super().__init__()
        self.batches: list[list[OutboundMessage]] = []
        self.fail_after = fail_after
        self.send_delay = send_delay
        self.opened = False
        self.closed = False
        self.on_send = None

    async def open(self) -> None:
        self.opened = True

    async def close(self) -> None:
        self.closed = True

    async def _send(self, batch: Sequence[OutboundMessage]) -> None:
        if self.fail_after is not None and len(self.batches) >= self.fail_after:
            raise DeliveryError("broker unavailable")
        if self.on_send is not None:
            self.on_send(batch)
        if self.send_delay:
            await asyncio.sleep(self.send_delay)
        self.batches.append(list(batch))

    @property
    def payloads(self) -> list[str]:
        return [m.payload.decode("utf-8") for batch in self.batches for m in batch]

    @property
    def batch_sizes(self) -> list[int]:
        return [len(batch) for batch in self.batches]


@pytest.fixture
def channel() -> RecordingChannel:
    return RecordingChannel()


@pytest.fixture
def failing_channel() -> RecordingChannel:
    return RecordingChannel(fail_after=0)


@pytest.fixture
def replay_file(tmp_path):
    path = tmp_path / "replay.csv"
    path.write_text(
        "EURUSD,1.08500,1.08520\n"
        "\n"
        "GBPUSD;1.26500;1.26520\n"
        "   USDJPY   150.000\t150.020   \n"
        "XAUUSD, 2650.00 ;2650.70\n"
        "NZDUSD 0.61500 0.61520\n",
        encoding="utf-8",
    )
    return path


@pytest.fixture
def slow_channel() -> RecordingChannel:
    return RecordingChannel(send_delay=0.05)

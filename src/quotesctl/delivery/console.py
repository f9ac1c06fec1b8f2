"""Delivery channel that writes payloads to a text stream (dry run)."""

from __future__ import annotations

import logging
import sys
from collections.abc import Sequence
from typing import TextIO

import click

from quotesctl.delivery.base import DeliveryChannel, OutboundMessage

logger = logging.getLogger(__name__)


class ConsoleChannel(DeliveryChannel):
    """Prints each payload on its own line instead of producing to a queue."""

    def __init__(self, stream: TextIO | None = None):
        super().__init__()
        self.stream = stream or sys.stdout

    async def open(self) -> None:
        logger.info("Console channel opened (dry run, nothing is sent to Kafka)")

    async def close(self) -> None:
        self.stream.flush()
        logger.info(f"Console channel closed. Wrote {self.messages_sent} messages")

    async def _send(self, batch: Sequence[OutboundMessage]) -> None:
        for message in batch:
            click.echo(message.payload.decode("utf-8"), file=self.stream)

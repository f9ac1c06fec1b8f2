"""Deterministic per-minute history set used to reload a symbol's range."""

from __future__ import annotations

import logging

from quotesctl.delivery.base import OutboundMessage
from quotesctl.time.calendar import format_epoch

logger = logging.getLogger(__name__)

_MASK64 = 0xFFFFFFFFFFFFFFFF
_LCG_MULTIPLIER = 6364136223846793005
_LCG_INCREMENT = 1442695040888963407

BID_BASE = 11540
ASK_BASE = 11560


def minute_shift(index: int) -> int:
    """Pseudo-random offset in [0, 100) derived from the minute index."""
    return (((index * _LCG_MULTIPLIER + _LCG_INCREMENT) & _MASK64) >> 33) % 100


def build_history_messages(symbol: str, from_sec: int, to_sec: int) -> list[OutboundMessage]:
    """
    One message per whole minute in ``[from_sec, to_sec)``.

    Each record carries its minute instant as the record timestamp as well as
    ``ts_ms`` inside the payload.
    """
    if to_sec <= from_sec:
        raise ValueError("--to must be after --from")

    count = (to_sec - from_sec) // 60
    messages: list[OutboundMessage] = []
    for i in range(count):
        ts_sec = from_sec + i * 60
        shift = minute_shift(i)
        payload = (
            f'{{"symbol":"{symbol}","bid":1.{BID_BASE + shift:05d},'
            f'"ask":1.{ASK_BASE + shift:05d},"ts_ms":{ts_sec * 1000}}}'
        )
        messages.append(OutboundMessage(payload.encode("utf-8"), timestamp_ms=ts_sec * 1000))

    logger.info(
        f"Built {count} history ticks for {symbol} "
        f"({format_epoch(from_sec)} -> {format_epoch(to_sec)})"
    )
    return messages

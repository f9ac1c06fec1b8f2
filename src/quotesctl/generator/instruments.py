"""Instrument catalog and bounded random-walk price model."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from quotesctl.generator.rng import RandomStream

logger = logging.getLogger(__name__)


class UnknownInstrumentError(ValueError):
    """Raised when a symbol filter matches nothing in the catalog."""


@dataclass(frozen=True)
class Tick:
    """Immutable bid/ask snapshot of an instrument."""

    symbol: str
    bid: float
    ask: float
    decimals: int
    ts_ms: int | None = None

    def to_json(self) -> str:
        """Render the wire payload. Field order and precision are fixed."""
        p = self.decimals
        body = f'{{"symbol":"{self.symbol}","bid":{self.bid:.{p}f},"ask":{self.ask:.{p}f}'
        if self.ts_ms is not None:
            body += f',"ts_ms":{self.ts_ms}'
        return body + "}"


@dataclass
class Instrument:
    """
    A tradable symbol with a mutable bid price.

    Everything except ``price`` is fixed for the life of the process.
    The price never drops below ``step``.
    """

    name: str
    price: float  # current bid
    spread: float  # ask = bid + spread
    decimals: int  # formatting precision
    step: float  # max price change per tick

    @property
    def ask(self) -> float:
        return self.price + self.spread

    def tick(self, rng: RandomStream) -> None:
        """Move the bid by a uniform draw in [-step, step), clamped to the step floor."""
        self.price += rng.draw_signed_unit() * self.step
        if self.price < self.step:
            self.price = self.step

    def snapshot(self, ts_ms: int | None = None) -> Tick:
        return Tick(
            symbol=self.name, bid=self.price, ask=self.ask, decimals=self.decimals, ts_ms=ts_ms
        )

    def format_compact(self) -> str:
        """{"symbol":..,"bid":..,"ask":..}"""
        return self.snapshot().to_json()

    def format_with_timestamp(self, ts_ms: int) -> str:
        """{"symbol":..,"bid":..,"ask":..,"ts_ms":..}"""
        return self.snapshot(ts_ms).to_json()


# name, bid, spread, decimals, step
CATALOG: tuple[tuple[str, float, float, int, float], ...] = (
    ("XAUUSD", 2650.00, 0.70, 2, 2.00),
    ("XAGUSD", 31.50, 0.03, 2, 0.05),
    ("EURUSD", 1.08500, 0.00020, 5, 0.00050),
    ("GBPUSD", 1.26500, 0.00020, 5, 0.00050),
    ("USDJPY", 150.000, 0.020, 3, 0.050),
    ("AUDUSD", 0.65500, 0.00020, 5, 0.00050),
    ("USDCHF", 0.88000, 0.00020, 5, 0.00050),
    ("USDCAD", 1.36000, 0.00020, 5, 0.00050),
    ("NZDUSD", 0.61500, 0.00020, 5, 0.00050),
)

CATALOG_NAMES: tuple[str, ...] = tuple(row[0] for row in CATALOG)


def new_instruments() -> list[Instrument]:
    """Fresh instrument states for every catalog entry."""
    return [Instrument(*row) for row in CATALOG]


def select_instruments(symbol: str | None = None, price: float = 0.0) -> list[Instrument]:
    """
    Build the active instrument set.

    Args:
        symbol: Case-insensitive catalog name; empty/None keeps all nine.
        price: Starting bid override, applied only when exactly one
            instrument is active and the value is positive.

    Raises:
        UnknownInstrumentError: If ``symbol`` is not in the catalog. The
            message lists every available name.
    """
    instruments = new_instruments()
    if symbol:
        instruments = [i for i in instruments if i.name.lower() == symbol.lower()]
        if not instruments:
            raise UnknownInstrumentError(
                f"unknown symbol: {symbol}\navailable: {' '.join(CATALOG_NAMES)}"
            )

    if price > 0 and len(instruments) == 1:
        instruments[0].price = price
        logger.info(f"Starting price for {instruments[0].name} set to {price}")

    return instruments

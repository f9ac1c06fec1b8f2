"""Synthetic quote generation."""

from quotesctl.generator.instruments import Instrument, Tick, select_instruments
from quotesctl.generator.producer import PayloadProducer, generate_range
from quotesctl.generator.rng import RandomStream

__all__ = [
    "Instrument",
    "Tick",
    "select_instruments",
    "PayloadProducer",
    "generate_range",
    "RandomStream",
]

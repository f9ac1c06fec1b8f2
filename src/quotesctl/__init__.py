"""Synthetic quote generation and delivery for the quotes pipeline."""

__version__ = "0.1.0"

"""Delivery channels and loops."""

from quotesctl.delivery.base import DeliveryChannel, DeliveryError, OutboundMessage
from quotesctl.delivery.console import ConsoleChannel
from quotesctl.delivery.kafka import KafkaDeliveryChannel

__all__ = [
    "DeliveryChannel",
    "DeliveryError",
    "OutboundMessage",
    "ConsoleChannel",
    "KafkaDeliveryChannel",
]

"""Tests for delivery channels: base contract, console and Kafka."""

import io

import pytest
from confluent_kafka import KafkaException

from quotesctl.config_loader import KafkaConfig
from quotesctl.delivery.base import DeliveryError, OutboundMessage, chunked, to_batch
from quotesctl.delivery.console import ConsoleChannel
from quotesctl.delivery.kafka import KafkaDeliveryChannel, build_producer_config


class FakeProducer:
    """Mimics the confluent_kafka.Producer surface used by the channel."""

    def __init__(self, settings, delivery_error=None, remaining=0, raise_on_produce=None):
        self.settings = settings
        self.delivery_error = delivery_error
        self.remaining = remaining
        self.raise_on_produce = raise_on_produce
        self.produced = []
        self.flushes = 0
        self._callbacks = []

    def produce(self, topic, value=None, on_delivery=None, **kwargs):
        if self.raise_on_produce is not None:
            raise self.raise_on_produce
        self.produced.append((topic, value, kwargs.get("timestamp")))
        self._callbacks.append(on_delivery)

    def flush(self, timeout=None):
        self.flushes += 1
        for callback in self._callbacks:
            callback(self.delivery_error, None)
        self._callbacks.clear()
        return self.remaining


def make_channel(config=None, **producer_kwargs):
    created = []

    def factory(settings):
        producer = FakeProducer(settings, **producer_kwargs)
        created.append(producer)
        return producer

    channel = KafkaDeliveryChannel(config or KafkaConfig(topic="quotes"), producer_factory=factory)
    return channel, created


class TestBatchHelpers:
    def test_to_batch_preserves_order(self):
        batch = to_batch(["a", "b"])
        assert [m.payload for m in batch] == [b"a", b"b"]
        assert all(m.timestamp_ms is None for m in batch)

    def test_chunked_sizes(self):
        assert [len(c) for c in chunked(list(range(2500)), 1000)] == [1000, 1000, 500]

    def test_chunked_rejects_zero(self):
        with pytest.raises(ValueError):
            list(chunked([1], 0))


class TestChannelContract:
    @pytest.mark.asyncio
    async def test_send_chunked_keeps_order(self, channel):
        messages = to_batch([str(i) for i in range(2500)])
        batches = await channel.send_chunked(messages, 1000)

        assert batches == 3
        assert channel.batch_sizes == [1000, 1000, 500]
        assert channel.payloads == [str(i) for i in range(2500)]
        assert channel.messages_sent == 2500
        assert channel.batches_sent == 3

    @pytest.mark.asyncio
    async def test_empty_batch_is_skipped(self, channel):
        await channel.send([])
        assert channel.batches == []
        assert channel.batches_sent == 0

    @pytest.mark.asyncio
    async def test_context_manager_opens_and_closes(self, channel):
        async with channel:
            assert channel.opened
        assert channel.closed

    @pytest.mark.asyncio
    async def test_failed_send_not_counted(self, failing_channel):
        with pytest.raises(DeliveryError):
            await failing_channel.send_lines(["x"])
        assert failing_channel.messages_sent == 0


class TestConsoleChannel:
    @pytest.mark.asyncio
    async def test_writes_one_line_per_payload(self):
        stream = io.StringIO()
        async with ConsoleChannel(stream) as console:
            await console.send_lines(["first", "second"])
        assert stream.getvalue() == "first\nsecond\n"
        assert console.messages_sent == 2


class TestProducerConfig:
    def test_plaintext_without_credentials(self):
        settings = build_producer_config(KafkaConfig(broker="b:9092"))
        assert settings["bootstrap.servers"] == "b:9092"
        assert settings["security.protocol"] == "PLAINTEXT"
        assert "sasl.mechanisms" not in settings

    def test_sasl_ssl_with_credentials(self):
        settings = build_producer_config(KafkaConfig(user="admin", password="secret", tls=True))
        assert settings["security.protocol"] == "SASL_SSL"
        assert settings["sasl.mechanisms"] == "PLAIN"
        assert settings["sasl.username"] == "admin"
        assert settings["sasl.password"] == "secret"
        assert settings["enable.ssl.certificate.verification"] is False


class TestKafkaDeliveryChannel:
    @pytest.mark.asyncio
    async def test_batch_produced_in_order_and_flushed(self):
        channel, created = make_channel()
        async with channel:
            await channel.send_lines(["a", "b", "c"])

        producer = created[0]
        assert [p[1] for p in producer.produced] == [b"a", b"b", b"c"]
        assert all(p[0] == "quotes" for p in producer.produced)
        assert producer.flushes >= 1
        assert channel.messages_sent == 3

    @pytest.mark.asyncio
    async def test_record_timestamp_passed_through(self):
        channel, created = make_channel()
        async with channel:
            await channel.send([OutboundMessage(b"x", timestamp_ms=1771185600000)])

        assert created[0].produced == [("quotes", b"x", 1771185600000)]

    @pytest.mark.asyncio
    async def test_delivery_error_fails_batch(self):
        channel, _ = make_channel(delivery_error="Broker: Topic authorization failed")
        await channel.open()
        with pytest.raises(DeliveryError, match="authorization"):
            await channel.send_lines(["a", "b"])
        assert channel.messages_sent == 0

    @pytest.mark.asyncio
    async def test_flush_timeout_fails_batch(self):
        channel, _ = make_channel(remaining=2)
        await channel.open()
        with pytest.raises(DeliveryError, match="not delivered"):
            await channel.send_lines(["a", "b"])

    @pytest.mark.asyncio
    async def test_full_queue_fails_batch(self):
        channel, _ = make_channel(raise_on_produce=BufferError("Local: Queue full"))
        await channel.open()
        with pytest.raises(DeliveryError, match="Queue full"):
            await channel.send_lines(["a"])

    @pytest.mark.asyncio
    async def test_producer_creation_failure(self):
        def factory(settings):
            raise KafkaException("bad config")

        channel = KafkaDeliveryChannel(KafkaConfig(), producer_factory=factory)
        with pytest.raises(DeliveryError, match="connect failed"):
            await channel.open()

    @pytest.mark.asyncio
    async def test_send_opens_lazily(self):
        channel, created = make_channel()
        await channel.send_lines(["a"])
        assert len(created) == 1
        await channel.close()

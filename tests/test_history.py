"""Tests for the per-minute history reload set."""

import json
import re

import pytest

from quotesctl.generator.history import build_history_messages, minute_shift
from quotesctl.time.calendar import parse_strict

FROM = parse_strict("2026-02-15 00:00:00")
PAYLOAD_RE = re.compile(
    r'^\{"symbol":"EURUSD","bid":1\.(\d{5}),"ask":1\.(\d{5}),"ts_ms":(\d+)\}$'
)


class TestMinuteShift:
    def test_known_values(self):
        # ((i * 6364136223846793005 + 1442695040888963407) mod 2**64) >> 33, mod 100
        assert minute_shift(0) == 7
        assert minute_shift(1) == 74

    def test_range(self):
        assert all(0 <= minute_shift(i) < 100 for i in range(5000))

    def test_deterministic(self):
        assert [minute_shift(i) for i in range(20)] == [minute_shift(i) for i in range(20)]

    def test_varies(self):
        assert len({minute_shift(i) for i in range(200)}) > 10


class TestBuildHistory:
    def test_one_per_minute(self):
        messages = build_history_messages("EURUSD", FROM, FROM + 60 * 60)
        assert len(messages) == 60
        for i, message in enumerate(messages):
            ts_ms = (FROM + i * 60) * 1000
            assert message.timestamp_ms == ts_ms
            assert json.loads(message.payload)["ts_ms"] == ts_ms

    def test_payload_shape(self):
        for message in build_history_messages("EURUSD", FROM, FROM + 600):
            match = PAYLOAD_RE.match(message.payload.decode("utf-8"))
            assert match is not None
            bid, ask = int(match.group(1)), int(match.group(2))
            assert 11540 <= bid < 11640
            assert ask - bid == 20

    def test_first_minute_prices(self):
        first = build_history_messages("EURUSD", FROM, FROM + 60)[0]
        assert first.payload.decode("utf-8") == (
            f'{{"symbol":"EURUSD","bid":1.11547,"ask":1.11567,"ts_ms":{FROM * 1000}}}'
        )

    def test_partial_minute_dropped(self):
        assert len(build_history_messages("EURUSD", FROM, FROM + 179)) == 2

    def test_same_input_same_output(self):
        a = build_history_messages("EURUSD", FROM, FROM + 3600)
        b = build_history_messages("EURUSD", FROM, FROM + 3600)
        assert a == b

    def test_to_must_follow_from(self):
        with pytest.raises(ValueError, match="--to must be after --from"):
            build_history_messages("EURUSD", FROM, FROM)

"""
Tests for signal change events and their wire record
"""

import json
from datetime import datetime, timedelta

import pytest
import pytz

from signal_trader.data.models import Signal
from signal_trader.events.signal_events import MalformedEventError, SignalChangeEvent
from signal_trader.utils.timezone_utils import parse_timestamp

from tests.conftest import FIXED_NOW


class TestSignalChangeEvent:
    """Test cases for SignalChangeEvent."""

    def test_to_record(self):
        event = SignalChangeEvent("aapl", Signal.BUY, FIXED_NOW)

        assert event.key == "AAPL"
        assert event.to_record() == {"signal": "buy", "at": "2017-12-04T15:00:00+00:00"}

    def test_from_record_json(self):
        event = SignalChangeEvent.from_record(
            "aapl", '{"signal": "sell", "at": "2017-12-04T15:00:00Z"}'
        )

        assert event.key == "AAPL"
        assert event.signal == Signal.SELL
        assert event.emitted_at == FIXED_NOW

    def test_from_record_legacy_timestamp(self):
        event = SignalChangeEvent.from_record(
            "AAPL", json.dumps({"signal": "buy", "at": "2017-12-04 08:00:00 -0700"})
        )
        assert event.emitted_at == FIXED_NOW

    def test_from_record_bytes_and_dict(self):
        raw = {"signal": "buy", "at": "2017-12-04T15:00:00+00:00"}

        assert SignalChangeEvent.from_record("AAPL", raw).signal == Signal.BUY
        assert SignalChangeEvent.from_record("AAPL", json.dumps(raw).encode()).signal == Signal.BUY

    def test_unknown_signal_is_not_malformed(self):
        event = SignalChangeEvent.from_record(
            "AAPL", '{"signal": "hold", "at": "2017-12-04T15:00:00+00:00"}'
        )

        assert event.signal is None
        assert event.raw_signal == "hold"

    @pytest.mark.parametrize("key, value", [
        (None, '{"signal": "buy", "at": "2017-12-04T15:00:00+00:00"}'),
        ("AAPL", "not json"),
        ("AAPL", '["buy"]'),
        ("AAPL", '{"at": "2017-12-04T15:00:00+00:00"}'),
        ("AAPL", '{"signal": "buy"}'),
        ("AAPL", '{"signal": "buy", "at": "yesterday"}'),
        ("AAPL", '{"signal": "buy", "at": "9999-12-31T23:59:59-14:00"}'),
        ("AAPL", '{"signal": "buy", "at": "0001-01-01T00:00:00+14:00"}'),
    ])
    def test_malformed_records(self, key, value):
        with pytest.raises(MalformedEventError):
            SignalChangeEvent.from_record(key, value)

    def test_age(self):
        event = SignalChangeEvent("AAPL", Signal.BUY, FIXED_NOW - timedelta(hours=25))
        assert event.age(FIXED_NOW) == timedelta(hours=25)

    def test_age_across_timezones(self):
        eastern = pytz.timezone("America/New_York")
        emitted = eastern.localize(datetime(2017, 12, 4, 9, 0, 0))
        event = SignalChangeEvent("AAPL", Signal.BUY, emitted)

        assert event.age(FIXED_NOW) == timedelta(hours=1)

    def test_timestamp_beyond_utc_range(self):
        with pytest.raises(ValueError) as exc:
            parse_timestamp("9999-12-31T23:59:59-14:00")
        assert "out of range" in str(exc.value)

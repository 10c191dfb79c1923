"""Unit tests for the rate model and the timestamp rewriter."""

import sys
import os
import re
import threading
import logging
from datetime import datetime, timedelta

import pytest

# Add project root to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from geomsim.simulator.rate import RateModel, SECONDS_PER_UNIT, normalize_unit
from geomsim.source.geomessage import Geomessage
from geomsim.time_mapping.time_rewriter import TimestampRewriter, DATE_FORMAT
from geomsim.utils.status import InvalidRateError

TIMESTAMP = re.compile(r"^\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}$")


class TestRateModel:
    """Test simulator/rate.py - rate to tick interval conversion."""

    def test_defaults(self):
        rate = RateModel()
        assert rate.tick_interval_ms == 1000
        assert rate.throughput == 1
        assert rate.unit == "seconds"

    def test_per_second_shorthand(self):
        for freq in (0.25, 1, 2, 3, 7.5, 40):
            a, b = RateModel(), RateModel()
            a.set_frequency(freq)
            b.set_frequency(freq, 1, "seconds")
            assert a.tick_interval_ms == b.tick_interval_ms

    def test_interval_formula(self):
        cases = [
            (2, 1, "seconds", 500),
            (3, 1, "seconds", 333),
            (50, 6, "minutes", 7200),
            (1, 1, "hours", 3600000),
            (7, 2, "days", 24685714),
            (1, 1, "weeks", 604800000),
            (4, 0.5, "minutes", 7500),
        ]
        rate = RateModel()
        for count, time_count, unit, expected in cases:
            assert rate.set_frequency(count, time_count, unit) == expected
            assert rate.tick_interval_ms == expected
            assert expected == round(time_count * SECONDS_PER_UNIT[unit] / count * 1000)

    def test_interval_floor(self):
        rate = RateModel()
        rate.set_frequency(5000)
        assert rate.tick_interval_ms == 1

    def test_zero_frequency_rejected(self):
        rate = RateModel()
        rate.set_frequency(4)
        with pytest.raises(InvalidRateError):
            rate.set_frequency(0, 1, "seconds")
        assert rate.tick_interval_ms == 250
        assert rate.count == 4

    def test_negative_time_count_rejected(self):
        rate = RateModel()
        with pytest.raises(InvalidRateError):
            rate.set_frequency(1, -2, "minutes")
        assert rate.tick_interval_ms == 1000
        assert rate.unit == "seconds"

    def test_non_numeric_frequency_rejected(self):
        with pytest.raises(InvalidRateError):
            RateModel().set_frequency("fast")

    def test_non_finite_values_rejected(self):
        rate = RateModel()
        rate.set_frequency(2)
        for count, time_count in ((1, float("inf")), (float("inf"), 1),
                                  (float("nan"), 1), (1e-300, 1e300)):
            with pytest.raises(InvalidRateError):
                rate.set_frequency(count, time_count, "weeks")
        assert rate.tick_interval_ms == 500
        assert rate.count == 2

    def test_very_long_interval(self):
        rate = RateModel()
        assert rate.set_frequency(1, 20000, "weeks") == 20000 * 604800 * 1000

    def test_unknown_unit_defaults_to_seconds(self, caplog):
        rate = RateModel()
        with caplog.at_level(logging.WARNING):
            assert rate.set_frequency(2, 1, "fortnights") == 500
        assert rate.unit == "seconds"
        assert "fortnights" in caplog.text

    def test_unit_names_are_forgiving(self):
        assert normalize_unit("Minute") == "minutes"
        assert normalize_unit(" HOURS ") == "hours"
        assert normalize_unit(None) == "seconds"

    def test_throughput(self, caplog):
        rate = RateModel()
        with caplog.at_level(logging.WARNING):
            rate.set_throughput(3)
        assert rate.throughput == 3
        assert "Throughput 3" in caplog.text

    def test_invalid_throughput(self):
        rate = RateModel()
        for bad in (0, -1, 1.5, "two", True):
            with pytest.raises(InvalidRateError):
                rate.set_throughput(bad)
        assert rate.throughput == 1

    def test_message_frequency(self):
        rate = RateModel(50, 6, "minutes")
        assert rate.message_frequency() == pytest.approx(50 / 360)


class TestTimestampRewriter:
    """Test time_mapping/time_rewriter.py - time override fields."""

    def test_rewrites_only_configured_fields(self):
        fixed = datetime(2024, 5, 6, 7, 8, 9)
        rewriter = TimestampRewriter(["datetimevalidity", "missing"], clock=lambda: fixed)
        message = Geomessage([("_id", "a"), ("datetimevalidity", "2013-02-01 10:00:00")])
        rewriter.apply(message)
        assert message["datetimevalidity"] == "2024-05-06 07:08:09"
        assert message["_id"] == "a"
        assert "missing" not in message

    def test_format(self):
        rewriter = TimestampRewriter(["t"])
        message = rewriter.apply(Geomessage([("t", "old")]))
        assert TIMESTAMP.match(message["t"])
        datetime.strptime(message["t"], DATE_FORMAT)

    def test_timestamps_do_not_go_backwards(self):
        rewriter = TimestampRewriter(["t"])
        stamps = [rewriter.apply(Geomessage([("t", "")]))["t"] for _ in range(50)]
        assert stamps == sorted(stamps)

    def test_set_fields_replaces(self):
        rewriter = TimestampRewriter(["a", "b"])
        rewriter.set_fields(["c", "c", " ", "d"])
        assert rewriter.fields() == ["c", "d"]
        rewriter.set_fields("e")
        assert rewriter.fields() == ["e"]

    def test_no_fields_is_a_no_op(self):
        rewriter = TimestampRewriter()
        message = Geomessage([("t", "keep")])
        assert rewriter.apply(message)["t"] == "keep"

    def test_concurrent_updates(self):
        now = datetime(2024, 1, 1)
        rewriter = TimestampRewriter(["a"], clock=lambda: now + timedelta(seconds=1))
        errors = []

        def writer():
            try:
                for i in range(500):
                    rewriter.set_fields(["a"] if i % 2 else ["b"])
            except Exception as e:
                errors.append(e)

        def reader():
            try:
                for _ in range(500):
                    message = rewriter.apply(Geomessage([("a", "x"), ("b", "y")]))
                    assert message["a"] in ("x", "2024-01-01 00:00:01")
            except Exception as e:
                errors.append(e)

        threads = [threading.Thread(target=writer), threading.Thread(target=reader)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert errors == []


if __name__ == '__main__':
    pytest.main([__file__, '-v'])

# tests/test_measurement.py

import pytest

from events import Event
from measurement import CurveHistory, MeasurementAggregator, Stopwatch


def _hit(t, magnitude=None):
    return Event(timestamp=t, kind="detected", magnitude=magnitude)


def test_rate_is_windowed_count_then_smoothed():
    agg = MeasurementAggregator(window_ms=500.0, unit_scale=0.2, alpha=0.9)
    for t in (0.0, 100.0, 200.0, 300.0, 400.0):
        agg.record(_hit(t))
    value = agg.tick(450.0)
    assert agg.instantaneous == pytest.approx(5 * 0.2 * 1000.0 / 500.0)
    assert value == pytest.approx(0.1 * agg.instantaneous)


def test_history_only_holds_events_inside_the_window():
    agg = MeasurementAggregator(window_ms=500.0)
    for t in range(0, 1000, 50):
        agg.record(_hit(float(t)))
    agg.tick(1000.0)
    assert agg.history
    assert all(e.timestamp > 500.0 for e in agg.history)


def test_out_of_order_events_are_still_pruned():
    agg = MeasurementAggregator(window_ms=100.0)
    agg.record(_hit(950.0))
    agg.record(_hit(10.0))
    agg.tick(1000.0)
    assert [e.timestamp for e in agg.history] == [950.0]


def test_rate_decays_to_zero_after_the_window():
    agg = MeasurementAggregator(window_ms=500.0, alpha=0.9)
    for i in range(10):
        agg.record(_hit(i * 50.0))
    peak = agg.tick(499.0)
    assert peak > 0

    previous = peak
    for step in range(1, 200):
        value = agg.tick(1000.0 + step * 16.0)
        assert agg.instantaneous == 0.0
        assert value == pytest.approx(previous * 0.9)
        previous = value
    assert previous < 1e-6 * peak


def test_sum_mode_counts_absolute_magnitudes():
    agg = MeasurementAggregator(window_ms=1000.0, alpha=0.0, mode="sum")
    agg.record(_hit(0.0, 1.0))
    agg.record(_hit(10.0, -1.0))
    agg.record(_hit(20.0, 2.0))
    assert agg.tick(100.0) == pytest.approx(4.0)


def test_mean_mode_averages_magnitudes():
    agg = MeasurementAggregator(window_ms=500.0, alpha=0.0, mode="mean")
    agg.record(_hit(0.0, 0.1))
    agg.record(_hit(10.0, 0.3))
    assert agg.tick(20.0) == pytest.approx(0.2)
    assert agg.tick(2000.0) == 0.0


def test_reset_clears_history_and_value():
    agg = MeasurementAggregator()
    agg.record(_hit(0.0))
    agg.tick(10.0)
    agg.reset()
    assert len(agg.history) == 0
    assert agg.value == 0.0


@pytest.mark.parametrize("kwargs", [{"window_ms": 0.0}, {"mode": "median"}])
def test_invalid_configuration_raises(kwargs):
    with pytest.raises(ValueError):
        MeasurementAggregator(**kwargs)


def test_curve_history_keeps_points_after_min_step():
    history = CurveHistory(min_step=0.2)
    assert history.add(0.0, 1.0)
    assert not history.add(0.1, 2.0)
    assert not history.add(0.2, 2.0)
    assert history.add(0.35, 3.0)
    assert history.as_tuple() == ((0.0, 1.0), (0.35, 3.0))
    history.clear()
    assert history.as_tuple() == ()


def test_stopwatch_accumulates_across_runs():
    watch = Stopwatch()
    watch.toggle(1000.0)
    assert watch.elapsed(1500.0) == 500.0
    watch.toggle(2000.0)
    assert watch.elapsed(9000.0) == 1000.0
    watch.toggle(10000.0)
    assert watch.elapsed(10250.0) == 1250.0
    watch.reset()
    assert watch.elapsed(20000.0) == 0.0


@pytest.mark.parametrize("ms, text", [(0.0, "00:00.00"), (61234.0, "01:01.23"), (5999.0, "00:05.99")])
def test_stopwatch_format(ms, text):
    assert Stopwatch.format(ms) == text

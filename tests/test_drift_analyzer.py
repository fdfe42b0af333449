"""
Tests for drift, jitter and loss reporting
"""

import pytest

from beacon_sync.drift_analyzer import analyze_drift, format_drift_summary, is_consecutive
from beacon_sync.packet_codec import Event
from beacon_sync.regressor import Fit, IDENTITY_FIT


def make_events(sequences, period_us=100_000, offsets_ms=None, start_rx_ns=5_000_000_000):
    """Events one period apart in beacon time; receiver = start + beacon + offset"""
    offsets_ms = offsets_ms or [0.0] * len(sequences)
    events = []
    for i, (seq, offset) in enumerate(zip(sequences, offsets_ms)):
        beacon_us = i * period_us
        events.append(Event(
            sequence=seq,
            beacon_micros=beacon_us,
            receiver_nanos=start_rx_ns + beacon_us * 1000 + int(offset * 1e6),
        ))
    return events


class TestSequenceGaps:

    def test_one_gap(self):
        report = analyze_drift(make_events([10, 11, 13, 14]), IDENTITY_FIT)
        assert report.total_events == 4
        assert report.dropped_count == 1
        assert report.valid_count == 3
        assert report.loss_percent == pytest.approx(25.0)

    def test_wraparound_is_not_a_gap(self):
        report = analyze_drift(make_events([0xFFFFFFFE, 0xFFFFFFFF, 0, 1]), IDENTITY_FIT)
        assert report.dropped_count == 0
        assert report.valid_count == 4

    def test_repeated_sequence_counts_as_gap(self):
        report = analyze_drift(make_events([5, 5, 6]), IDENTITY_FIT)
        assert report.dropped_count == 1

    @pytest.mark.parametrize("prev,curr,expected", [
        (0, 1, True),
        (0xFFFFFFFF, 0, True),
        (0xFFFFFFFE, 0, False),
        (7, 7, False),
        (8, 7, False),
    ])
    def test_is_consecutive(self, prev, curr, expected):
        assert is_consecutive(prev, curr) is expected


class TestResiduals:

    def test_residuals_against_fit(self):
        events = make_events([1, 2, 3], offsets_ms=[1.0, -2.0, 3.0], start_rx_ns=0)
        report = analyze_drift(events, IDENTITY_FIT)
        assert report.mean_abs_residual_ms == pytest.approx(2.0)
        assert report.latest_residual_ms == pytest.approx(3.0)

    def test_latest_residual_is_signed(self):
        events = make_events([1, 2], offsets_ms=[0.0, -4.0], start_rx_ns=0)
        assert analyze_drift(events, IDENTITY_FIT).latest_residual_ms == pytest.approx(-4.0)

    def test_report_carries_fit(self):
        fit = Fit(alpha=5_000_000_000.0, beta=1.00001)
        report = analyze_drift(make_events([1, 2]), fit)
        assert report.alpha_ns == fit.alpha
        assert report.beta == fit.beta
        assert report.skew_ppm == pytest.approx(10.0)

    def test_perfect_fit_gives_zero_residual(self):
        fit = Fit(alpha=5_000_000_000.0, beta=1.0)
        report = analyze_drift(make_events([1, 2, 3, 4]), fit)
        assert report.mean_abs_residual_ms == pytest.approx(0.0, abs=1e-9)


class TestOffsetJitter:

    def test_median_baseline_and_jitter(self):
        events = make_events([1, 2, 3, 4], offsets_ms=[0.0, 1.0, 0.0, 5.0])
        report = analyze_drift(events, IDENTITY_FIT)
        assert report.baseline_offset_ms == pytest.approx(0.5)
        assert report.running_jitter_avg_ms == pytest.approx(1.5)
        assert report.latest_jitter_ms == pytest.approx(4.5)

    def test_offsets_relative_to_first_event(self):
        # Large fixed offset between clocks does not show up as jitter
        events = make_events([1, 2, 3], offsets_ms=[0.0, 0.0, 0.0], start_rx_ns=10**15)
        report = analyze_drift(events, IDENTITY_FIT)
        assert report.baseline_offset_ms == pytest.approx(0.0)
        assert report.running_jitter_avg_ms == pytest.approx(0.0)

    def test_gap_events_are_excluded(self):
        # Event after the gap carries a 50 ms outlier that must be ignored
        events = make_events([1, 2, 4, 5], offsets_ms=[0.0, 2.0, 50.0, 2.0])
        report = analyze_drift(events, IDENTITY_FIT)
        # Valid offsets: 0, 2, 2
        assert report.baseline_offset_ms == pytest.approx(2.0)
        assert report.running_jitter_avg_ms == pytest.approx(2.0 / 3.0)
        assert report.latest_jitter_ms == pytest.approx(0.0)


class TestRateAndSpans:

    def test_rate_from_beacon_intervals(self):
        report = analyze_drift(make_events([1, 2, 3, 4, 5], period_us=100_000), IDENTITY_FIT)
        assert report.mean_interval_ms == pytest.approx(100.0)
        assert report.packets_per_second == pytest.approx(10.0)

    def test_gap_interval_not_counted(self):
        events = make_events([1, 2, 3], period_us=1_000_000)
        # Lost frame between 3 and 5: the 2 s step is skipped
        events.append(Event(sequence=5, beacon_micros=4_000_000,
                            receiver_nanos=events[-1].receiver_nanos + 2_000_000_000))
        report = analyze_drift(events, IDENTITY_FIT)
        assert report.mean_interval_ms == pytest.approx(1000.0)
        assert report.packets_per_second == pytest.approx(1.0)

    def test_spans(self):
        events = [
            Event(sequence=1, beacon_micros=0, receiver_nanos=1_000_000_000),
            Event(sequence=2, beacon_micros=1_000_000, receiver_nanos=2_000_020_000),
            Event(sequence=3, beacon_micros=2_000_000, receiver_nanos=3_000_040_000),
        ]
        report = analyze_drift(events, IDENTITY_FIT)
        assert report.beacon_span_ms == pytest.approx(2000.0)
        assert report.receiver_span_ms == pytest.approx(2000.04)
        assert report.span_difference_ms == pytest.approx(0.04)

    def test_single_event(self):
        report = analyze_drift(make_events([42]), IDENTITY_FIT)
        assert report.total_events == 1
        assert report.dropped_count == 0
        assert report.mean_interval_ms == 0.0
        assert report.packets_per_second == 0.0
        assert report.beacon_span_ms == 0.0
        assert report.latest_jitter_ms == 0.0


class TestReportOutput:

    def test_empty_batch(self):
        report = analyze_drift([], IDENTITY_FIT)
        assert report.total_events == 0
        assert report.dropped_count == 0
        assert report.loss_percent == 0.0
        assert report.mean_abs_residual_ms == 0.0
        assert report.beta == 1.0

    def test_to_dict(self):
        d = analyze_drift(make_events([10, 11, 13, 14]), IDENTITY_FIT).to_dict()
        assert d['dropped_count'] == 1
        assert d['total_events'] == 4
        assert set(d) >= {'baseline_offset_ms', 'packets_per_second', 'span_difference_ms'}

    def test_summary_text(self):
        report = analyze_drift(make_events([10, 11, 13, 14]), IDENTITY_FIT)
        text = format_drift_summary(report)
        assert "Dropped (gaps):  1 (25.00%)" in text
        assert "packets/sec" in text
        assert "skew:" in text

    def test_summary_without_rate(self):
        text = format_drift_summary(analyze_drift([], IDENTITY_FIT))
        assert "packets/sec" not in text

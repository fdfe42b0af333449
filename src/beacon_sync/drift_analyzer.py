#!/usr/bin/env python3
"""
Drift Analyzer - Sync Quality Metrics for a Batch of Beacon Events

Pure function of (events, fit). Nothing is stored; every report is
recomputed from its inputs.

Metrics:
========
1. **Packet continuity**: sequence gaps (32-bit wrap 0xFFFFFFFF -> 0 is not a gap)
2. **Residuals**: observed receiver time minus the fit's prediction
3. **Baseline offset / jitter**: fit-independent. Per-event offset relative
   to the first event, median as baseline, jitter = |offset - baseline|
4. **Transmission rate**: mean beacon-clock interval between consecutive events
5. **Time spans**: elapsed beacon vs receiver time (difference = accumulated skew)

Events are taken in arrival order and need not be contiguous in sequence.
"""

import logging
from dataclasses import dataclass, asdict
from typing import List, Sequence

import numpy as np

from .packet_codec import Event, SEQUENCE_MODULUS
from .regressor import Fit, NS_PER_US, NS_PER_MS

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DriftReport:
    """Sync quality summary for one batch of events"""

    # Fit the report was computed against
    alpha_ns: float
    beta: float
    skew_ppm: float

    # Packet continuity
    total_events: int
    valid_count: int
    dropped_count: int
    loss_percent: float

    # Residuals against the fit
    mean_abs_residual_ms: float
    latest_residual_ms: float

    # Fit-independent offset / jitter (valid events only)
    baseline_offset_ms: float
    running_jitter_avg_ms: float
    latest_jitter_ms: float

    # Transmission rate (beacon clock)
    mean_interval_ms: float
    packets_per_second: float

    # Time spans, first -> last event
    beacon_span_ms: float
    receiver_span_ms: float
    span_difference_ms: float

    def to_dict(self) -> dict:
        return asdict(self)


def is_consecutive(prev_sequence: int, curr_sequence: int) -> bool:
    """True if curr follows prev by exactly one, including the 32-bit wrap"""
    return curr_sequence == (prev_sequence + 1) % SEQUENCE_MODULUS


def _valid_mask(events: Sequence[Event]) -> List[bool]:
    # First event always counts; later ones must follow their predecessor
    mask = [True] * len(events)
    for i in range(1, len(events)):
        mask[i] = is_consecutive(events[i - 1].sequence, events[i].sequence)
    return mask


def analyze_drift(events: Sequence[Event], fit: Fit) -> DriftReport:
    """
    Compute drift, jitter and loss statistics.

    Args:
        events: Decoded events in arrival order
        fit: Fit snapshot to compute residuals against

    Returns:
        DriftReport (all-zero metrics for an empty batch)
    """
    total = len(events)
    if total == 0:
        return DriftReport(
            alpha_ns=fit.alpha, beta=fit.beta, skew_ppm=fit.skew_ppm,
            total_events=0, valid_count=0, dropped_count=0, loss_percent=0.0,
            mean_abs_residual_ms=0.0, latest_residual_ms=0.0,
            baseline_offset_ms=0.0, running_jitter_avg_ms=0.0, latest_jitter_ms=0.0,
            mean_interval_ms=0.0, packets_per_second=0.0,
            beacon_span_ms=0.0, receiver_span_ms=0.0, span_difference_ms=0.0,
        )

    beacon_us = np.array([e.beacon_micros for e in events], dtype=np.float64)
    beacon_ns = beacon_us * NS_PER_US
    receiver_ns = np.array([e.receiver_nanos for e in events], dtype=np.float64)

    mask = _valid_mask(events)
    valid_idx = np.flatnonzero(mask)
    valid_count = len(valid_idx)
    dropped = total - valid_count

    # Residuals against the fit
    residuals_ms = (receiver_ns - (fit.alpha + fit.beta * beacon_ns)) / NS_PER_MS
    mean_abs_residual_ms = float(np.mean(np.abs(residuals_ms)))
    latest_residual_ms = float(residuals_ms[-1])

    # Offsets of valid events relative to the first valid one. Subtract raw
    # integers before converting so large monotonic values keep ns precision.
    ref = events[valid_idx[0]]
    offsets_ms = np.array([
        ((events[i].receiver_nanos - ref.receiver_nanos)
         - (events[i].beacon_micros - ref.beacon_micros) * 1000) / NS_PER_MS
        for i in valid_idx
    ], dtype=np.float64)
    baseline_offset_ms = float(np.median(offsets_ms))
    jitter_ms = np.abs(offsets_ms - baseline_offset_ms)
    running_jitter_avg_ms = float(np.mean(jitter_ms))
    latest_jitter_ms = float(jitter_ms[-1])

    # Beacon-clock intervals between consecutive pairs
    intervals_us = [
        events[i].beacon_micros - events[i - 1].beacon_micros
        for i in range(1, total)
        if mask[i]
    ]
    intervals_us = [iv for iv in intervals_us if iv > 0]
    if intervals_us:
        mean_interval_ms = float(np.mean(intervals_us)) / 1000.0
        packets_per_second = 1000.0 / mean_interval_ms
    else:
        mean_interval_ms = 0.0
        packets_per_second = 0.0

    first, last = events[0], events[-1]
    beacon_span_ms = (last.beacon_micros - first.beacon_micros) / 1000.0
    receiver_span_ms = (last.receiver_nanos - first.receiver_nanos) / NS_PER_MS

    if dropped:
        logger.debug(f"Drift analysis: {dropped}/{total} events out of sequence")

    return DriftReport(
        alpha_ns=fit.alpha,
        beta=fit.beta,
        skew_ppm=fit.skew_ppm,
        total_events=total,
        valid_count=valid_count,
        dropped_count=dropped,
        loss_percent=100.0 * dropped / total,
        mean_abs_residual_ms=mean_abs_residual_ms,
        latest_residual_ms=latest_residual_ms,
        baseline_offset_ms=baseline_offset_ms,
        running_jitter_avg_ms=running_jitter_avg_ms,
        latest_jitter_ms=latest_jitter_ms,
        mean_interval_ms=mean_interval_ms,
        packets_per_second=packets_per_second,
        beacon_span_ms=beacon_span_ms,
        receiver_span_ms=receiver_span_ms,
        span_difference_ms=receiver_span_ms - beacon_span_ms,
    )


def format_drift_summary(report: DriftReport) -> str:
    """
    Format a drift report for console display.

    Quantitative only, same grouping as the live metrics panel:
    fit, residuals, packet statistics, rate, spans.
    """
    lines = []
    lines.append(f"\n{'='*60}")
    lines.append("Beacon Sync Fit Metrics")
    lines.append(f"   alpha (ns):     {report.alpha_ns:.0f}")
    lines.append(f"   beta:           {report.beta:.9f}")
    lines.append(f"   skew:           {report.skew_ppm:+.3f} ppm")

    lines.append("\nResidual (sync error):")
    lines.append(f"   Mean |residual|: {report.mean_abs_residual_ms:.3f} ms")
    lines.append(f"   Latest residual: {report.latest_residual_ms:+.3f} ms")

    lines.append("\nOffset / Jitter:")
    lines.append(f"   Baseline offset: {report.baseline_offset_ms:+.3f} ms (median)")
    lines.append(f"   Jitter avg:      {report.running_jitter_avg_ms:.3f} ms")
    lines.append(f"   Latest jitter:   {report.latest_jitter_ms:.3f} ms")

    lines.append("\nPacket Statistics:")
    lines.append(f"   Total packets:   {report.total_events}")
    lines.append(f"   Dropped (gaps):  {report.dropped_count} ({report.loss_percent:.2f}%)")

    lines.append("\nTransmission Rate:")
    lines.append(f"   Avg interval:    {report.mean_interval_ms:.2f} ms")
    if report.mean_interval_ms > 0:
        lines.append(f"   Rate:            {report.packets_per_second:.2f} packets/sec")

    lines.append("\nTime Spans:")
    lines.append(f"   Beacon span:     {report.beacon_span_ms:.1f} ms")
    lines.append(f"   Receiver span:   {report.receiver_span_ms:.1f} ms")
    lines.append(f"   Difference:      {report.span_difference_ms:+.3f} ms")
    lines.append(f"{'='*60}")

    return "\n".join(lines)

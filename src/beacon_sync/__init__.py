"""
beacon-sync - Beacon-to-receiver timeline alignment

Fits receiver_ns ≈ alpha + beta * beacon_ns over a sliding window of
(beacon timestamp, arrival timestamp) pairs from a periodic beacon, and
reports drift, jitter and packet loss against that fit.

This is a one-way, receiver-side regression ("timeline alignment"), not a
clock synchronization protocol: there is no round-trip delay estimation.

Quick Start:
    from beacon_sync import SyncSession

    session = SyncSession()
    session.connect()
    session.handle_frame(frame_bytes)      # from the transport callback
    fit = session.get_fit()
    print(f"skew {fit.skew_ppm:+.2f} ppm")
"""

__version__ = "0.3.0"

from .packet_codec import (
    Event, DecodeError, PacketTooShortError, FRAME_SIZE, decode, encode_frame,
)
from .regressor import (
    Fit, IDENTITY_FIT, RegressorStatus, SlidingWindowRegressor, DEFAULT_WINDOW_SIZE,
)
from .time_mapper import (
    MappingRangeError, map_beacon_to_receiver_ns, map_beacon_to_receiver_ms, residual_ms,
)
from .drift_analyzer import DriftReport, analyze_drift, format_drift_summary, is_consecutive
from .receiver_clock import ReceiverClock, MonotonicClock, ManualClock
from .session import SyncSession, SessionConfig, SessionState, SessionMetrics
from .simulator import BeaconSimulator, SimulatorConfig
from .config import BeaconSyncConfig, SyncConfig, ConfigError, load_config
from .capture import CaptureFormatError, read_capture, write_capture

__all__ = [
    # === Core ===
    "Event",
    "DecodeError",
    "PacketTooShortError",
    "FRAME_SIZE",
    "decode",
    "encode_frame",
    "Fit",
    "IDENTITY_FIT",
    "RegressorStatus",
    "SlidingWindowRegressor",
    "DEFAULT_WINDOW_SIZE",
    "MappingRangeError",
    "map_beacon_to_receiver_ns",
    "map_beacon_to_receiver_ms",
    "residual_ms",
    "DriftReport",
    "analyze_drift",
    "format_drift_summary",
    "is_consecutive",
    # === Session / clocks ===
    "ReceiverClock",
    "MonotonicClock",
    "ManualClock",
    "SyncSession",
    "SessionConfig",
    "SessionState",
    "SessionMetrics",
    # === Tooling ===
    "BeaconSimulator",
    "SimulatorConfig",
    "BeaconSyncConfig",
    "SyncConfig",
    "ConfigError",
    "load_config",
    "CaptureFormatError",
    "read_capture",
    "write_capture",
]

#!/usr/bin/env python3
"""
Beacon Sync Session

Per-connection glue between the transport and the clock fit:
- Stamp each frame with the receiver clock immediately on arrival
- Decode it; bad frames are counted and dropped, never fatal
- Feed the regressor and keep a bounded history for drift reports
- Reset everything on connect and on disconnect. A frame stamped before a
  reset is dropped, so one window never mixes two connections

The transport itself (scan, connect, notifications) lives outside this
package. It only has to call connect(), handle_frame() and disconnect().

Architecture:
    transport -> SyncSession.handle_frame -> decode -> SlidingWindowRegressor
                                                     -> history -> analyze_drift
"""

import time
import logging
import threading
from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import Any, Deque, Dict, List, Optional

from .packet_codec import DecodeError, Event, decode
from .receiver_clock import MonotonicClock, ReceiverClock
from .regressor import DEFAULT_WINDOW_SIZE, Fit, FitListener, RegressorStatus, SlidingWindowRegressor
from .drift_analyzer import DriftReport, analyze_drift
from .time_mapper import map_beacon_to_receiver_ns

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_SIZE = 1000


class SessionState(Enum):
    """Connection states as seen by the session"""
    DISCONNECTED = "disconnected"
    CONNECTED = "connected"


@dataclass
class SessionMetrics:
    """Counters for the current connection"""
    frames_received: int = 0
    frames_accepted: int = 0
    frames_rejected: int = 0
    connections: int = 0
    connected_at: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'frames_received': self.frames_received,
            'frames_accepted': self.frames_accepted,
            'frames_rejected': self.frames_rejected,
            'connections': self.connections,
            'uptime_seconds': (time.monotonic() - self.connected_at) if self.connected_at else 0.0,
        }


@dataclass
class SessionConfig:
    """Configuration for a sync session"""
    name: str = "beacon"
    window_size: int = DEFAULT_WINDOW_SIZE
    history_size: int = DEFAULT_HISTORY_SIZE

    def __post_init__(self):
        if self.window_size < 2:
            raise ValueError("window_size must be >= 2")
        if self.history_size < 1:
            raise ValueError("history_size must be >= 1")


class SyncSession:
    """
    Timeline alignment for one beacon connection.

    Example:
        session = SyncSession(SessionConfig(name='esp32'))
        session.connect()
        # in the transport's notification callback:
        session.handle_frame(payload)
        ...
        report = session.drift_report()
        session.disconnect()
    """

    def __init__(self, config: Optional[SessionConfig] = None,
                 clock: Optional[ReceiverClock] = None):
        self.config = config or SessionConfig()
        self.clock = clock or MonotonicClock()
        self.regressor = SlidingWindowRegressor(window_size=self.config.window_size)

        self.state = SessionState.DISCONNECTED
        self.metrics = SessionMetrics()
        self._history: Deque[Event] = deque(maxlen=self.config.history_size)
        # Bumped by every reset; frames stamped under an older value are stale
        self._generation = 0
        # Reentrant: fit listeners run under it and may read the session back
        self._lock = threading.RLock()

    def connect(self) -> None:
        """New connection: start from an empty window and identity fit"""
        with self._lock:
            self._reset_locked()
            self.state = SessionState.CONNECTED
            self.metrics.connections += 1
            self.metrics.connected_at = time.monotonic()
        logger.info(f"{self.config.name}: connected, sync state reset")

    def disconnect(self) -> None:
        """Connection lost or closed: drop all samples of this connection"""
        with self._lock:
            self._reset_locked()
            self.state = SessionState.DISCONNECTED
            self.metrics.connected_at = None
        logger.info(f"{self.config.name}: disconnected, sync state reset")

    def _reset_locked(self) -> None:
        self._generation += 1
        self._history.clear()
        self.metrics.frames_received = 0
        self.metrics.frames_accepted = 0
        self.metrics.frames_rejected = 0
        self.regressor.reset()

    def handle_frame(self, data: bytes, receiver_nanos: Optional[int] = None) -> Optional[Event]:
        """
        Process one inbound frame.

        Args:
            data: Raw frame bytes from the transport
            receiver_nanos: Arrival time if the transport already stamped it
                            (replay); otherwise stamped here from the clock

        Returns:
            Decoded Event, or None if the frame was rejected or belongs to a
            connection that has since been reset
        """
        with self._lock:
            generation = self._generation

        # Stamp first so decode cost never lands in the arrival time
        if receiver_nanos is None:
            receiver_nanos = self.clock.now_ns()

        try:
            event = decode(data, receiver_nanos)
        except DecodeError as e:
            with self._lock:
                if generation != self._generation:
                    return None
                self.metrics.frames_received += 1
                self.metrics.frames_rejected += 1
                rejected = self.metrics.frames_rejected
            logger.warning(f"{self.config.name}: dropping frame ({e}), {rejected} rejected so far")
            return None

        with self._lock:
            if generation != self._generation:
                logger.debug(f"{self.config.name}: seq={event.sequence} arrived before a reset, dropped")
                return None
            if self.state is not SessionState.CONNECTED:
                logger.debug(f"{self.config.name}: frame while disconnected")
            self.metrics.frames_received += 1
            self._accept_locked(event)

        logger.debug(f"{self.config.name}: seq={event.sequence} t_us={event.beacon_micros} "
                     f"rx_ns={event.receiver_nanos}")
        return event

    def handle_event(self, event: Event) -> None:
        """Feed an already decoded event (e.g. from a capture file)"""
        with self._lock:
            self.metrics.frames_received += 1
            self._accept_locked(event)

    def _accept_locked(self, event: Event) -> None:
        # Window and history change together, never split by a reset
        self._history.append(event)
        self.regressor.add_sample(event.beacon_micros, event.receiver_nanos)
        self.metrics.frames_accepted += 1

    def get_fit(self) -> Fit:
        return self.regressor.get_fit()

    def status(self) -> RegressorStatus:
        return self.regressor.status()

    def history(self) -> List[Event]:
        """Copy of the retained events, oldest first"""
        with self._lock:
            return list(self._history)

    def map_beacon_to_receiver_ns(self, beacon_micros: int) -> int:
        """Beacon time -> receiver timeline using the current fit"""
        return map_beacon_to_receiver_ns(self.regressor.get_fit(), beacon_micros)

    def drift_report(self) -> DriftReport:
        """Drift/jitter/loss report over the retained history and current fit"""
        with self._lock:
            events = list(self._history)
            fit = self.regressor.get_fit()
        return analyze_drift(events, fit)

    def add_fit_listener(self, listener: FitListener) -> None:
        self.regressor.add_listener(listener)

    def remove_fit_listener(self, listener: FitListener) -> None:
        self.regressor.remove_listener(listener)

    def get_stats(self) -> Dict[str, Any]:
        """Session statistics"""
        with self._lock:
            stats = self.metrics.to_dict()
            stats['state'] = self.state.value
            stats['history_size'] = len(self._history)
            stats.update(self.regressor.status().to_dict())
        return stats

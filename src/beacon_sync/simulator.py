#!/usr/bin/env python3
"""
Synthetic Beacon - Frames with a Known Clock Relationship

Emits frames the way the beacon firmware does: one [seq:u32][t_us:u64]
notification per period, sequence incrementing by one and wrapping at 2**32.
Each frame comes with the receiver arrival time a host would stamp:

    receiver_ns = offset_ns + (1 + skew_ppm * 1e-6) * beacon_ns + latency + jitter

Latency jitter is one-sided (exponential): radio links deliver late, never
early. Lost frames still consume a sequence number, so the receiver sees a
gap exactly like a dropped notification.

Usage:
    sim = BeaconSimulator(SimulatorConfig(skew_ppm=25.0, seed=1))
    for frame, receiver_ns in sim.frames(100):
        session.handle_frame(frame, receiver_nanos=receiver_ns)
"""

import logging
from dataclasses import dataclass
from typing import Iterator, List, Optional, Tuple

import numpy as np

from .packet_codec import Event, SEQUENCE_MODULUS, decode, encode_frame

logger = logging.getLogger(__name__)


@dataclass
class SimulatorConfig:
    """Synthetic beacon parameters"""
    period_ms: float = 1000.0       # Notification period (firmware default: 1 s)
    offset_ms: float = 0.0          # Receiver time at beacon time 0
    skew_ppm: float = 0.0           # Receiver rate vs beacon rate
    latency_ms: float = 5.0         # Fixed link latency
    jitter_ms: float = 0.0          # Mean of the exponential extra latency
    loss_rate: float = 0.0          # Probability a frame never arrives
    start_sequence: int = 0
    start_beacon_us: int = 0
    seed: Optional[int] = None

    def __post_init__(self):
        if self.period_ms <= 0:
            raise ValueError("period_ms must be positive")
        if self.jitter_ms < 0 or self.latency_ms < 0:
            raise ValueError("latency_ms and jitter_ms must be >= 0")
        if not 0.0 <= self.loss_rate < 1.0:
            raise ValueError("loss_rate must be in [0, 1)")
        if not 0 <= self.start_sequence < SEQUENCE_MODULUS:
            raise ValueError("start_sequence must fit in 32 bits")
        if self.start_beacon_us < 0:
            raise ValueError("start_beacon_us must be >= 0")

    @property
    def beta(self) -> float:
        return 1.0 + self.skew_ppm * 1e-6

    @property
    def offset_ns(self) -> float:
        return self.offset_ms * 1e6


class BeaconSimulator:
    """Generates (frame, receiver_ns) pairs with a known alpha/beta"""

    def __init__(self, config: Optional[SimulatorConfig] = None):
        self.config = config or SimulatorConfig()
        self.rng = np.random.default_rng(self.config.seed)

        self._sequence = self.config.start_sequence
        self._beacon_us = self.config.start_beacon_us
        self.frames_sent = 0
        self.frames_lost = 0

    def _arrival_ns(self, beacon_us: int) -> int:
        cfg = self.config
        latency_ns = cfg.latency_ms * 1e6
        if cfg.jitter_ms > 0:
            latency_ns += self.rng.exponential(cfg.jitter_ms * 1e6)
        return int(round(cfg.offset_ns + cfg.beta * beacon_us * 1000.0 + latency_ns))

    def frames(self, count: int) -> Iterator[Tuple[bytes, int]]:
        """
        Emit `count` beacon periods.

        Lost frames are skipped, so fewer than `count` pairs may be yielded.
        """
        period_us = int(round(self.config.period_ms * 1000.0))
        for _ in range(count):
            sequence = self._sequence
            beacon_us = self._beacon_us
            self._sequence = (self._sequence + 1) % SEQUENCE_MODULUS
            self._beacon_us += period_us
            self.frames_sent += 1

            if self.config.loss_rate > 0 and self.rng.random() < self.config.loss_rate:
                self.frames_lost += 1
                logger.debug(f"Simulated loss of seq={sequence}")
                continue

            yield encode_frame(sequence, beacon_us), self._arrival_ns(beacon_us)

    def events(self, count: int) -> List[Event]:
        """Same as frames(), already decoded"""
        return [decode(frame, receiver_ns) for frame, receiver_ns in self.frames(count)]

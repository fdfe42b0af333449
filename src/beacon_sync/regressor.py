#!/usr/bin/env python3
"""
Sliding Window Regressor - Beacon-to-Receiver Clock Fit

Maintains a least-squares affine fit over the most recent samples:

    receiver_ns ≈ alpha + beta * beacon_ns

    alpha = offset in nanoseconds (predicted receiver time at beacon time 0)
    beta  = skew, dimensionless (receiver rate / beacon rate, 1.0 = same rate)

Design:
- Window is a bounded deque: append at the tail, evict from the head
- Two-pass least squares recomputed over the whole window on every sample
  (O(window_size), window is tens of samples)
- Degenerate windows (< 2 samples, zero beacon variance) keep the last fit
- No outlier rejection: a late sample weighs fully until it is evicted

Thread safety:
    One writer (the frame arrival path) and any number of readers. The
    window, fit and RMS residual live behind a single lock, so a reader never
    sees alpha and beta from different windows. Readers get immutable Fit
    snapshots and never touch the window.
"""

import math
import logging
import threading
from collections import deque
from dataclasses import dataclass
from typing import Callable, Deque, List, Tuple

import numpy as np

logger = logging.getLogger(__name__)

DEFAULT_WINDOW_SIZE = 50
NS_PER_US = 1000.0
NS_PER_MS = 1_000_000.0


@dataclass(frozen=True)
class Fit:
    """Immutable (alpha, beta) snapshot, safe to hand to any thread"""
    alpha: float = 0.0      # Offset (ns)
    beta: float = 1.0       # Skew (dimensionless)

    @property
    def skew(self) -> float:
        """Rate difference beta - 1"""
        return self.beta - 1.0

    @property
    def skew_ppm(self) -> float:
        return self.skew * 1e6

    def is_identity(self) -> bool:
        return self.alpha == 0.0 and self.beta == 1.0

    def to_dict(self) -> dict:
        return {
            'alpha_ns': self.alpha,
            'beta': self.beta,
            'skew_ppm': self.skew_ppm,
        }


IDENTITY_FIT = Fit(alpha=0.0, beta=1.0)

FitListener = Callable[[Fit], None]


@dataclass(frozen=True)
class RegressorStatus:
    """Consistent view of the regressor taken under one lock acquisition"""
    fit: Fit
    rms_residual_ms: float
    sample_count: int
    window_size: int
    fit_updates: int

    def to_dict(self) -> dict:
        d = self.fit.to_dict()
        d.update({
            'rms_residual_ms': self.rms_residual_ms,
            'sample_count': self.sample_count,
            'window_size': self.window_size,
            'fit_updates': self.fit_updates,
        })
        return d


class SlidingWindowRegressor:
    """
    Incremental windowed least-squares fit of receiver time on beacon time.

    Example:
        regressor = SlidingWindowRegressor(window_size=50)
        regressor.add_sample(beacon_micros=1_000_000, receiver_nanos=5_000_000_000)
        regressor.add_sample(beacon_micros=2_000_000, receiver_nanos=6_000_000_020)
        fit = regressor.get_fit()

    Call reset() whenever the upstream connection drops or is re-established.
    Samples from two sessions must never share a window.
    """

    def __init__(self, window_size: int = DEFAULT_WINDOW_SIZE):
        """
        Args:
            window_size: Number of most recent samples in the fit (>= 2)
        """
        if window_size < 2:
            raise ValueError(f"window_size must be >= 2, got {window_size}")
        self._window_size = int(window_size)

        # (beacon_ns, receiver_ns) pairs, oldest first
        self._window: Deque[Tuple[float, float]] = deque()
        self._fit = IDENTITY_FIT
        self._rms_residual_ms = 0.0
        self._fit_updates = 0

        self._listeners: List[FitListener] = []
        self._lock = threading.Lock()

        logger.debug(f"SlidingWindowRegressor initialized: window={self._window_size}")

    @property
    def window_size(self) -> int:
        return self._window_size

    def add_sample(self, beacon_micros: int, receiver_nanos: int) -> None:
        """
        Add one (beacon time, receiver time) observation and refit.

        Args:
            beacon_micros: Beacon clock timestamp (microseconds)
            receiver_nanos: Receiver monotonic timestamp at arrival (nanoseconds)
        """
        with self._lock:
            self._window.append((beacon_micros * NS_PER_US, float(receiver_nanos)))
            while len(self._window) > self._window_size:
                self._window.popleft()

            updated = self._recompute_locked()
            if not updated:
                return
            fit = self._fit
            listeners = list(self._listeners)

        for listener in listeners:
            try:
                listener(fit)
            except Exception as e:
                logger.warning(f"Fit listener {listener!r} failed: {e}")

    def _recompute_locked(self) -> bool:
        """Refit over the current window. Returns False on a degenerate window."""
        n = len(self._window)
        if n < 2:
            return False

        samples = np.array(self._window, dtype=np.float64)
        tb = samples[:, 0]
        tr = samples[:, 1]

        # Compare extremes first: the mean of identical large values can round
        # away from the value itself and fake a tiny variance
        if tb.min() == tb.max():
            logger.debug(f"Degenerate window ({n} samples share one beacon time), keeping fit")
            return False

        tb_mean = tb.mean()
        tr_mean = tr.mean()
        dx = tb - tb_mean
        dy = tr - tr_mean

        var_tb = float(np.dot(dx, dx))
        if var_tb == 0.0:
            logger.debug(f"Degenerate window ({n} samples share one beacon time), keeping fit")
            return False

        beta = float(np.dot(dx, dy)) / var_tb
        alpha = float(tr_mean) - beta * float(tb_mean)

        residuals = tr - (alpha + beta * tb)
        rms_ns = math.sqrt(float(np.dot(residuals, residuals)) / n)

        self._fit = Fit(alpha=alpha, beta=beta)
        self._rms_residual_ms = rms_ns / NS_PER_MS
        self._fit_updates += 1
        return True

    def get_fit(self) -> Fit:
        """Current (alpha, beta) snapshot"""
        with self._lock:
            return self._fit

    def rms_residual_ms(self) -> float:
        """RMS of (receiver - predicted) over the window, in ms. 0.0 before any fit."""
        with self._lock:
            return self._rms_residual_ms

    def sample_count(self) -> int:
        """Current window occupancy"""
        with self._lock:
            return len(self._window)

    def status(self) -> RegressorStatus:
        with self._lock:
            return RegressorStatus(
                fit=self._fit,
                rms_residual_ms=self._rms_residual_ms,
                sample_count=len(self._window),
                window_size=self._window_size,
                fit_updates=self._fit_updates,
            )

    def reset(self) -> None:
        """Clear the window and restore the identity fit (alpha=0, beta=1)"""
        with self._lock:
            dropped = len(self._window)
            self._window.clear()
            self._fit = IDENTITY_FIT
            self._rms_residual_ms = 0.0
            self._fit_updates = 0
        logger.info(f"Regressor reset ({dropped} samples discarded)")

    def add_listener(self, listener: FitListener) -> None:
        """Call listener(fit) after every successful refit"""
        with self._lock:
            self._listeners.append(listener)

    def remove_listener(self, listener: FitListener) -> None:
        with self._lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

"""
Offline plots of a beacon capture

Two panels:
    1. Elapsed beacon time and elapsed receiver time vs sequence
    2. Residual against the fit vs sequence
"""

import logging
from pathlib import Path
from typing import Sequence, Union

import numpy as np
import matplotlib
matplotlib.use('Agg')
import matplotlib.pyplot as plt

from .packet_codec import Event
from .regressor import Fit, NS_PER_MS

logger = logging.getLogger(__name__)


def plot_capture(events: Sequence[Event], fit: Fit, output_path: Union[str, Path]) -> Path:
    """
    Render a capture to PNG.

    Raises:
        ValueError: fewer than 2 events
    """
    if len(events) < 2:
        raise ValueError("Need at least 2 events to plot")

    output_path = Path(output_path)
    first = events[0]
    seq = np.array([e.sequence for e in events], dtype=np.int64)
    beacon_ms = np.array([(e.beacon_micros - first.beacon_micros) / 1000.0 for e in events])
    receiver_ms = np.array([(e.receiver_nanos - first.receiver_nanos) / NS_PER_MS for e in events])
    residual_ms = np.array([
        (e.receiver_nanos - (fit.alpha + fit.beta * e.beacon_nanos)) / NS_PER_MS
        for e in events
    ])

    fig, axes = plt.subplots(2, 1, figsize=(12, 8), sharex=True)

    ax1 = axes[0]
    ax1.plot(seq, beacon_ms, marker='o', markersize=2, label='Beacon elapsed', color='#3F51B5')
    ax1.plot(seq, receiver_ms, marker='o', markersize=2, label='Receiver elapsed', color='#4CAF50')
    ax1.set_ylabel('Elapsed (ms)')
    ax1.set_title('Sequence vs Timestamps')
    ax1.legend(loc='best')
    ax1.grid(True, alpha=0.3)

    ax2 = axes[1]
    ax2.plot(seq, residual_ms, marker='.', linestyle='none', color='#E53935')
    ax2.axhline(0.0, color='gray', linewidth=1)
    ax2.set_xlabel('Sequence')
    ax2.set_ylabel('Residual (ms)')
    ax2.set_title(f'Residual vs fit (skew {fit.skew_ppm:+.2f} ppm)')
    ax2.grid(True, alpha=0.3)

    plt.tight_layout()
    output_path.parent.mkdir(parents=True, exist_ok=True)
    fig.savefig(output_path, dpi=120)
    plt.close(fig)

    logger.info(f"Plot saved to {output_path}")
    return output_path

#!/usr/bin/env python3
"""
Simulated Session Demo

Drives a SyncSession the way a transport would: connect, one handle_frame()
per notification, a drop in the middle, reconnect. The beacon is simulated,
so the true offset and skew are known and can be compared with the fit.

Usage:
    python examples/simulated_session_demo.py
    python examples/simulated_session_demo.py --skew-ppm -35 --jitter-ms 4
"""

import argparse
import sys
from pathlib import Path

# Add parent directory to path for development
sys.path.insert(0, str(Path(__file__).parent.parent / 'src'))

from beacon_sync import (
    BeaconSimulator,
    SimulatorConfig,
    SyncSession,
    SessionConfig,
    format_drift_summary,
)


def demo_fit_convergence(sim_config: SimulatorConfig):
    """Watch the fit settle as frames arrive"""
    print("\n" + "="*60)
    print("Demo 1: Fit Convergence")
    print("="*60)

    session = SyncSession(SessionConfig(name='demo', window_size=30))
    updates = []
    session.add_fit_listener(updates.append)
    session.connect()

    sim = BeaconSimulator(sim_config)
    for i, (frame, rx_ns) in enumerate(sim.frames(90)):
        session.handle_frame(frame, receiver_nanos=rx_ns)
        if i in (1, 5, 15, 30, 60):
            fit = session.get_fit()
            print(f"  after {i + 1:3d} frames: alpha={fit.alpha / 1e6:10.3f} ms  "
                  f"skew={fit.skew_ppm:+8.3f} ppm  rms={session.status().rms_residual_ms:.3f} ms")

    print(f"\n  True:  offset+latency={sim_config.offset_ms + sim_config.latency_ms:.3f} ms  "
          f"skew={sim_config.skew_ppm:+.3f} ppm")
    print(f"  {len(updates)} fit updates, {sim.frames_lost} frames lost")
    print(format_drift_summary(session.drift_report()))
    return session


def demo_reconnect(session: SyncSession, sim_config: SimulatorConfig):
    """A reconnect must start from the identity fit"""
    print("\n" + "="*60)
    print("Demo 2: Reconnect Resets the Fit")
    print("="*60)

    session.disconnect()
    print(f"  after disconnect: {session.get_fit()}")
    session.connect()

    sim = BeaconSimulator(sim_config)
    for frame, rx_ns in sim.frames(10):
        session.handle_frame(frame, receiver_nanos=rx_ns)
    print(f"  10 frames into new connection: skew={session.get_fit().skew_ppm:+.3f} ppm")


def main():
    parser = argparse.ArgumentParser(description='Simulated beacon session demo')
    parser.add_argument('--skew-ppm', type=float, default=20.0)
    parser.add_argument('--jitter-ms', type=float, default=2.0)
    parser.add_argument('--loss-rate', type=float, default=0.02)
    parser.add_argument('--seed', type=int, default=1)
    args = parser.parse_args()

    sim_config = SimulatorConfig(offset_ms=120.0, skew_ppm=args.skew_ppm,
                                 jitter_ms=args.jitter_ms, loss_rate=args.loss_rate,
                                 seed=args.seed)

    session = demo_fit_convergence(sim_config)
    demo_reconnect(session, sim_config)


if __name__ == '__main__':
    main()

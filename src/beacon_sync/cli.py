#!/usr/bin/env python3
"""
Command Line Interface for beacon-sync
"""

import sys
import json
import logging
import argparse
from dataclasses import replace
from typing import List, Optional

from .capture import CaptureFormatError, read_capture, write_capture
from .config import BeaconSyncConfig, ConfigError, load_config
from .drift_analyzer import format_drift_summary
from .packet_codec import Event
from .session import SyncSession
from .simulator import BeaconSimulator

logger = logging.getLogger(__name__)


def _configure_logging(level: int) -> None:
    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    if not root_logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter('%(levelname)s:%(name)s:%(message)s'))
        root_logger.addHandler(handler)
    else:
        for handler in root_logger.handlers:
            handler.setLevel(level)


def _load(args) -> BeaconSyncConfig:
    if not args.config:
        return BeaconSyncConfig()
    return load_config(args.config)


def _replay(events: List[Event], config: BeaconSyncConfig,
            window_size: Optional[int]) -> SyncSession:
    sync = config.sync
    if window_size is not None:
        sync = replace(sync, window_size=window_size)
    # Keep every event of the capture for the report
    sync = replace(sync, history_size=max(sync.history_size, len(events), 1))

    session = SyncSession(sync.to_session_config(name='replay'))
    session.connect()
    for event in events:
        session.handle_event(event)
    return session


def cmd_simulate(args, config: BeaconSyncConfig) -> int:
    sim_config = config.simulator
    overrides = {
        'seed': args.seed,
        'skew_ppm': args.skew_ppm,
        'jitter_ms': args.jitter_ms,
        'loss_rate': args.loss_rate,
    }
    overrides = {k: v for k, v in overrides.items() if v is not None}
    sim_config = replace(sim_config, **overrides)

    simulator = BeaconSimulator(sim_config)
    events = simulator.events(args.count)
    write_capture(events, args.output)
    print(f"✅ {len(events)} events written to {args.output} "
          f"({simulator.frames_lost} lost of {simulator.frames_sent})")
    return 0


def cmd_analyze(args, config: BeaconSyncConfig) -> int:
    events = read_capture(args.capture)
    session = _replay(events, config, args.window_size)
    report = session.drift_report()
    status = session.status()

    if args.json:
        print(json.dumps({'fit': status.to_dict(), 'drift': report.to_dict()}, indent=2))
        return 0

    print(format_drift_summary(report))
    print(f"Window: {status.sample_count}/{status.window_size} samples, "
          f"RMS residual {status.rms_residual_ms:.3f} ms")
    return 0


def cmd_plot(args, config: BeaconSyncConfig) -> int:
    from .plotting import plot_capture

    events = read_capture(args.capture)
    session = _replay(events, config, args.window_size)
    plot_capture(events, session.get_fit(), args.output)
    print(f"✅ Plot saved to {args.output}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='beacon-sync',
        description='Beacon-to-receiver timeline alignment',
        formatter_class=argparse.RawDescriptionHelpFormatter
    )
    subparsers = parser.add_subparsers(dest='command', help='Command to run')

    sim_parser = subparsers.add_parser('simulate', help='Write a simulated beacon capture')
    sim_parser.add_argument('--output', '-o', required=True, help='Capture CSV to write')
    sim_parser.add_argument('--count', '-n', type=int, default=300, help='Beacon periods to simulate')
    sim_parser.add_argument('--seed', type=int, help='RNG seed')
    sim_parser.add_argument('--skew-ppm', type=float, help='Receiver vs beacon rate error (ppm)')
    sim_parser.add_argument('--jitter-ms', type=float, help='Mean extra latency (ms)')
    sim_parser.add_argument('--loss-rate', type=float, help='Frame loss probability')

    analyze_parser = subparsers.add_parser('analyze', help='Replay a capture and report drift')
    analyze_parser.add_argument('capture', help='Capture CSV')
    analyze_parser.add_argument('--window-size', '-w', type=int, help='Regression window')
    analyze_parser.add_argument('--json', action='store_true', help='JSON output')

    plot_parser = subparsers.add_parser('plot', help='Plot a capture to PNG')
    plot_parser.add_argument('capture', help='Capture CSV')
    plot_parser.add_argument('--output', '-o', required=True, help='PNG to write')
    plot_parser.add_argument('--window-size', '-w', type=int, help='Regression window')

    for sub in (sim_parser, analyze_parser, plot_parser):
        sub.add_argument('--config', '-c', help='Configuration file path')
        sub.add_argument('--debug', '-d', action='store_true', help='Enable DEBUG logging')

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for beacon-sync command"""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    _configure_logging(logging.DEBUG if args.debug else logging.INFO)

    try:
        config = _load(args)
    except FileNotFoundError:
        print(f"❌ Configuration file not found: {args.config}")
        return 1
    except ConfigError as e:
        print(f"❌ Error loading configuration: {e}")
        return 1

    if not args.debug:
        _configure_logging(getattr(logging, config.log_level))

    if getattr(args, 'window_size', None) is not None and args.window_size < 2:
        print("❌ --window-size must be >= 2")
        return 1

    commands = {
        'simulate': cmd_simulate,
        'analyze': cmd_analyze,
        'plot': cmd_plot,
    }
    try:
        return commands[args.command](args, config)
    except FileNotFoundError as e:
        print(f"❌ File not found: {e.filename}")
        return 1
    except (CaptureFormatError, ValueError) as e:
        print(f"❌ {e}")
        return 1


if __name__ == '__main__':
    sys.exit(main())

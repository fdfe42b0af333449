"""
Configuration loading for beacon-sync

TOML file with three optional sections:

    [sync]
    window_size = 50
    history_size = 1000

    [simulator]
    period_ms = 1000.0
    skew_ppm = 20.0
    ...

    [logging]
    level = "INFO"

Missing keys fall back to defaults; invalid values raise ConfigError.
"""

import logging
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Union

import toml

from .regressor import DEFAULT_WINDOW_SIZE
from .session import DEFAULT_HISTORY_SIZE, SessionConfig
from .simulator import SimulatorConfig

logger = logging.getLogger(__name__)

LOG_LEVELS = ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL')

VALUE_TYPES = {
    'window_size': int,
    'history_size': int,
    'period_ms': (int, float),
    'offset_ms': (int, float),
    'skew_ppm': (int, float),
    'latency_ms': (int, float),
    'jitter_ms': (int, float),
    'loss_rate': (int, float),
    'start_sequence': int,
    'start_beacon_us': int,
    'seed': int,
}


class ConfigError(ValueError):
    """Invalid configuration value"""


@dataclass
class SyncConfig:
    window_size: int = DEFAULT_WINDOW_SIZE
    history_size: int = DEFAULT_HISTORY_SIZE

    def to_session_config(self, name: str = "beacon") -> SessionConfig:
        return SessionConfig(name=name, window_size=self.window_size,
                             history_size=self.history_size)


@dataclass
class BeaconSyncConfig:
    """Top-level configuration"""
    sync: SyncConfig = field(default_factory=SyncConfig)
    simulator: SimulatorConfig = field(default_factory=SimulatorConfig)
    log_level: str = 'INFO'

    @classmethod
    def from_dict(cls, config: Dict[str, Any]) -> 'BeaconSyncConfig':
        sync_section = config.get('sync', {})
        sim_section = config.get('simulator', {})
        log_section = config.get('logging', {})

        sync_values = _pick(SyncConfig, sync_section, 'sync')
        _check_types(sync_values, 'sync')
        sync = SyncConfig(**sync_values)
        if sync.window_size < 2:
            raise ConfigError(f"sync.window_size must be >= 2, got {sync.window_size}")
        if sync.history_size < 1:
            raise ConfigError(f"sync.history_size must be >= 1, got {sync.history_size}")

        sim_values = _pick(SimulatorConfig, sim_section, 'simulator')
        _check_types(sim_values, 'simulator')
        try:
            simulator = SimulatorConfig(**sim_values)
        except (TypeError, ValueError) as e:
            raise ConfigError(f"simulator: {e}") from e

        level = str(log_section.get('level', 'INFO')).upper()
        if level not in LOG_LEVELS:
            raise ConfigError(f"logging.level must be one of {LOG_LEVELS}, got {level!r}")

        return cls(sync=sync, simulator=simulator, log_level=level)


def _check_types(values: Dict[str, Any], section: str) -> None:
    """Reject TOML values of the wrong kind (e.g. quoted numbers)"""
    for key, value in values.items():
        expected = VALUE_TYPES.get(key)
        if expected is None:
            continue
        if isinstance(value, bool) or not isinstance(value, expected):
            kind = 'an integer' if expected is int else 'a number'
            raise ConfigError(f"{section}.{key} must be {kind}, got {value!r}")


def _pick(cls, section: Dict[str, Any], name: str) -> Dict[str, Any]:
    """Keep known keys, warn about the rest"""
    known = {f.name for f in fields(cls)}
    unknown = set(section) - known
    if unknown:
        logger.warning(f"Ignoring unknown [{name}] keys: {sorted(unknown)}")
    return {k: v for k, v in section.items() if k in known}


def load_config(config_file: Union[str, Path]) -> BeaconSyncConfig:
    """
    Load configuration from a TOML file

    Args:
        config_file: Path to TOML configuration file

    Returns:
        BeaconSyncConfig

    Raises:
        FileNotFoundError: config_file does not exist
        ConfigError: file is not valid TOML or holds invalid values
    """
    with open(config_file, 'r') as f:
        try:
            config = toml.load(f)
        except toml.TomlDecodeError as e:
            raise ConfigError(f"Invalid TOML in {config_file}: {e}") from e

    logger.info(f"Loaded configuration from {config_file}")
    return BeaconSyncConfig.from_dict(config)

"""
Tests for TOML configuration loading
"""

import pytest

from beacon_sync.config import BeaconSyncConfig, ConfigError, load_config
from beacon_sync.regressor import DEFAULT_WINDOW_SIZE


class TestFromDict:

    def test_defaults(self):
        config = BeaconSyncConfig.from_dict({})
        assert config.sync.window_size == DEFAULT_WINDOW_SIZE
        assert config.simulator.period_ms == 1000.0
        assert config.log_level == 'INFO'

    def test_sections(self):
        config = BeaconSyncConfig.from_dict({
            'sync': {'window_size': 20, 'history_size': 200},
            'simulator': {'skew_ppm': 15.0, 'seed': 4},
            'logging': {'level': 'debug'},
        })
        assert config.sync.window_size == 20
        assert config.simulator.skew_ppm == 15.0
        assert config.simulator.seed == 4
        assert config.log_level == 'DEBUG'

    def test_session_config(self):
        config = BeaconSyncConfig.from_dict({'sync': {'window_size': 8}})
        session_config = config.sync.to_session_config(name='esp32')
        assert session_config.name == 'esp32'
        assert session_config.window_size == 8

    def test_unknown_keys_warned(self, caplog):
        caplog.set_level("WARNING")
        config = BeaconSyncConfig.from_dict({'sync': {'window_size': 10, 'windw': 3}})
        assert config.sync.window_size == 10
        assert "windw" in caplog.text

    @pytest.mark.parametrize("section", [
        {'sync': {'window_size': 1}},
        {'sync': {'history_size': 0}},
        {'sync': {'window_size': '50'}},
        {'simulator': {'loss_rate': 2.0}},
        {'simulator': {'period_ms': 'fast'}},
        {'simulator': {'jitter_ms': '2'}},
        {'simulator': {'seed': 1.5}},
        {'simulator': {'start_sequence': True}},
        {'logging': {'level': 'LOUD'}},
    ])
    def test_invalid_values(self, section):
        with pytest.raises(ConfigError):
            BeaconSyncConfig.from_dict(section)


class TestLoadConfig:

    def test_load_file(self, tmp_path):
        path = tmp_path / 'beacon-sync.toml'
        path.write_text('[sync]\nwindow_size = 30\n\n[simulator]\njitter_ms = 2.5\n')
        config = load_config(path)
        assert config.sync.window_size == 30
        assert config.simulator.jitter_ms == 2.5

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / 'missing.toml')

    def test_invalid_toml(self, tmp_path):
        path = tmp_path / 'broken.toml'
        path.write_text('[sync\nwindow_size = ')
        with pytest.raises(ConfigError):
            load_config(path)

    def test_quoted_number(self, tmp_path):
        path = tmp_path / 'quoted.toml'
        path.write_text('[simulator]\njitter_ms = "2"\n')
        with pytest.raises(ConfigError, match="simulator.jitter_ms"):
            load_config(path)

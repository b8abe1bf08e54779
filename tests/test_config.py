"""
Tests for configuration loading and logging helpers.
"""

import logging

import pytest
import yaml

from vibecraft.config import (
    get_config_value, get_default_config, load_config, save_config, update_config_value
)
from vibecraft.utils.logging import ProcessingStats, StructuredLogger, setup_logging


class TestLoadConfig:
    """Test YAML loading over defaults."""

    def test_missing_file_gives_defaults(self, tmp_path):
        assert load_config(tmp_path / 'missing.yaml') == get_default_config()

    def test_partial_file_overlays_defaults(self, tmp_path):
        path = tmp_path / 'config.yaml'
        path.write_text(yaml.safe_dump({'cache': {'max_entries': 10}, 'extra': {'x': 1}}))
        config = load_config(path)

        assert config['cache']['max_entries'] == 10
        assert config['cache']['ttl_seconds'] == 3600.0
        assert config['extra'] == {'x': 1}
        assert config['analysis']['requests_per_minute'] == 15

    def test_env_expansion(self, tmp_path, monkeypatch):
        monkeypatch.setenv('VIBECRAFT_TEST_KEY', 'secret')
        path = tmp_path / 'config.yaml'
        path.write_text("analysis:\n  api_key: ${VIBECRAFT_TEST_KEY}\n  model: ${UNSET_VIBECRAFT_VAR}\n")
        config = load_config(path)
        assert config['analysis']['api_key'] == 'secret'
        assert config['analysis']['model'] == '${UNSET_VIBECRAFT_VAR}'

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / 'config.yaml'
        path.write_text("analysis: [unclosed\n")
        assert load_config(path) == get_default_config()

    def test_non_mapping(self, tmp_path):
        path = tmp_path / 'config.yaml'
        path.write_text("- just\n- a list\n")
        assert load_config(path) == get_default_config()

    def test_shipped_config_loads(self):
        config = load_config()
        assert config['enhancement']['default_intensity'] == 'medium'
        assert config['quality']['significant_improvement'] == pytest.approx(0.10)

    def test_installed_without_shipped_config(self, tmp_path, monkeypatch):
        monkeypatch.setattr('vibecraft.config.DEFAULT_CONFIG_PATH', tmp_path / 'config.yaml')
        assert load_config() == get_default_config()

    def test_defaults_are_fresh(self):
        get_default_config()['cache']['max_entries'] = 1
        assert get_default_config()['cache']['max_entries'] == 256


class TestConfigValues:
    """Test dotted-path access."""

    def test_get(self):
        config = get_default_config()
        assert get_config_value(config, 'analysis.model') == 'gemini-1.5-flash'
        assert get_config_value(config, 'analysis.nope', 'fallback') == 'fallback'
        assert get_config_value(config, 'analysis.model.deeper') is None

    def test_update_creates_parents(self):
        config = {}
        update_config_value(config, 'a.b.c', 3)
        assert config == {'a': {'b': {'c': 3}}}

    def test_save_round_trip(self, tmp_path):
        path = tmp_path / 'saved.yaml'
        config = get_default_config()
        update_config_value(config, 'enhancement.max_workers', 2)
        assert save_config(config, path)
        assert load_config(path)['enhancement']['max_workers'] == 2

    def test_save_failure(self, tmp_path):
        assert not save_config({}, tmp_path / 'missing-dir' / 'config.yaml')


class TestProcessingStats:
    """Test batch statistics."""

    def test_summary(self):
        stats = ProcessingStats()
        stats.set_total(3)
        stats.add_result(True, processing_time=1.0)
        stats.add_result(False, 'timeout', processing_time=3.0)
        stats.add_result(False, 'timeout')
        stats.add_error('img-2', 'enhancement timed out')
        summary = stats.get_summary()

        assert summary['succeeded_images'] == 1
        assert summary['failed_images'] == 2
        assert summary['failure_reasons'] == {'timeout': 2}
        assert summary['average_time_per_image'] == pytest.approx(2.0)
        assert summary['success_rate'] == pytest.approx(100 / 3)

        text = stats.format_summary()
        assert 'timeout: 2' in text
        assert 'img-2: enhancement timed out' in text

    def test_empty(self):
        assert ProcessingStats().get_summary()['success_rate'] == 0


class TestLogging:
    """Test logging helpers."""

    def test_structured_logger(self, caplog):
        log = StructuredLogger('vibecraft.test', {'image_id': 'img-1'}).bind(attempt=2)
        with caplog.at_level(logging.INFO, logger='vibecraft.test'):
            log.info("Analyzed", image_type='food')
        assert 'Analyzed | {"image_id": "img-1", "attempt": 2, "image_type": "food"}' in caplog.text

    def test_setup_logging_is_idempotent(self, tmp_path):
        config = {'logging': {'level': 'DEBUG', 'color': False, 'file': str(tmp_path / 'vc.log')}}
        root = logging.getLogger()
        before = list(root.handlers)
        level = root.level
        try:
            setup_logging(config)
            setup_logging(config)
            console = [h for h in root.handlers if getattr(h, '_vibecraft_console', False)]
            assert len(console) == 1
            assert root.level == logging.DEBUG
        finally:
            for handler in list(root.handlers):
                if handler not in before:
                    root.removeHandler(handler)
                    handler.close()
            root.setLevel(level)

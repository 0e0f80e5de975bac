"""
Unit tests for configuration module.
"""

import pytest
from pydantic import ValidationError

from tubedigest.config import AppConfig, settings


class TestAppConfig:
    """Test cases for AppConfig class."""

    def test_default_config_creation(self):
        config = AppConfig()
        assert config.app_name == "TubeDigest"
        assert config.summary_pipeline_mode == "webhook"
        assert config.job_worker_count == 4
        assert config.poll_interval_seconds == 2.0
        assert config.poll_max_attempts == 150
        assert config.free_plan_max_video_duration == 900

    def test_test_environment_is_loaded(self):
        assert settings.environment == "test"
        assert settings.is_sqlite is True

    def test_explicit_values_override_defaults(self):
        config = AppConfig(port=9000, environment='production', workers=2)
        assert config.port == 9000
        assert config.is_production is True
        assert config.is_development is False

    def test_default_response_fields_order(self):
        config = AppConfig()
        assert config.summary_response_fields == ['cleanedHtml', 'summary', 'text', 'result', 'content']

    @pytest.mark.parametrize("field,value", [
        ('environment', 'invalid'),
        ('default_llm_provider', 'invalid'),
        ('summary_pipeline_mode', 'batch'),
        ('default_summary_format', 'haiku'),
        ('default_summary_language', 'de'),
        ('log_level', 'verbose'),
        ('job_worker_count', 0),
        ('poll_interval_seconds', 0),
    ])
    def test_invalid_values_raise_error(self, field, value):
        with pytest.raises(ValidationError):
            AppConfig(**{field: value})

    def test_chunk_overlap_must_be_smaller_than_chunk_size(self):
        with pytest.raises(ValidationError):
            AppConfig(chunk_size=500, chunk_overlap=500)

    def test_response_fields_are_stripped(self):
        config = AppConfig(summary_response_fields=[' summary ', '', 'text'])
        assert config.summary_response_fields == ['summary', 'text']

    def test_log_level_is_lowercased(self):
        assert AppConfig(log_level='DEBUG').log_level == 'debug'

    def test_direct_mode_requires_llm_key(self):
        config = AppConfig(summary_pipeline_mode='direct', default_llm_provider='openai', openai_api_key=None)
        issues = config.validate_configuration()
        assert any('OpenAI API key' in issue for issue in issues)

    def test_production_requires_billing_secret(self):
        config = AppConfig(environment='production', billing_webhook_secret=None)
        assert any('Billing webhook secret' in issue for issue in config.validate_configuration())

    def test_production_warns_about_sqlite(self):
        config = AppConfig(environment='production', database_url='sqlite:///./tubedigest.db')
        assert any('SQLite' in issue for issue in config.validate_configuration())

    def test_parse_size(self):
        config = AppConfig()
        assert config._parse_size('10MB') == 10 * 1024 * 1024
        assert config._parse_size('2kb') == 2048
        assert config._parse_size('512') == 512

    def test_logging_config_uses_json_formatter(self):
        config = AppConfig(log_format='json')
        logging_config = config.get_logging_config()
        assert logging_config['formatters']['json']['class'] == 'pythonjsonlogger.jsonlogger.JsonFormatter'
        assert logging_config['handlers']['console']['formatter'] == 'json'
        assert logging_config['handlers']['file']['class'] == 'logging.handlers.RotatingFileHandler'

    def test_grouped_config_properties(self):
        config = AppConfig(chunk_size=1000, chunk_overlap=100)
        assert config.pipeline_config['chunk_size'] == 1000
        assert config.job_config['worker_count'] == config.job_worker_count
        assert config.llm_config['default_provider'] == config.default_llm_provider

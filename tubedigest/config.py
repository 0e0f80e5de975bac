"""
Configuration module for the TubeDigest summary service.
Handles environment variables and application settings.
"""

import os
from typing import Optional, List, Dict, Any
from decouple import config, Csv
from pydantic import BaseModel, validator
import logging
import logging.config


logger = logging.getLogger(__name__)


class AppConfig(BaseModel):
    """Main application configuration."""

    # Application
    app_name: str = config('APP_NAME', default='TubeDigest')
    app_version: str = config('APP_VERSION', default='1.0.0')
    environment: str = config('ENVIRONMENT', default='development')
    log_level: str = config('LOG_LEVEL', default='info')

    # Server
    host: str = config('HOST', default='0.0.0.0')
    port: int = config('PORT', default=8000, cast=int)
    workers: int = config('WORKERS', default=1, cast=int)

    # Database
    database_url: str = config('DATABASE_URL', default='sqlite:///./tubedigest.db')
    database_echo: bool = config('DATABASE_ECHO', default=False, cast=bool)
    database_echo_pool: bool = config('DATABASE_ECHO_POOL', default=False, cast=bool)
    database_pool_size: int = config('DATABASE_POOL_SIZE', default=5, cast=int)
    database_max_overflow: int = config('DATABASE_MAX_OVERFLOW', default=10, cast=int)
    database_pool_timeout: int = config('DATABASE_POOL_TIMEOUT', default=30, cast=int)
    database_pool_recycle: int = config('DATABASE_POOL_RECYCLE', default=1800, cast=int)

    # Identity (caller id is verified upstream and forwarded in this header)
    user_id_header: str = config('USER_ID_HEADER', default='X-User-Id')

    # Summary pipeline
    summary_pipeline_mode: str = config('SUMMARY_PIPELINE_MODE', default='webhook')  # webhook, direct
    summary_webhook_url: str = config('SUMMARY_WEBHOOK_URL', default='http://localhost:5678/webhook/ytube')
    summary_webhook_timeout: int = config('SUMMARY_WEBHOOK_TIMEOUT', default=300, cast=int)
    summary_response_fields: List[str] = config(
        'SUMMARY_RESPONSE_FIELDS', default='cleanedHtml,summary,text,result,content', cast=Csv()
    )
    default_summary_format: str = config('DEFAULT_SUMMARY_FORMAT', default='paragraph')
    default_summary_language: str = config('DEFAULT_SUMMARY_LANGUAGE', default='en')
    chunk_size: int = config('CHUNK_SIZE', default=2000, cast=int)
    chunk_overlap: int = config('CHUNK_OVERLAP', default=200, cast=int)

    # Job processing
    job_worker_count: int = config('JOB_WORKER_COUNT', default=4, cast=int)
    job_processing_timeout: int = config('JOB_PROCESSING_TIMEOUT', default=900, cast=int)
    job_supervisor_interval: int = config('JOB_SUPERVISOR_INTERVAL', default=60, cast=int)
    job_requeue_pending_on_startup: bool = config('JOB_REQUEUE_PENDING_ON_STARTUP', default=True, cast=bool)

    # Status polling (client side)
    poll_interval_seconds: float = config('POLL_INTERVAL_SECONDS', default=2.0, cast=float)
    poll_max_attempts: int = config('POLL_MAX_ATTEMPTS', default=150, cast=int)

    # YouTube API
    youtube_api_key: Optional[str] = config('YOUTUBE_API_KEY', default=None)
    youtube_api_timeout: int = config('YOUTUBE_API_TIMEOUT', default=30, cast=int)
    youtube_metadata_timeout: int = config('YOUTUBE_METADATA_TIMEOUT', default=15, cast=int)

    # LLM Configuration
    openai_api_key: Optional[str] = config('OPENAI_API_KEY', default=None)
    anthropic_api_key: Optional[str] = config('ANTHROPIC_API_KEY', default=None)
    default_llm_provider: str = config('DEFAULT_LLM_PROVIDER', default='openai')
    openai_model: str = config('OPENAI_MODEL', default='gpt-4o-mini')
    anthropic_model: str = config('ANTHROPIC_MODEL', default='claude-3-5-haiku-latest')
    ollama_model: str = config('OLLAMA_MODEL', default='llama3.1:8b')
    ollama_host: str = config('OLLAMA_HOST', default='http://localhost:11434')
    ollama_keep_alive: str = config('OLLAMA_KEEP_ALIVE', default='5m')
    max_tokens: int = config('MAX_TOKENS', default=2000, cast=int)
    temperature: float = config('TEMPERATURE', default=0.3, cast=float)
    llm_timeout: int = config('LLM_TIMEOUT', default=60, cast=int)

    # Billing / entitlements
    billing_webhook_secret: Optional[str] = config('BILLING_WEBHOOK_SECRET', default=None)
    free_plan_max_video_duration: int = config('FREE_PLAN_MAX_VIDEO_DURATION', default=900, cast=int)

    # Security
    cors_origins: List[str] = config('CORS_ORIGINS', default='http://localhost:3000,http://localhost:5173', cast=Csv())

    # Logging
    log_format: str = config('LOG_FORMAT', default='json')
    log_file_path: str = config('LOG_FILE_PATH', default='logs/app.log')
    log_max_size: str = config('LOG_MAX_SIZE', default='10MB')
    log_backup_count: int = config('LOG_BACKUP_COUNT', default=5, cast=int)

    @validator('environment')
    def validate_environment(cls, v):
        """Validate environment value."""
        valid_environments = ['development', 'staging', 'production', 'test']
        if v not in valid_environments:
            raise ValueError(f'Environment must be one of: {valid_environments}')
        return v

    @validator('default_llm_provider')
    def validate_llm_provider(cls, v):
        """Validate LLM provider."""
        valid_providers = ['openai', 'anthropic', 'ollama']
        if v not in valid_providers:
            raise ValueError(f'LLM provider must be one of: {valid_providers}')
        return v

    @validator('summary_pipeline_mode')
    def validate_pipeline_mode(cls, v):
        """Validate summary pipeline mode."""
        valid_modes = ['webhook', 'direct']
        if v not in valid_modes:
            raise ValueError(f'Summary pipeline mode must be one of: {valid_modes}')
        return v

    @validator('default_summary_format')
    def validate_summary_format(cls, v):
        valid_formats = ['paragraph', 'bullets', 'timestamped']
        if v not in valid_formats:
            raise ValueError(f'Summary format must be one of: {valid_formats}')
        return v

    @validator('default_summary_language')
    def validate_summary_language(cls, v):
        valid_languages = ['en', 'es', 'fr']
        if v not in valid_languages:
            raise ValueError(f'Summary language must be one of: {valid_languages}')
        return v

    @validator('log_level')
    def validate_log_level(cls, v):
        """Validate log level."""
        valid_levels = ['debug', 'info', 'warning', 'error', 'critical']
        if v.lower() not in valid_levels:
            raise ValueError(f'Log level must be one of: {valid_levels}')
        return v.lower()

    @validator('summary_response_fields')
    def validate_response_fields(cls, v):
        """Strip blanks from the configured response field list."""
        fields = [field.strip() for field in v if field and field.strip()]
        if not fields:
            raise ValueError('At least one summary response field must be configured')
        return fields

    @validator('chunk_overlap')
    def validate_chunk_overlap(cls, v, values):
        """Overlap must be smaller than the chunk size."""
        chunk_size = values.get('chunk_size', 2000)
        if v < 0 or v >= chunk_size:
            raise ValueError('Chunk overlap must be between 0 and chunk size')
        return v

    @validator('job_worker_count')
    def validate_worker_count(cls, v):
        if v < 1:
            raise ValueError('Job worker count must be at least 1')
        if v > 64:
            raise ValueError('Job worker count should not exceed 64')
        return v

    @validator('poll_interval_seconds')
    def validate_poll_interval(cls, v):
        if v <= 0:
            raise ValueError('Poll interval must be positive')
        return v

    @property
    def is_production(self) -> bool:
        """Check if running in production."""
        return self.environment == 'production'

    @property
    def is_development(self) -> bool:
        """Check if running in development."""
        return self.environment == 'development'

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith('sqlite')

    @property
    def llm_config(self) -> Dict[str, Any]:
        """Get complete LLM configuration."""
        return {
            'default_provider': self.default_llm_provider,
            'openai_model': self.openai_model,
            'anthropic_model': self.anthropic_model,
            'ollama_model': self.ollama_model,
            'ollama_host': self.ollama_host,
            'max_tokens': self.max_tokens,
            'temperature': self.temperature,
            'timeout': self.llm_timeout,
        }

    @property
    def pipeline_config(self) -> Dict[str, Any]:
        """Get complete summary pipeline configuration."""
        return {
            'mode': self.summary_pipeline_mode,
            'webhook_url': self.summary_webhook_url,
            'webhook_timeout': self.summary_webhook_timeout,
            'response_fields': self.summary_response_fields,
            'default_format': self.default_summary_format,
            'default_language': self.default_summary_language,
            'chunk_size': self.chunk_size,
            'chunk_overlap': self.chunk_overlap,
        }

    @property
    def job_config(self) -> Dict[str, Any]:
        """Get complete job processing configuration."""
        return {
            'worker_count': self.job_worker_count,
            'processing_timeout': self.job_processing_timeout,
            'supervisor_interval': self.job_supervisor_interval,
            'requeue_pending_on_startup': self.job_requeue_pending_on_startup,
        }

    def validate_configuration(self) -> List[str]:
        """Validate configuration and return list of issues."""
        issues = []

        if self.summary_pipeline_mode == 'webhook' and not self.summary_webhook_url:
            issues.append("Summary webhook URL is required when using the webhook pipeline")

        if self.summary_pipeline_mode == 'direct':
            if self.default_llm_provider == 'openai' and not self.openai_api_key:
                issues.append("OpenAI API key is required when using OpenAI provider")
            if self.default_llm_provider == 'anthropic' and not self.anthropic_api_key:
                issues.append("Anthropic API key is required when using Anthropic provider")
            if not self.youtube_api_key:
                issues.append("YouTube API key is not set, metadata will use the page fallback")

        if self.is_production and not self.billing_webhook_secret:
            issues.append("Billing webhook secret is required in production")

        if self.is_production and self.is_sqlite:
            issues.append("SQLite is not recommended in production, set DATABASE_URL to PostgreSQL")

        if self.port < 1 or self.port > 65535:
            issues.append("Port must be between 1 and 65535")

        return issues

    def get_logging_config(self) -> dict:
        """Get logging configuration."""
        return {
            'version': 1,
            'disable_existing_loggers': False,
            'formatters': {
                'json': {
                    'class': 'pythonjsonlogger.jsonlogger.JsonFormatter',
                    'format': '%(asctime)s %(name)s %(levelname)s %(message)s'
                },
                'standard': {
                    'format': '%(asctime)s [%(levelname)s] %(name)s: %(message)s'
                }
            },
            'handlers': {
                'console': {
                    'class': 'logging.StreamHandler',
                    'formatter': 'json' if self.log_format == 'json' else 'standard',
                    'level': self.log_level.upper()
                },
                'file': {
                    'class': 'logging.handlers.RotatingFileHandler',
                    'filename': self.log_file_path,
                    'maxBytes': self._parse_size(self.log_max_size),
                    'backupCount': self.log_backup_count,
                    'formatter': 'json' if self.log_format == 'json' else 'standard',
                    'level': self.log_level.upper()
                }
            },
            'loggers': {
                '': {
                    'handlers': ['console', 'file'],
                    'level': self.log_level.upper(),
                    'propagate': False
                }
            }
        }

    def _parse_size(self, size_str: str) -> int:
        """Parse size string to bytes."""
        size_str = size_str.upper()
        if size_str.endswith('KB'):
            return int(size_str[:-2]) * 1024
        elif size_str.endswith('MB'):
            return int(size_str[:-2]) * 1024 * 1024
        elif size_str.endswith('GB'):
            return int(size_str[:-2]) * 1024 * 1024 * 1024
        else:
            return int(size_str)


# Global configuration instance
settings = AppConfig()


def setup_logging():
    """Set up logging configuration."""
    # Ensure log directory exists
    log_dir = os.path.dirname(settings.log_file_path)
    if log_dir and not os.path.exists(log_dir):
        os.makedirs(log_dir)

    logging.config.dictConfig(settings.get_logging_config())

    logger = logging.getLogger(__name__)
    logger.info(f"Starting {settings.app_name} v{settings.app_version}")
    logger.info(f"Environment: {settings.environment}")
    logger.info(f"Summary pipeline: {settings.summary_pipeline_mode}", extra={
        'pipeline': settings.pipeline_config,
        'jobs': settings.job_config,
    })
    logger.info(f"Log level: {settings.log_level}")

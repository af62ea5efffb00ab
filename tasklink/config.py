"""Configuration management using Pydantic BaseSettings.

This module provides centralized configuration management with validation,
type safety, and sensible defaults for tasklink.
"""
from typing import List
from pydantic import Field, validator
from pydantic_settings import BaseSettings


class Config(BaseSettings):
    """Main configuration class combining all settings."""

    # Todoist Configuration
    todoist_api_token: str = Field("", env="TODOIST_API_TOKEN", description="Todoist API token (seed for the credential store)")
    todoist_api_base: str = Field("https://api.todoist.com/api/v1", env="TODOIST_API_BASE", description="Todoist REST API base URL")
    todoist_task_url_base: str = Field("https://app.todoist.com/app/task", env="TODOIST_TASK_URL_BASE", description="Base URL for task links")
    todoist_add_url: str = Field("https://todoist.com/add", env="TODOIST_ADD_URL", description="Prefilled task draft URL")
    todoist_page_size: int = Field(200, env="TODOIST_PAGE_SIZE", ge=1, le=200, description="Tasks per page")
    todoist_max_pages: int = Field(10, env="TODOIST_MAX_PAGES", ge=1, le=50, description="Max pages to fetch")
    todoist_timeout: int = Field(20, env="TODOIST_TIMEOUT", ge=5, le=60, description="Request timeout in seconds")

    # Cache Configuration
    task_cache_ttl_seconds: int = Field(90, env="TASK_CACHE_TTL_SECONDS", ge=1, le=3600, description="Remote task cache TTL")
    match_cache_ttl_seconds: int = Field(20, env="MATCH_CACHE_TTL_SECONDS", ge=1, le=600, description="Client match cache TTL")
    settings_cache_ttl_seconds: int = Field(30, env="SETTINGS_CACHE_TTL_SECONDS", ge=1, le=600, description="Client settings cache TTL")

    # Scheduler Configuration
    render_debounce_ms: int = Field(150, env="RENDER_DEBOUNCE_MS", ge=0, le=5000, description="Quiet period before a reconciliation pass")
    url_poll_interval_ms: int = Field(500, env="URL_POLL_INTERVAL_MS", ge=50, le=10000, description="URL change polling interval")
    post_create_refresh_ms: int = Field(1200, env="POST_CREATE_REFRESH_MS", ge=0, le=10000, description="Delayed refresh after task creation")
    channel_timeout_seconds: float = Field(30.0, env="CHANNEL_TIMEOUT_SECONDS", gt=0.0, le=120.0, description="Cross-context request timeout")

    # Matching Configuration
    max_matches_per_issue: int = Field(5, env="MAX_MATCHES_PER_ISSUE", ge=1, le=50, description="Max matching tasks per issue")
    title_probe_min_length: int = Field(12, env="TITLE_PROBE_MIN_LENGTH", ge=1, le=200, description="Min normalized title length for probing")
    title_probe_max_words: int = Field(8, env="TITLE_PROBE_MAX_WORDS", ge=1, le=50, description="Words kept in a title probe")
    product_signal: str = Field("nightwatch", env="PRODUCT_SIGNAL", description="Token that must appear for title-probe matches")
    hint_signature_length: int = Field(120, env="HINT_SIGNATURE_LENGTH", ge=1, le=1000, description="Hint excerpt length in cache signatures")

    # Draft Configuration
    task_prefix: str = Field("[Nightwatch]", env="TASK_PREFIX", description="Prefix for new task titles")
    max_title_length: int = Field(120, env="MAX_TITLE_LENGTH", ge=40, le=500, description="Maximum task title length")
    max_snippet_length: int = Field(1200, env="MAX_SNIPPET_LENGTH", ge=0, le=10000, description="Maximum stack snippet length")

    # Credential store
    settings_file: str = Field(".tasklink/settings.json", env="SETTINGS_FILE", description="Persisted credential store")

    # Logging Configuration
    log_level: str = Field("INFO", env="LOG_LEVEL", description="Logging level")
    log_format: str = Field("%(asctime)s - %(name)s - %(levelname)s - %(message)s", env="LOG_FORMAT", description="Log format")

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "extra": "ignore"
    }

    @validator('log_level')
    def validate_level(cls, v):
        valid_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        if v.upper() not in valid_levels:
            raise ValueError(f'Invalid log level: {v}. Valid options: {valid_levels}')
        return v.upper()

    @validator('product_signal')
    def validate_product_signal(cls, v):
        if not v.strip():
            raise ValueError('product_signal must not be blank')
        return v.strip()

    @validator('todoist_api_base', 'todoist_task_url_base')
    def strip_trailing_slash(cls, v):
        return v.rstrip("/")

    def validate_configuration(self) -> List[str]:
        """Validate the complete configuration and return any issues."""
        issues = []

        if not self.todoist_api_base.startswith("https://"):
            issues.append("TODOIST_API_BASE should use https://")

        if self.task_cache_ttl_seconds < self.match_cache_ttl_seconds:
            issues.append("TASK_CACHE_TTL_SECONDS is shorter than MATCH_CACHE_TTL_SECONDS; client caches will outlive remote data")

        if self.channel_timeout_seconds < self.todoist_timeout and self.todoist_max_pages > 1:
            issues.append("CHANNEL_TIMEOUT_SECONDS is shorter than TODOIST_TIMEOUT; paginated fetches may time out on the client")

        if self.title_probe_min_length < 6:
            issues.append("TITLE_PROBE_MIN_LENGTH is very low, title matches may produce false duplicates")

        return issues

    def log_configuration(self) -> None:
        """Log the current configuration (sanitized)."""
        from tasklink.utils.logger import log_info

        log_info("Configuration loaded",
                todoist_api_base=self.todoist_api_base,
                token_configured=bool(self.todoist_api_token),
                page_size=self.todoist_page_size,
                max_pages=self.todoist_max_pages,
                task_cache_ttl_seconds=self.task_cache_ttl_seconds,
                match_cache_ttl_seconds=self.match_cache_ttl_seconds,
                settings_cache_ttl_seconds=self.settings_cache_ttl_seconds,
                debounce_ms=self.render_debounce_ms,
                log_level=self.log_level)


# Global configuration instance (lazy loading)
_config = None


def get_config() -> Config:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = Config()
    return _config


def reload_config() -> Config:
    """Reload configuration from environment variables."""
    global _config
    _config = Config()
    return _config

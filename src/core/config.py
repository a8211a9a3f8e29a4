# core/config.py
"""
Centralized runtime configuration.

Every knob is read from the environment (or a local ``.env`` file) once at
import time. Operator-tunable scraper knobs (enabled flag, cadence, batch size,
delay, concurrency) live in the ``scraper_settings`` table instead; the
``DEFAULT_*`` values below only seed that row the first time it is read.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    DATABASE_URL: str = "sqlite:///./programs.db"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # Operator auth for mutating endpoints; empty disables the check.
    API_KEY: str = ""
    # Shared secret presented by the external cron host on /api/scrape/process.
    CRON_SECRET: str = "internal-cron"

    # Firecrawl extraction service
    FIRECRAWL_API_KEY: str = ""
    FIRECRAWL_BASE_URL: str = "https://api.firecrawl.dev/v1"
    HTTP_TIMEOUT_SECONDS: float = 30.0
    EXTRACT_POLL_INTERVAL_SECONDS: float = 2.0
    EXTRACT_MAX_POLL_ATTEMPTS: int = 30
    AGENT_MAX_POLL_ATTEMPTS: int = 150
    CRAWL_POLL_INTERVAL_SECONDS: float = 10.0
    CRAWL_MAX_POLL_ATTEMPTS: int = 60
    CRAWL_PAGE_LIMIT: int = 100

    # In-process timer trigger
    SCHEDULER_ENABLED: bool = False
    SCHEDULER_TICK_SECONDS: int = 60

    # Seeds for the scraper_settings row
    DEFAULT_SCRAPER_ENABLED: bool = True
    DEFAULT_FREQUENCY_MINUTES: int = 5
    DEFAULT_BATCH_SIZE: int = 5
    DEFAULT_DELAY_SECONDS: int = 2
    DEFAULT_MAX_CONCURRENT_JOBS: int = 3


settings = Settings()

import logging

from src.core.config import settings


def configure_logging() -> None:
    """Configure root logging once for the API process."""
    level = getattr(logging, settings.LOG_LEVEL.strip().upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

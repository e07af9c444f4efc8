import logging
import os


def configure_logging():
    """Configure application logging.

    Sets up a basic logging configuration that integrates with Uvicorn
    and writes logs at INFO level by default. Honors LOG_LEVEL env var.
    """
    log_level = os.getenv("LOG_LEVEL", "INFO").upper()
    level = getattr(logging, log_level, logging.INFO)

    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    logging.getLogger("uvicorn.error").setLevel(level)
    logging.getLogger("uvicorn.access").setLevel(level)
    # Telethon logs every reconnect at INFO
    logging.getLogger("telethon").setLevel(logging.WARNING)

import os


def _int_env(name: str, default: str) -> int:
    value = os.getenv(name, default).strip()
    if not value.lstrip("-").isdigit():
        raise ValueError(
            f"Invalid {name} environment variable: {value!r}. "
            f"Must be a valid integer."
        )
    return int(value)


# Telegram bot credentials (the bot is not started unless all three are set)
API_ID_STR = os.getenv("TG_API_ID")
if API_ID_STR and not API_ID_STR.isdigit():
    raise ValueError(
        "Invalid TG_API_ID environment variable. "
        "Must be a valid integer. Set via TG_API_ID environment variable."
    )
API_ID = int(API_ID_STR) if API_ID_STR else None

API_HASH = os.getenv("TG_API_HASH")

BOT_TOKEN = os.getenv("TELEGRAM_BOT_TOKEN") or os.getenv("BOT_TOKEN")

# Session file location for the bot client
SESSION_NAME = os.getenv("TG_SESSION", "./lecture_bot")

# Public URL of the web admin panel, advertised by the bot when it is https
WEB_PANEL_URL = os.getenv("WEB_PANEL_URL")

# Optional admin API key for protecting admin endpoints
ADMIN_API_KEY = os.getenv("ADMIN_API_KEY")

# Optional Sentry DSN for error monitoring
SENTRY_DSN = os.getenv("SENTRY_DSN")

# File store
UPLOADS_DIR = os.getenv("UPLOADS_DIR", os.path.join(os.getcwd(), "uploads"))
MAX_FILE_SIZE = _int_env("MAX_FILE_SIZE", str(20 * 1024 * 1024))

# Lectures uploaded through the bot are always filed under this subject
DEFAULT_SUBJECT = os.getenv("DEFAULT_SUBJECT", "photogrammetry")
BACKUP_FILENAME_PREFIX = "photogrammetry_backup"

# Scheduled orphan cleanup; 0 disables the job
RECONCILE_INTERVAL_MINUTES = _int_env("RECONCILE_INTERVAL_MINUTES", "60")

# Database
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./lectures.db")

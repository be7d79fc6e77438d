import logging
import os

from dotenv import load_dotenv

load_dotenv()


def _env_float(name: str, default: float) -> float:
    return float(os.environ.get(name, default))


class Config:
    # --- API ---
    API_URL = os.environ.get('BIDBAZAAR_API_URL', 'http://127.0.0.1:5000/api')
    TOKEN = os.environ.get('BIDBAZAAR_TOKEN')
    REQUEST_TIMEOUT = _env_float('BIDBAZAAR_REQUEST_TIMEOUT', 10)

    # --- Lifecycle ticker ---
    ACTIVE_TICK_SECONDS = _env_float('BIDBAZAAR_ACTIVE_TICK_SECONDS', 1)
    IDLE_TICK_SECONDS = _env_float('BIDBAZAAR_IDLE_TICK_SECONDS', 60)

    # --- Notifications ---
    NOTIFICATION_POLL_SECONDS = _env_float('BIDBAZAAR_NOTIFICATION_POLL_SECONDS', 30)

    # --- Logging ---
    LOG_LEVEL = os.environ.get('BIDBAZAAR_LOG_LEVEL', 'INFO')


def configure_logging(level=None):
    """Set up root logging for applications embedding the client."""
    level = level or Config.LOG_LEVEL
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(level=level, format='%(asctime)s %(levelname)s %(name)s: %(message)s')
    logging.getLogger('bidbazaar').setLevel(level)

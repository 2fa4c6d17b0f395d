import logging

from narrator.config import get_settings

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: str | None = None) -> None:
    """Configure root logging; level defaults to settings.log_level (NARRATOR_LOG_LEVEL)."""
    logging.basicConfig(level=(level or get_settings().log_level).upper(), format=LOG_FORMAT)
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)

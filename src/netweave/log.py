import logging

from netweave.settings import Settings, get_settings


def configure_logging(settings: Settings | None = None) -> logging.Logger:
    """Configure the `netweave` logger hierarchy from settings and return its root."""
    settings = settings or get_settings()
    logger = logging.getLogger("netweave")
    logger.setLevel(settings.app.log_level)
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(settings.app.log_format))
        logger.addHandler(handler)
    return logger

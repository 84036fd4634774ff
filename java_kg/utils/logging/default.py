import logging
import threading

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

_configured = False
_configure_lock = threading.Lock()


def configure_logging(level: str | int = "INFO", force: bool = False) -> None:
    """Install the process-wide handler and level for the `java_kg` loggers.

    Args:
        level: Level name or number
        force: Reconfigure even if logging was already configured
    """
    global _configured
    with _configure_lock:
        if _configured and not force:
            return
        root = logging.getLogger("java_kg")
        if isinstance(level, str):
            level = logging.getLevelName(level.upper())
        root.setLevel(level)
        if not any(getattr(h, "_java_kg", False) for h in root.handlers):
            handler = logging.StreamHandler()
            handler.setFormatter(logging.Formatter(LOG_FORMAT))
            handler._java_kg = True
            root.addHandler(handler)
        _configured = True


def get_logger(name: str) -> logging.Logger:
    """Return a stdlib logger, configuring the package logger on first use."""
    if not _configured:
        from java_kg.core.config import settings

        configure_logging(settings.log_level)
    return logging.getLogger(name)


class Logger:
    """
    Logger carrying indexing context (project, scenario) on every record.

    Args:
        name (str): The name of the logger instance
        context (dict, optional): Context merged into each record's `extra`
    """

    def __init__(self, name: str, context: dict = None):
        self.base_logger: logging.Logger = get_logger(name)
        self.context = context

    def __add_context_to_extra(self, extra: dict) -> dict:
        if not extra:
            return self.context

        if not self.context:
            return extra

        extra = extra.copy()
        extra.update(self.context)
        return extra

    def debug(self, message, extra=None):
        self.base_logger.debug(message, extra=self.__add_context_to_extra(extra))

    def info(self, message, extra=None):
        self.base_logger.info(message, extra=self.__add_context_to_extra(extra))

    def warning(self, message, extra=None):
        self.base_logger.warning(message, extra=self.__add_context_to_extra(extra))

    def error(self, message, extra=None, exc_info=False):
        self.base_logger.error(
            message, extra=self.__add_context_to_extra(extra), exc_info=exc_info
        )

__all__ = [
    "Logger",
    "configure_logging",
    "get_logger",
]

from java_kg.utils.logging.default import Logger, configure_logging, get_logger

"""Loguru sinks for the command-line tool.

Library modules log through ``logging.getLogger(__name__)``; the intercept
handler forwards those records to loguru, which owns formatting and files.
"""
import logging
import sys

from loguru import logger

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>: <level>{message}</level>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}: {message}"

# driver chatter that drowns the liquidation log at DEBUG
QUIET_LOGGERS = ("sqlalchemy.engine", "aiosqlite", "aiomysql", "asyncio")


class InterceptHandler(logging.Handler):
    def emit(self, record: logging.LogRecord) -> None:
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno
        # skip logging's own frames so loguru reports the caller
        frame, depth = logging.currentframe(), 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1
        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def setup_logging(level: str = "INFO", log_file: str | None = None) -> None:
    """Colourised stdout at ``level``; a rotating DEBUG file when ``log_file`` is set."""
    logger.remove()
    logger.add(sys.stdout, format=CONSOLE_FORMAT, level=level, colorize=True)
    if log_file:
        logger.add(log_file, rotation="10 MB", retention="30 days", format=FILE_FORMAT, level="DEBUG")
    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

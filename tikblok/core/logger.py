import io
import logging
import logging.handlers
import os
import sys
from pathlib import Path

DEFAULT_LOG_DIR = os.getenv("LOG_DIR", "logs")
CONSOLE_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

LOG_FORMAT = '%(asctime)s | %(levelname)-8s | %(name)s | %(funcName)s:%(lineno)d | %(message)s'
CONSOLE_FORMAT = '\033[36m%(asctime)s\033[0m | \033[32m%(levelname)-8s\033[0m | %(name)s | %(message)s'
MAX_LOG_BYTES = 10 * 1024 * 1024
LOG_BACKUPS = 3


def _utf8_console():
    stream = sys.stdout
    try:
        if hasattr(stream, 'reconfigure'):
            stream.reconfigure(encoding='utf-8', errors='replace')
            return stream
        return io.TextIOWrapper(stream.buffer, encoding='utf-8', errors='replace')
    except (AttributeError, ValueError, io.UnsupportedOperation):
        # pytest capture and notebooks keep their own encoding
        return sys.stdout


class SimpleLogger:
    """
    Per-module logger: coloured console output at LOG_LEVEL and a rotating
    debug-level file ``<log_dir>/<module>.log``. Call sites are reported as the
    caller of these methods, not the wrapper.
    """

    def __init__(
        self,
        name: str,
        log_dir: str = DEFAULT_LOG_DIR,
        console_level: str = CONSOLE_LEVEL,
        file_level: str = "DEBUG"
    ):
        self.logger = logging.getLogger(name)
        self.logger.setLevel(logging.DEBUG)
        self.logger.propagate = False
        self.logger.handlers.clear()

        console_handler = logging.StreamHandler(_utf8_console())
        console_handler.setLevel(getattr(logging, console_level, logging.INFO))
        console_handler.setFormatter(logging.Formatter(CONSOLE_FORMAT, datefmt='%H:%M:%S'))
        self.logger.addHandler(console_handler)

        Path(log_dir).mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            Path(log_dir) / f"{name}.log",
            maxBytes=MAX_LOG_BYTES,
            backupCount=LOG_BACKUPS,
            encoding='utf-8'
        )
        file_handler.setLevel(getattr(logging, file_level, logging.DEBUG))
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        self.logger.addHandler(file_handler)

    def debug(self, msg: str): self.logger.debug(msg, stacklevel=2)
    def info(self, msg: str): self.logger.info(msg, stacklevel=2)
    def warning(self, msg: str): self.logger.warning(msg, stacklevel=2)
    def error(self, msg: str): self.logger.error(msg, stacklevel=2)
    def critical(self, msg: str): self.logger.critical(msg, stacklevel=2)
    def exception(self, msg: str): self.logger.exception(msg, stacklevel=2)

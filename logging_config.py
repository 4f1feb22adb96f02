# logging_config.py
import logging
import sys
import time
from datetime import date
from pathlib import Path

LOG_FORMAT = "%(asctime)s | %(name)s | %(levelname)s | %(message)s"
LOG_DATE_FORMAT = "%H:%M:%S"
LOG_DIR = Path("logs")

# Client libraries that log every HTTP round trip at INFO
QUIET_LOGGERS = ("urllib3", "httpx", "httpcore", "openai")


def setup_logging(level=logging.INFO, log_to_file=False, log_filename=None):
    """Route scheduler logs to stdout, and to logs/ when asked (one file per day)."""
    handlers = [logging.StreamHandler(sys.stdout)]
    if log_to_file:
        LOG_DIR.mkdir(exist_ok=True)
        handlers.append(logging.FileHandler(LOG_DIR / (log_filename or f"or_day_{date.today():%Y%m%d}.log")))

    logging.basicConfig(level=level, format=LOG_FORMAT, datefmt=LOG_DATE_FORMAT, handlers=handlers, force=True)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name):
    return logging.getLogger(name)


class LogContext:
    """Logs start, finish and elapsed time of a scheduler operation. Errors still propagate."""

    def __init__(self, logger, operation):
        self.logger = logger
        self.operation = operation
        self.started = None

    def __enter__(self):
        self.started = time.perf_counter()
        self.logger.info(f"{self.operation}: started")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        elapsed = time.perf_counter() - self.started
        if exc_type is None:
            self.logger.info(f"{self.operation}: done in {elapsed:.2f}s")
        else:
            self.logger.error(f"{self.operation}: failed after {elapsed:.2f}s ({exc_type.__name__}: {exc_val})")
        return False

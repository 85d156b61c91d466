import logging
import multiprocessing as mp
import os
import re
from datetime import datetime
from logging.handlers import RotatingFileHandler

from config.constants import LOG_DIR
from utils.display import format_duration

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# ANSI colours of the console handler
LOG_COLORS = {
    "DEBUG": "\033[92m",  # Green
    "INFO": "\033[94m",  # Blue
    "WARNING": "\033[93m",  # Yellow
    "ERROR": "\033[91m",  # Red
    "CRITICAL": "\033[95m",  # Magenta
    "ELAPSED": "\033[96m",  # Cyan, sweep clock
    "ENDC": "\033[0m",
}

_ANSI_ESCAPE = re.compile(r"\x1B\[[0-?]*[ -/]*[@-~]")


class TqdmToLogger:
    """
    File-like target for tqdm so sweep progress ends up in the log
    instead of fighting with the console handler.
    """

    def __init__(self, logger, level=logging.INFO):
        self.logger = logger
        self.level = level

    def write(self, message):
        message = message.strip()
        if message:
            self.logger.log(self.level, message)

    def flush(self):
        pass


class ColoredFormatter(logging.Formatter):
    """
    Console formatter: one colour per severity and, right-aligned at `width`
    columns, the time elapsed since the formatter was created.
    """

    def __init__(self, fmt=None, datefmt=None, width=160):
        super().__init__(fmt, datefmt)
        self.start_time = datetime.now()
        self.width = width

    def _paint(self, text, key):
        return f"{LOG_COLORS[key]}{text}{LOG_COLORS['ENDC']}"

    def format(self, record):
        elapsed = (datetime.now() - self.start_time).total_seconds()
        level_key = record.levelname if record.levelname in LOG_COLORS else "INFO"

        line = " - ".join((
            self._paint(self.formatTime(record, self.datefmt), "DEBUG"),
            self._paint(record.name, "WARNING"),
            self._paint(record.levelname, level_key),
            self._paint(record.getMessage(), level_key),
        ))
        padding = max(0, self.width - len(self.remove_ansi(line)))
        return f"{line}{' ' * padding}{self._paint('⏱ ' + format_duration(elapsed), 'ELAPSED')}"

    @staticmethod
    def remove_ansi(s):
        return _ANSI_ESCAPE.sub("", s)


def _is_worker_process():
    return mp.current_process().name != "MainProcess"


def _file_handler(log_file, level, rotate, max_bytes, backup_count, per_process):
    if per_process:
        base, ext = os.path.splitext(log_file)
        log_file = f"{base}.pid{os.getpid()}{ext}"
    # Several sweep workers must not rotate the same file.
    if rotate and not _is_worker_process():
        handler = RotatingFileHandler(log_file, maxBytes=max_bytes, backupCount=backup_count)
    else:
        handler = logging.FileHandler(log_file)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler.setLevel(level)
    return handler


def setup_logger(
        name="mirnakin",
        log_file=None,
        level=logging.DEBUG,
        log_dir=LOG_DIR,
        rotate=True,
        max_bytes=2 * 1024 * 1024,
        backup_count=5,
        mp_file_logging="main_only",  # off | main_only | per_process
):
    """
    Setup a logger with colored console output and file logging.

    Calling it again for the same name replaces the handlers instead of
    stacking them.

    :param name: logger name, modules of the package share "mirnakin"
    :param log_file: explicit log file, defaults to <log_dir>/<name>_<date>.log
    :param level: level of the logger and of the file handler
    :param log_dir: directory for log files, created if missing
    :param rotate: size-based rotation in the main process
    :param max_bytes: rotation size
    :param backup_count: number of rotated files kept
    :param mp_file_logging:
        - "off": no file logging
        - "main_only": only the main process writes the file, sweep workers log to the console
        - "per_process": one file per worker process
    :return: logger
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)
    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)

    is_worker = _is_worker_process()
    if mp_file_logging != "off" and not (mp_file_logging == "main_only" and is_worker):
        os.makedirs(log_dir, exist_ok=True)
        if log_file is None:
            log_file = os.path.join(str(log_dir), f"{name}_{datetime.now():%Y%m%d}.log")
        logger.addHandler(_file_handler(
            log_file, level, rotate, max_bytes, backup_count,
            per_process=(mp_file_logging == "per_process" and is_worker),
        ))

    console = logging.StreamHandler()
    console.setFormatter(ColoredFormatter(LOG_FORMAT))
    console.setLevel(max(level, logging.INFO))
    logger.addHandler(console)

    # Prevent double logging via root handlers
    logger.propagate = False
    return logger

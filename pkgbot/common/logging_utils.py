"""
Logging utilities for pkgbot
"""

import logging
import sys


class ColorFormatter(logging.Formatter):
    """Colorize level names like the shell tooling does"""

    COLORS = {
        'INFO': '\033[34m',      # Blue
        'WARNING': '\033[33m',   # Yellow
        'ERROR': '\033[31m',     # Red
        'CRITICAL': '\033[41m',  # Red background
        'DEBUG': '\033[35m',     # Purple
        'SUCCESS': '\033[32m',   # Green
    }

    def __init__(self, fmt=None, datefmt=None, use_color=True):
        super().__init__(fmt, datefmt)
        self.use_color = use_color

    def format(self, record):
        # Work on a copy so other handlers see the plain level name
        record = logging.makeLogRecord(record.__dict__)
        if getattr(record, 'success', False):
            record.levelname = 'SUCCESS'

        if self.use_color and record.levelname in self.COLORS:
            record.levelname = f"{self.COLORS[record.levelname]}{record.levelname}\033[0m"

        return super().format(record)


def setup_logging(debug_mode=False, log_file=None):
    """Setup logging configuration (console on stderr, optional log file)"""
    level = logging.DEBUG if debug_mode else logging.INFO

    console = logging.StreamHandler(sys.stderr)
    console.setFormatter(ColorFormatter('[%(levelname)s] %(message)s',
                                        use_color=sys.stderr.isatty()))
    handlers = [console]

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(logging.Formatter(
            '[%(asctime)s] %(levelname)s: %(message)s', datefmt='%H:%M:%S'))
        handlers.append(file_handler)

    logging.basicConfig(level=level, handlers=handlers, force=True)

    # urllib3 is chatty at DEBUG
    logging.getLogger("urllib3").setLevel(logging.WARNING)

    return logging.getLogger("pkgbot")


def log_success(logger, message):
    """Log an INFO record rendered with the SUCCESS tag"""
    logger.info(message, extra={'success': True})

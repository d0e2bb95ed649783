"""Logging configuration for twiggit"""
import logging
import sys
from pathlib import Path
from typing import Optional, TextIO

DETAILED_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
SHORT_FORMAT = '[%(name)s] %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

# GitPython logs every command it runs; only surface those in debug mode
GITPYTHON_LOGGERS = ('git.cmd', 'git.repo', 'git.util')

LEVEL_COLORS = {
    logging.DEBUG: '\033[36m',     # Cyan
    logging.INFO: '\033[32m',      # Green
    logging.WARNING: '\033[33m',   # Yellow
    logging.ERROR: '\033[31m',     # Red
    logging.CRITICAL: '\033[35m',  # Magenta
}
RESET = '\033[0m'


class ColoredFormatter(logging.Formatter):
    """Colors the level name when the target stream is a terminal."""

    def __init__(self, fmt: str, datefmt: Optional[str] = None, stream: Optional[TextIO] = None):
        super().__init__(fmt=fmt, datefmt=datefmt)
        self.stream = stream or sys.stderr

    def format(self, record):
        color = LEVEL_COLORS.get(record.levelno)
        if color is None or not self.stream.isatty():
            return super().format(record)

        # Records are shared between handlers; restore the plain name afterwards
        plain = record.levelname
        record.levelname = f"{color}{plain}{RESET}"
        try:
            return super().format(record)
        finally:
            record.levelname = plain


def default_log_file() -> Path:
    """Location of the debug log written when debug logging is on."""
    return Path.home() / '.twiggit' / 'twiggit.log'


def _console_level(verbose: bool, debug: bool) -> int:
    if debug:
        return logging.DEBUG
    if verbose:
        return logging.INFO
    return logging.WARNING


def setup_logging(
    verbose: bool = False,
    debug: bool = False,
    log_file: Optional[Path] = None,
    stream: Optional[TextIO] = None,
) -> None:
    """
    Configure logging for the application.

    Args:
        verbose: If True, show INFO level messages
        debug: If True, show DEBUG level messages and write a debug log file
        log_file: Override the debug log location (implies file logging)
        stream: Console stream, stderr by default
    """
    level = _console_level(verbose, debug)
    file_logging = debug or log_file is not None

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG if file_logging else level)
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
        handler.close()

    if file_logging:
        target = Path(log_file) if log_file else default_log_file()
        target.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(target, mode='w')  # Overwrite each run
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(fmt=DETAILED_FORMAT, datefmt=DATE_FORMAT))
        root_logger.addHandler(file_handler)

    stream = stream or sys.stderr
    console_handler = logging.StreamHandler(stream)
    console_handler.setLevel(level)
    if debug:
        console_handler.setFormatter(ColoredFormatter(DETAILED_FORMAT, DATE_FORMAT, stream=stream))
    else:
        console_handler.setFormatter(ColoredFormatter(SHORT_FORMAT, stream=stream))
    root_logger.addHandler(console_handler)

    for name in GITPYTHON_LOGGERS:
        logging.getLogger(name).setLevel(logging.DEBUG if debug else logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance for the specified module.

    Args:
        name: Name of the module (typically __name__)

    Returns:
        Logger instance, named without the package prefix
    """
    # Names such as "services.git.router" stay clear of GitPython's "git.*" loggers
    if name.startswith('twiggit.'):
        name = name[len('twiggit.'):]
    return logging.getLogger(name)

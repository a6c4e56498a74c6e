"""
Logging configuration for solstep.

Every component logs under the ``solstep`` logger (``solstep.trace``,
``solstep.controller``, ...). Records of individual trace steps go out at
the TRACE level, below DEBUG, so a whole stepping session can be followed
instruction by instruction without turning on everything else. Handlers
installed by ``setup_logging`` stamp each record with the trace cursor of
the session that owns them.
"""

import logging
import sys
from typing import Callable, Optional

from solstep.utils.colors import Colors

ROOT_LOGGER = 'solstep'

# Custom log level for per-step tracing
TRACE = 5
logging.addLevelName(TRACE, 'TRACE')

CONSOLE_FORMAT = '%(levelname)s: [%(step)s] %(name)s: %(message)s'
FILE_FORMAT = '%(asctime)s - [%(step)s] %(name)s - %(levelname)s - %(message)s'


class ColoredFormatter(logging.Formatter):
    """
    Formatter that adds ANSI colors to log levels.

    The record is copied before coloring so other handlers of the same
    logger still see the plain level name.
    """

    LEVEL_COLORS = {
        TRACE: Colors.DIM,
        logging.DEBUG: Colors.DIM,
        logging.INFO: Colors.BRIGHT_CYAN,
        logging.WARNING: Colors.BRIGHT_YELLOW,
        logging.ERROR: Colors.BRIGHT_RED,
        logging.CRITICAL: Colors.BOLD + Colors.BRIGHT_RED,
    }

    def __init__(self, fmt: str = None, datefmt: str = None, use_colors: bool = True):
        super().__init__(fmt, datefmt)
        self.use_colors = use_colors

    def format(self, record: logging.LogRecord) -> str:
        if self.use_colors:
            color = self.LEVEL_COLORS.get(record.levelno, '')
            if color:
                record = logging.makeLogRecord(record.__dict__)
                record.levelname = f"{color}{record.levelname}{Colors.RESET}"
        return super().format(record)


class StepFilter(logging.Filter):
    """
    Adds ``step`` to every record: the trace cursor at the time of logging,
    or ``-`` when no trace is loaded.
    """

    def __init__(self, cursor: Optional[Callable[[], Optional[int]]] = None):
        super().__init__()
        self.cursor = cursor

    def filter(self, record: logging.LogRecord) -> bool:
        position = self.cursor() if self.cursor else None
        record.step = '-' if position is None else position
        return True


def setup_logging(
    level: int = logging.INFO,
    quiet: bool = False,
    debug: bool = False,
    verbose: bool = False,
    log_file: Optional[str] = None,
    use_colors: bool = True,
    cursor: Optional[Callable[[], Optional[int]]] = None,
) -> logging.Logger:
    """
    Configure the ``solstep`` logger.

    Args:
        level: Base logging level
        quiet: If True, suppress all console output
        debug: If True, set level to DEBUG
        verbose: If True, set level to TRACE (one record per processed step)
        log_file: Optional path to log file; it always receives TRACE records
            the logger lets through
        use_colors: Whether to use colored output on a terminal
        cursor: Returns the current trace cursor, for the ``[step]`` column

    Returns:
        Configured logger instance
    """
    if verbose:
        effective_level = TRACE
    elif debug:
        effective_level = logging.DEBUG
    else:
        effective_level = level

    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(effective_level)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.propagate = False

    step_filter = StepFilter(cursor)

    if not quiet:
        console = logging.StreamHandler(sys.stderr)
        console.setLevel(effective_level)
        console.addFilter(step_filter)
        console.setFormatter(ColoredFormatter(
            fmt=CONSOLE_FORMAT,
            use_colors=use_colors and hasattr(sys.stderr, 'isatty') and sys.stderr.isatty(),
        ))
        logger.addHandler(console)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(TRACE)
        file_handler.addFilter(step_filter)
        file_handler.setFormatter(logging.Formatter(
            fmt=FILE_FORMAT,
            datefmt='%Y-%m-%d %H:%M:%S'
        ))
        logger.addHandler(file_handler)

    return logger


def get_logger(name: str = None) -> logging.Logger:
    """
    Get a logger instance.

    Args:
        name: Component name. If None, returns the root solstep logger;
              otherwise a child logger (e.g., 'solstep.controller').
    """
    if name:
        return logging.getLogger(f'{ROOT_LOGGER}.{name}')
    return logging.getLogger(ROOT_LOGGER)


def log_trace(logger: logging.Logger, msg: str, *args, **kwargs):
    """Log a TRACE message (more detailed than DEBUG)."""
    if logger.isEnabledFor(TRACE):
        logger.log(TRACE, msg, *args, **kwargs)


# Global logger instance for convenient access
logger = get_logger()

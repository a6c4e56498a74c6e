"""
Utilities module for solstep.

Provides exception handling, logging, colors, and helper functions.
"""

from .exceptions import (
    SolstepError,
    TraceError,
    TraceNotLoadedError,
    InvalidStepError,
    ParseError,
    SourceMapParseError,
    ASTError,
    NodeNotFoundError,
    UnknownCommandError,
    CommandInProgressError,
    ConfigError,
    format_error,
    format_error_json,
)
from .logging import setup_logging, get_logger, log_trace, logger, StepFilter, TRACE
from .colors import Colors, SUPPORTS_COLOR
from .helpers import (
    WORD_SIZE,
    normalize_word,
    extract_address_from_word,
    dedupe,
    format_address_display,
)

__all__ = [
    # Exceptions
    'SolstepError',
    'TraceError',
    'TraceNotLoadedError',
    'InvalidStepError',
    'ParseError',
    'SourceMapParseError',
    'ASTError',
    'NodeNotFoundError',
    'UnknownCommandError',
    'CommandInProgressError',
    'ConfigError',
    # Formatting
    'format_error',
    'format_error_json',
    # Logging
    'setup_logging',
    'get_logger',
    'log_trace',
    'logger',
    'StepFilter',
    'TRACE',
    # Colors
    'Colors',
    'SUPPORTS_COLOR',
    # Helpers
    'WORD_SIZE',
    'normalize_word',
    'extract_address_from_word',
    'dedupe',
    'format_address_display',
]

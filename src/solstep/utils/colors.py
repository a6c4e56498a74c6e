"""
ANSI color helpers for solstep terminal output.
"""

import os
import sys


class Colors:
    """ANSI escape sequences."""
    RESET = '\033[0m'
    BOLD = '\033[1m'
    DIM = '\033[2m'

    BRIGHT_RED = '\033[91m'
    BRIGHT_YELLOW = '\033[93m'
    BRIGHT_CYAN = '\033[96m'


# NO_COLOR convention: https://no-color.org
SUPPORTS_COLOR = (
    hasattr(sys.stdout, 'isatty') and sys.stdout.isatty()
    and 'NO_COLOR' not in os.environ
)


def error(text) -> str:
    """Error text, bright red on a color terminal."""
    if not SUPPORTS_COLOR:
        return str(text)
    return f"{Colors.BRIGHT_RED}{text}{Colors.RESET}"

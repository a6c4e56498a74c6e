"""
Custom exceptions for solstep.

This module provides a hierarchy of exceptions for the malformed-input cases
the stepping core can meet (bad traces, bad source maps, bad ASTs, bad
configuration), along with utilities for formatting errors consistently.
"""

import json
from typing import Any, Dict, Optional


class SolstepError(Exception):
    """
    Base exception for all solstep errors.

    Attributes:
        message: Human-readable error message
        details: Additional context as key-value pairs
        error_code: Optional error code for programmatic handling
    """

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        error_code: Optional[str] = None
    ):
        self.message = message
        self.details = details or {}
        self.error_code = error_code or self.__class__.__name__
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for JSON serialization."""
        return format_error_json(self.message, self.error_code, **self.details)

    def to_json(self, indent: int = 2) -> str:
        """Convert exception to JSON string."""
        return json.dumps(self.to_dict(), indent=indent)


# ============================================================================
# Trace Errors
# ============================================================================

class TraceError(SolstepError):
    """Raised when trace data cannot be used."""

    def __init__(self, message: str, step_index: Optional[int] = None, **kwargs):
        details = {}
        if step_index is not None:
            details["step_index"] = step_index
        details.update(kwargs)
        super().__init__(message, details, "TraceError")


class TraceNotLoadedError(TraceError):
    """Raised when a trace query is made before any trace was saved."""

    def __init__(self, **kwargs):
        super().__init__("No trace has been loaded", **kwargs)
        self.error_code = "TraceNotLoadedError"


class InvalidStepError(TraceError):
    """Raised when a struct log entry lacks required fields."""

    def __init__(self, step_index: int, reason: str, **kwargs):
        super().__init__(
            f"Invalid trace step {step_index}: {reason}",
            step_index=step_index,
            reason=reason,
            **kwargs
        )
        self.error_code = "InvalidStepError"


# ============================================================================
# Parsing Errors
# ============================================================================

class ParseError(SolstepError):
    """Raised when parsing fails."""

    def __init__(self, message: str, source: Optional[str] = None, **kwargs):
        details = {"source": source} if source else {}
        details.update(kwargs)
        super().__init__(message, details, "ParseError")


class SourceMapParseError(ParseError):
    """Raised when source map parsing fails."""

    def __init__(self, message: str, **kwargs):
        super().__init__(message, **kwargs)
        self.error_code = "SourceMapParseError"


class ASTError(ParseError):
    """Raised when the compiled AST is malformed."""

    def __init__(self, message: str, **kwargs):
        super().__init__(message, **kwargs)
        self.error_code = "ASTError"


class NodeNotFoundError(ASTError):
    """Raised when a pointer or id does not resolve to an AST node."""

    def __init__(self, reference: str, **kwargs):
        super().__init__(
            f"AST node not found: {reference}",
            reference=reference,
            **kwargs
        )
        self.error_code = "NodeNotFoundError"


# ============================================================================
# Control Errors
# ============================================================================

class UnknownCommandError(SolstepError):
    """Raised when a control command type has no stepping algorithm."""

    def __init__(self, command: str, **kwargs):
        super().__init__(
            f"Unknown control command: {command}",
            {"command": command, **kwargs},
            "UnknownCommandError"
        )


class CommandInProgressError(SolstepError):
    """Raised when a command is issued while another one is still running."""

    def __init__(self, command: str, running: str, **kwargs):
        super().__init__(
            f"Cannot run {command}: {running} is still running",
            {"command": command, "running": running, **kwargs},
            "CommandInProgressError"
        )


class ConfigError(SolstepError):
    """Raised when configuration is invalid."""

    def __init__(self, message: str, config_file: Optional[str] = None, **kwargs):
        details = {"config_file": config_file} if config_file else {}
        details.update(kwargs)
        super().__init__(message, details, "ConfigError")


# ============================================================================
# Error Formatting Utilities
# ============================================================================

def format_error(e: Exception, json_mode: bool = False) -> str:
    """
    Format an exception for display.

    Args:
        e: The exception to format
        json_mode: If True, output as JSON; otherwise use colored text

    Returns:
        Formatted error string
    """
    from solstep.utils.colors import error

    if isinstance(e, SolstepError):
        if json_mode:
            return e.to_json()
        return error(e.message)
    if json_mode:
        return json.dumps(format_error_json(str(e), type(e).__name__), indent=2)
    return error(str(e))


def format_error_json(
    message: str,
    error_type: str = "Error",
    **kwargs
) -> Dict[str, Any]:
    """
    Create a standardized error JSON structure.

    Args:
        message: Error message
        error_type: Error type/code
        **kwargs: Additional fields to include

    Returns:
        Dictionary suitable for JSON output
    """
    return {
        "error": True,
        "type": error_type,
        "message": message,
        **kwargs
    }

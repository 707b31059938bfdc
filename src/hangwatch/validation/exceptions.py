"""
Exception types and error handling helpers.

This module provides the small set of error handling primitives shared by the
whole package: a severity scale, the validation exception, and helpers that
log an error consistently and optionally re-raise it.
"""

import logging
import sys
from enum import Enum
from typing import Any, Optional, Union

_default_logger = logging.getLogger(__name__)


class ErrorSeverity(Enum):
    """Severity levels for error handling."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


# Logger method and whether the traceback is attached, per severity.
_LOG_METHODS = {
    ErrorSeverity.DEBUG: ("debug", True),
    ErrorSeverity.INFO: ("info", False),
    ErrorSeverity.WARNING: ("warning", False),
    ErrorSeverity.ERROR: ("error", True),
    ErrorSeverity.CRITICAL: ("critical", True),
}


class ValidationError(Exception):
    """
    Exception raised when validation fails.

    This is the only exception type the configuration layer raises for bad
    input; it carries the offending field and value for error messages.
    """

    def __init__(self, message: str, field_name: Optional[str] = None,
                 value: Any = None, severity: ErrorSeverity = ErrorSeverity.ERROR):
        super().__init__(message)
        self.field_name = field_name
        self.value = value
        self.severity = severity


def handle_error(
    error: Exception,
    context: str,
    severity: Union[ErrorSeverity, str] = ErrorSeverity.ERROR,
    reraise: bool = True,
    logger: Optional[logging.Logger] = None
) -> None:
    """
    Handle errors with consistent logging and optional re-raising.

    Args:
        error: The exception that occurred
        context: Context description of where the error occurred
        severity: Severity level for logging
        reraise: Whether to re-raise the exception after logging
        logger: Logger instance to use (defaults to module logger)
    """
    target = logger or _default_logger
    level = ErrorSeverity(severity.lower()) if isinstance(severity, str) else severity
    log_method, with_traceback = _LOG_METHODS[level]

    error_msg = f"Error in {context}: {error}"
    if with_traceback:
        getattr(target, log_method)(error_msg, exc_info=True)
    else:
        getattr(target, log_method)(error_msg)

    if reraise:
        raise error


def handle_config_error(error: Exception, context: str, **kwargs) -> None:
    """Handle configuration-related errors."""
    handle_error(error, f"config {context}", **kwargs)


def handle_cli_error(error: Exception, context: str, **kwargs) -> None:
    """Handle CLI-related errors by logging and exiting."""
    exit_code = kwargs.pop('exit_code', 1)
    severity = kwargs.pop('severity', ErrorSeverity.ERROR)

    handle_error(error, f"CLI {context}", severity=severity, reraise=False, **kwargs)

    sys.exit(exit_code)

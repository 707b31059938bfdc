"""
Unit tests for error handling helpers.
"""

import logging
from unittest.mock import Mock

import pytest

from hangwatch.validation import (
    ErrorSeverity,
    ValidationError,
    handle_cli_error,
    handle_config_error,
    handle_error,
)


@pytest.mark.unit
class TestHandleError:
    """Test cases for handle_error and its variants."""

    def test_reraises_by_default(self):
        error = RuntimeError("broken")
        with pytest.raises(RuntimeError) as exc_info:
            handle_error(error, "testing")
        assert exc_info.value is error

    def test_logs_with_context(self):
        logger = Mock(spec=logging.Logger)
        handle_error(ValueError("bad"), "sampler tick", severity=ErrorSeverity.WARNING,
                     reraise=False, logger=logger)

        logger.warning.assert_called_once_with("Error in sampler tick: bad")

    def test_error_severity_includes_traceback(self):
        logger = Mock(spec=logging.Logger)
        handle_error(ValueError("bad"), "ctx", severity="error", reraise=False, logger=logger)

        logger.error.assert_called_once_with("Error in ctx: bad", exc_info=True)

    def test_config_prefix(self):
        logger = Mock(spec=logging.Logger)
        handle_config_error(ValueError("x"), "loading", severity=ErrorSeverity.INFO,
                            reraise=False, logger=logger)

        logger.info.assert_called_once_with("Error in config loading: x")

    def test_unknown_severity_string_rejected(self):
        with pytest.raises(ValueError):
            handle_error(RuntimeError("x"), "ctx", severity="loud", reraise=False,
                         logger=Mock(spec=logging.Logger))

    def test_cli_error_exits(self):
        with pytest.raises(SystemExit) as exc_info:
            handle_cli_error(ValidationError("bad option"), "parsing", exit_code=2,
                             logger=Mock(spec=logging.Logger))
        assert exc_info.value.code == 2

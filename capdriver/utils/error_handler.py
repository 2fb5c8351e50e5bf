"""Centralized error handler for capd commands."""

import os
import traceback
from collections.abc import Callable
from datetime import datetime
from functools import wraps
from pathlib import Path
from typing import Any

import click

from capdriver.driver.exceptions import UserError
from capdriver.utils.exit_codes import ExitCodes
from capdriver.utils.logging import logger

ERROR_LOG_NAME = "error.log"
DEFAULT_RESULTS_DIR = "capdriver-out"


class UserFacingError(click.ClickException):
    """Invalid invocation or configuration; reported without a traceback."""

    exit_code = ExitCodes.USER_ERROR


class InternalError(click.ClickException):
    """Unexpected failure; reported with a pointer to error.log."""

    exit_code = ExitCodes.INTERNAL_ERROR


def _error_log_path(kwargs: dict[str, Any]) -> Path:
    results_dir = (
        kwargs.get("results_dir")
        or os.environ.get("CAPDRIVER_PATHS_RESULTS_DIR")
        or DEFAULT_RESULTS_DIR
    )
    return Path(results_dir) / ERROR_LOG_NAME


def handle_exceptions(func: Callable[..., Any]) -> Callable[..., Any]:
    """Decorator that turns driver failures into click errors with detailed logging."""

    @wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return func(*args, **kwargs)
        except click.ClickException:
            raise
        except UserError as e:
            logger.debug(f"Command '{func.__name__}' rejected: {e}")
            raise UserFacingError(str(e)) from e
        except Exception as e:
            error_log_path = _error_log_path(kwargs)
            error_log_path.parent.mkdir(parents=True, exist_ok=True)

            error_type = type(e).__name__
            error_msg = str(e)
            tb = traceback.format_exc()

            logger.opt(exception=True).error(
                "Command '{cmd}' failed: {err}",
                cmd=func.__name__,
                err=error_msg,
            )

            with open(error_log_path, "a", encoding="utf-8") as f:
                f.write("\n" + "=" * 80 + "\n")
                f.write(f"[{datetime.now().isoformat()}] Error in command: {func.__name__}\n")
                f.write("=" * 80 + "\n")
                f.write(f"{error_type}: {error_msg}\n\n")
                f.write(tb)
                f.write("=" * 80 + "\n\n")

            raise InternalError(
                f"{error_type}: {error_msg}\n\nFull traceback logged to: {error_log_path}"
            ) from e

    return wrapper

"""Centralized logging configuration using Loguru with Pino-compatible output.

Compiler shims started by a build log with the same request ID as the
``capd`` process that launched the build, so one run can be followed across
processes in a single NDJSON stream.

Usage:
    from capdriver.utils.logging import logger
    logger.info("Message")
    logger.debug("Debug message")  # Only shows if CAPDRIVER_LOG_LEVEL=DEBUG

Environment Variables:
    CAPDRIVER_LOG_LEVEL: DEBUG|INFO|WARNING|ERROR (default: WARNING)
    CAPDRIVER_LOG_JSON: 0|1 (default: 0, human-readable)
    CAPDRIVER_LOG_FILE: path to an extra NDJSON log file (optional)
    CAPDRIVER_REQUEST_ID: correlation ID shared with child processes
"""

import json
import os
import sys
import uuid
from pathlib import Path

from loguru import logger

LOG_FILE_NAME = "capdriver.log"

logger.remove()

# Pino-compatible numeric levels
PINO_LEVELS = {
    "TRACE": 10,
    "DEBUG": 20,
    "INFO": 30,
    "SUCCESS": 30,
    "WARNING": 40,
    "ERROR": 50,
    "CRITICAL": 60,
}

_log_level = os.environ.get("CAPDRIVER_LOG_LEVEL", "WARNING").upper()
_json_mode = os.environ.get("CAPDRIVER_LOG_JSON", "0") == "1"
_log_file = os.environ.get("CAPDRIVER_LOG_FILE")
_request_id = os.environ.get("CAPDRIVER_REQUEST_ID") or str(uuid.uuid4())

_file_handler_id: int | None = None


def _pino_record(record) -> dict:
    pino_log = {
        "level": PINO_LEVELS.get(record["level"].name, 30),
        "time": int(record["time"].timestamp() * 1000),
        "msg": record["message"],
        "pid": record["process"].id,
        "request_id": record["extra"].get("request_id", _request_id),
    }
    for key, value in record["extra"].items():
        if key != "request_id":
            pino_log[key] = value
    if record["exception"]:
        exc = record["exception"]
        pino_log["err"] = {
            "type": exc.type.__name__ if exc.type else "Error",
            "message": str(exc.value) if exc.value else "",
        }
    return pino_log


def pino_compatible_sink(message):
    """Format log records as Pino-compatible NDJSON on stdout.

    {"level":30,"time":1715629847123,"msg":"...","pid":12345,"request_id":"..."}
    """
    # Never call logger.* inside a sink
    sys.stdout.write(json.dumps(_pino_record(message.record), default=str) + "\n")
    sys.stdout.flush()


# Human-readable format (no emojis - Windows CP1252 compatibility)
_human_format = (
    "<green>{time:HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}:{function}:{line}</cyan> - "
    "<level>{message}</level>"
)

logger.level("DEBUG", color="<blue>")
logger.level("INFO", color="<white>")
logger.level("WARNING", color="<yellow>")
logger.level("ERROR", color="<red>")
logger.level("CRITICAL", color="<red><bold>")

if _json_mode:
    logger.add(pino_compatible_sink, level=_log_level, colorize=False)
else:
    logger.add(
        sys.stderr,
        level=_log_level,
        format=_human_format,
        colorize=None,  # Auto-detect: colors if TTY, plain if piped
    )

if _log_file:
    def _file_pino_sink(message):
        """Append Pino-format JSON to the configured log file."""
        with open(_log_file, "a", encoding="utf-8") as f:
            f.write(json.dumps(_pino_record(message.record), default=str) + "\n")

    logger.add(_file_pino_sink, level="DEBUG")


def configure_file_logging(log_dir: Path, level: str = "DEBUG") -> Path:
    """Send logs to ``capdriver.log`` inside the results directory.

    Calling it again for another directory moves the handler there.

    Args:
        log_dir: Results directory
        level: Minimum log level for file output

    Returns:
        Path of the log file
    """
    global _file_handler_id

    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / LOG_FILE_NAME

    if _file_handler_id is not None:
        logger.remove(_file_handler_id)

    _file_handler_id = logger.add(
        log_file,
        rotation="10 MB",
        level=level,
        format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {process} | {name}:{function}:{line} - {message}",
    )
    return log_file


def release_file_logging() -> None:
    """Close the results-directory log so the file can be deleted."""
    global _file_handler_id

    if _file_handler_id is not None:
        logger.remove(_file_handler_id)
        _file_handler_id = None


def get_subprocess_env() -> dict:
    """Get environment dict with REQUEST_ID for build and analyzer subprocesses."""
    env = os.environ.copy()
    env["CAPDRIVER_REQUEST_ID"] = _request_id
    return env


__all__ = [
    "logger",
    "LOG_FILE_NAME",
    "configure_file_logging",
    "release_file_logging",
    "get_subprocess_env",
]

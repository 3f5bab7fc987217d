import json
import logging
import sys
import traceback
from pathlib import Path
from typing import Optional

import loguru
from loguru import logger

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
    "<bold><white>{message}</white></bold> | <dim>{extra}</dim> {stacktrace}"
)

# Rotation policy for the JSON log files
LOG_FILE_ROTATION = "5 MB"
LOG_FILE_RETENTION = 5


# Loggers configuration runs on import -- src/ldap_migration/__init__.py -- and again from the CLI
def configure_logger(
    level: str = "INFO",
    log_file_path: Optional[str] = None,
):
    """
    Configure loguru logger with a console sink and optional file sinks.

    Args:
        level: Minimum level for the console and main file sink
        log_file_path: Path of the JSON log file; errors also go to ``<name>.error.log``
    """
    # ldap3 and asyncpg log through the standard library; keep them quiet
    logging.getLogger("ldap3").setLevel(logging.WARNING)
    logging.getLogger("asyncpg").setLevel(logging.WARNING)

    logger.remove()  # remove the default logger

    # File sinks go first: the console filter rewrites "extra" in place
    file_error = None
    log_path = error_path = None
    if log_file_path:
        try:
            log_path = Path(log_file_path)
            log_path.parent.mkdir(parents=True, exist_ok=True)
            error_path = log_path.with_name(f"{log_path.stem}.error{log_path.suffix or '.log'}")

            logger.add(
                sink=str(log_path),
                level=level,
                serialize=True,
                rotation=LOG_FILE_ROTATION,
                retention=LOG_FILE_RETENTION,
                enqueue=True,
                diagnose=False,
            )
            logger.add(
                sink=str(error_path),
                level="ERROR",
                serialize=True,
                rotation=LOG_FILE_ROTATION,
                retention=LOG_FILE_RETENTION,
                enqueue=True,
                diagnose=False,
            )
        except Exception as e:
            # Console logging keeps working when the log directory is not writable
            file_error = e

    # Add stdout handler (always enabled for console output)
    logger.add(
        sink=sys.stdout,
        level=level,
        diagnose=False,
        format=CONSOLE_FORMAT,
        filter=process_log_record,
    )

    if file_error is not None:
        logger.warning("Failed to initialize file logging", log_file=log_file_path, error=str(file_error))
    elif log_path is not None:
        logger.debug("File logging enabled", log_file=str(log_path), error_file=str(error_path))


def process_log_record(record: "loguru.Record") -> "loguru.Record":
    r"""
    Inject transformed metadata into each log record before they are passed to the formatter.

    1. Serialize the "extra" field to JSON so that it renders on a single line.
    2. For error logs, add a traceback with \r instead of \n so that log shippers do not
       split the traceback into multiple log events.
    """
    extra = record["extra"]

    # serialize "extra" field to JSON
    if extra:
        record["extra"] = json.dumps(extra, default=str)

    # add stacktrace to log record
    record["stacktrace"] = ""
    if record["exception"]:
        err = record["exception"]
        stacktrace = get_formatted_stacktrace(err, replace_newline_character_with_carriage_return=True)
        record["stacktrace"] = stacktrace

    return record


def get_formatted_stacktrace(loguru_record_exception, replace_newline_character_with_carriage_return: bool) -> str:
    """Get the formatted stacktrace for the current exception."""
    exc_type, exc_value, exc_traceback = loguru_record_exception
    stacktrace_: list[str] = traceback.format_exception(exc_type, exc_value, exc_traceback)
    stacktrace: str = "".join(stacktrace_)
    if replace_newline_character_with_carriage_return:
        stacktrace = stacktrace.replace("\n", "\r")
    return stacktrace

import json
import logging
import sys
import traceback
from typing import Optional

import loguru
from fastapi import Response
from loguru import logger

STDOUT_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
    "<bold><white>{message}</white></bold> | <dim>{extra}</dim> {stacktrace}"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {name}:{function}:{line} | {message} | {extra} {stacktrace}"


# Runs once at import (nexus_api/__init__.py) and again from create_app() with the loaded Settings
def configure_logger(
    log_level: str = "INFO",
    log_file_path: Optional[str] = None,
    service_name: Optional[str] = None,
):
    """
    Configure loguru logger sinks.

    Args:
        log_level: Minimum level for the stdout sink
        log_file_path: Optional path for a rotating file sink
        service_name: Bound into every record as ``service`` when given
    """
    # Suppress verbose Azure SDK logging (queue client HTTP traces)
    logging.getLogger("azure").setLevel(logging.WARNING)
    logging.getLogger("azure.core.pipeline.policies").setLevel(logging.ERROR)
    logging.getLogger("httpx").setLevel(logging.WARNING)

    logger.remove()  # remove the default logger

    if service_name:
        logger.configure(extra={"service": service_name})

    logger.add(
        sink=sys.stdout,
        level=log_level,
        diagnose=False,
        format=STDOUT_FORMAT,
        filter=process_log_record,
    )

    if log_file_path:
        try:
            logger.add(
                sink=log_file_path,
                level=log_level,
                format=FILE_FORMAT,
                filter=process_log_record,
                rotation="50 MB",
                retention="14 days",
                enqueue=True,
                diagnose=False,
            )
            logger.info("File logging enabled", log_file_path=log_file_path)
        except Exception as e:
            logger.warning(f"Failed to initialize file logging: {e}")


def process_log_record(record: "loguru.Record") -> "loguru.Record":
    r"""
    Inject transformed metadata into each log record before it is formatted.

    1. Serialize the "extra" field to JSON so that log aggregators index it as one field.
    2. For error logs, add a traceback with \r instead of \n so that the whole traceback
       stays in a single log event.
    """
    extra = record["extra"]

    if extra and not isinstance(extra, str):
        record["extra"] = json.dumps(extra, default=str)

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


def log_response_info(response: Response):
    """Log the response info."""
    response_info = {
        "status_code": response.status_code,
        "headers": dict(response.headers.items()),
    }
    logger.debug("Response sent", http_response=response_info)

import logging
import os
import sys
import uuid
from contextvars import ContextVar
from typing import TYPE_CHECKING, Optional

from loguru import logger

from merrive_portal.core.config import Environment, settings

if TYPE_CHECKING:
    from loguru import Record

# ============================================
# CONTEXT VARIABLES FOR REQUEST TRACKING
# ============================================
request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)


# ============================================
# LOG FILE PATH
# ============================================
LOG_FILE_NAME = "portal.log"


# ============================================
# LOG LEVEL MAPPING
# ============================================

LOG_LEVELs = {
    50: "CRITICAL",
    40: "ERROR",
    30: "WARNING",
    20: "INFO",
    10: "DEBUG",
    0: "NOTSET",
}


def new_request_id() -> str:
    """
    Short correlation id attached to outgoing calls and their log lines.
    """
    return str(uuid.uuid4())[:8]


def mask_token(token: str | None) -> str:
    """
    Render a bearer token for logs without leaking it.

    Args:
        token: The token to mask

    Returns:
        str: The first 6 characters followed by an ellipsis, or "<none>"
    """
    if not token:
        return "<none>"

    return f"{token[:6]}..."


# ============================================
# CUSTOM FILTER FOR CORRELATION AND PROCESS ID
# ============================================


def correlation_filter(record: "Record") -> bool:
    """
    Add correlation ID and process ID to log records.
    This allows tracking a call and its replay across the log.

    Args:
        record (Record): Log record from Loguru.

    Returns:
        bool: Always True, nothing is filtered out.
    """
    record["extra"]["request_id"] = request_id_var.get() or "-"
    record["extra"]["process_id"] = os.getpid()

    return True


# ============================================
# INTERCEPT HANDLER FOR STANDARD LOGGING
# ============================================


class InterceptHandler(logging.Handler):
    """
    Intercepts standard logging and redirects to Loguru.
    Used to route httpx and httpcore loggers through our Loguru configuration.
    """

    def emit(self, record: logging.LogRecord):
        # Get corresponding Loguru level if it exists
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Find the caller from where the logging call originated
        frame = logging.currentframe()
        depth = 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


# ============================================
# MAIN LOGGER SETUP FUNCTION
# ============================================


def setup_logger():
    """
    Configure Loguru logger for the portal client.

    Features:
    - Colored console output with correlation id
    - Optional rotating log file (10MB rotation, 3 months retention, gzip)
    - Standard library loggers (httpx, httpcore) redirected to Loguru

    This should be called once by the embedding application at startup.
    """
    # Remove default handler to avoid duplicate logs
    logger.remove()

    log_level = LOG_LEVELs.get(settings.log_level, "INFO")

    # ============================================
    # CONSOLE OUTPUT: Simplified, colored format
    # ============================================
    console_format = (
        "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
        "<level>{level: <8}</level> | "
        "<yellow>ReqID:{extra[request_id]}</yellow> | "
        "<cyan>{name}:{function}:{line}</cyan> | "
        "<level>{message}</level>"
    )

    logger.add(
        sys.stderr,
        format=console_format,
        level=logging.DEBUG if settings.current_environment == Environment.DEV else log_level,
        colorize=True,
        filter=correlation_filter,
    )

    # ============================================
    # FILE OUTPUT: Detailed format with full context
    # ============================================
    if settings.log_to_file is True:
        settings.log_dir.mkdir(parents=True, exist_ok=True)

        file_format = (
            "{time:YYYY-MM-DD HH:mm:ss!UTC} | "
            "{level: <8} | "
            "PID:{extra[process_id]} | "
            "ReqID:{extra[request_id]} | "
            "{name}:{function}:{line} | "
            "{message}"
        )

        logger.add(
            settings.log_dir / LOG_FILE_NAME,
            format=file_format,
            level=log_level,
            rotation="10 MB",  # Rotate when file reaches 10MB
            retention="3 months",  # Keep logs for 3 months
            compression="gz",  # Compress rotated files to .gz
            enqueue=True,
            filter=correlation_filter,
            backtrace=True,
            diagnose=False,  # Locals may hold tokens
        )

    configure_http_logging()

    logger.info(
        f"Logger initialized | "
        f"Environment: {settings.current_environment.value} | "
        f"Level: {log_level} | "
        f"API: {settings.api_url}"
    )


def configure_http_logging():
    """
    Replace the default handlers of the HTTP stack loggers with Loguru.
    """
    for name in ("httpx", "httpcore"):
        std_logger = logging.getLogger(name)
        std_logger.handlers = [InterceptHandler()]
        std_logger.propagate = False

    logger.debug("httpx logging configured to use Loguru")


def shutdown_logger():
    """
    Flush pending log records. Call this before the embedding application exits.
    """
    logger.info("Shutting down logger...")
    logger.complete()

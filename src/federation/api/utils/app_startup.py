"""Loguru setup for the bridge process (API server and CLI)."""

import logging
import sys
from pathlib import Path

from loguru import logger

from src.federation.runtime.settings import BridgeSettings

REDACTED = "***"
SENSITIVE_KEYS = frozenset({"password", "api_password", "token", "secret", "api_key"})

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "[<cyan>{extra[request_id]}</cyan>] | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
    "<level>{message}</level>"
)

# Libraries that log every outbound request at INFO
QUIET_LOGGERS = ("httpx", "httpcore")


class InterceptHandler(logging.Handler):
    """Forward stdlib logging records (httpx, uvicorn) into Loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        # The request logging middleware already covers access logs
        if record.name == "uvicorn.access":
            return

        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        logger.opt(depth=2, exception=record.exc_info).bind(
            logger_name=record.name
        ).log(level, record.getMessage())


def redact_record(record) -> None:
    """Loguru patcher: default request_id and mask credential-like extras."""
    extra = record["extra"]
    extra.setdefault("request_id", "-")
    for key in SENSITIVE_KEYS.intersection(extra):
        extra[key] = REDACTED


def configure_logging(settings: BridgeSettings) -> None:
    """Replace Loguru's default sink with the bridge's console and file sinks."""
    verbose_tracebacks = settings.environment != "production"

    logger.remove()
    logger.configure(extra={"request_id": "-"}, patcher=redact_record)

    logger.add(
        sys.stderr,
        level=settings.log_level,
        format=CONSOLE_FORMAT,
        colorize=True,
        backtrace=verbose_tracebacks,
        diagnose=verbose_tracebacks,
    )

    if settings.log_file:
        path = Path(settings.log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        as_json = settings.log_format == "json"
        logger.add(
            str(path),
            level=settings.log_level,
            format="{message}" if as_json else CONSOLE_FORMAT,
            serialize=as_json,
            rotation="10 MB",
            retention=5,
            compression="zip",
            enqueue=True,
            backtrace=verbose_tracebacks,
            diagnose=verbose_tracebacks,
        )

    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)
    for name in list(logging.root.manager.loggerDict):
        stdlib_logger = logging.getLogger(name)
        stdlib_logger.handlers = []
        stdlib_logger.propagate = True

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    logging.getLogger("uvicorn").setLevel(logging.INFO)
    logging.getLogger("uvicorn.access").setLevel(logging.CRITICAL)

    logger.info(
        "Logging configured",
        log_level=settings.log_level,
        log_format=settings.log_format,
        log_file=settings.log_file,
        environment=settings.environment,
    )

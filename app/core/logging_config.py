import os
import logging
import logging.handlers
import re
import sys
from pathlib import Path
from typing import Optional


class SecurityFilter(logging.Filter):
    """Filter to remove sensitive information from logs while preserving context"""

    SENSITIVE_PATTERNS = [
        # JWT tokens (eyJ...)
        (r'eyJ[A-Za-z0-9_-]*\.[A-Za-z0-9_-]*\.[A-Za-z0-9_-]*', '[JWT_TOKEN]'),
        # Bearer tokens
        (r'Bearer\s+[A-Za-z0-9._-]+', 'Bearer [TOKEN]'),
        # Password values
        (r'password["\s]*[:=]["\s]*[^,}\s]+', 'password: [HIDDEN]'),
        # Fingerprint / device tokens
        (r'(fingerprint_id|device_token)["\s]*[:=]["\s]*[^,}\s]+', r'\1: [HIDDEN]'),
        # Phone numbers in client contexts
        (r'phone["\s]*[:=]["\s]*\+?[\d\s-]{6,}', 'phone: [HIDDEN]'),
    ]

    def filter(self, record):
        # Merge args first so values passed as %s parameters are masked too
        msg = record.getMessage()
        for pattern, replacement in self.SENSITIVE_PATTERNS:
            msg = re.sub(pattern, replacement, msg, flags=re.IGNORECASE)
        record.msg = msg
        record.args = None
        return True


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("1", "true", "yes")


def _build_formatter(log_format: str) -> logging.Formatter:
    if log_format == "json":
        return logging.Formatter(
            '{"timestamp": "%(asctime)s", "level": "%(levelname)s", '
            '"logger": "%(name)s", "message": "%(message)s"}'
        )
    return logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s")


def _add_handler(root: logging.Logger, handler: logging.Handler, level: int,
                 formatter: logging.Formatter, security_filter: Optional[SecurityFilter]) -> None:
    handler.setLevel(level)
    handler.setFormatter(formatter)
    if security_filter is not None:
        handler.addFilter(security_filter)
    root.addHandler(handler)


def setup_logging() -> logging.Logger:
    """
    Configure application logging from environment variables.

    LOG_LEVEL, SQL_LOG_LEVEL, LOG_FORMAT (text|json), LOG_FILE_PATH,
    LOG_TO_FILE, ENABLE_SECURITY_FILTER and ACCESS_LOG_EVENTS. Door
    devices poll often, so per-decision access logging can be turned down
    without touching the rest of the app.
    """
    level = getattr(logging, os.getenv("LOG_LEVEL", "INFO").upper(), logging.INFO)
    sql_level = getattr(logging, os.getenv("SQL_LOG_LEVEL", "WARNING").upper(), logging.WARNING)
    formatter = _build_formatter(os.getenv("LOG_FORMAT", "text").lower())
    security_filter = SecurityFilter() if _env_flag("ENABLE_SECURITY_FILTER", "false") else None

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    _add_handler(root_logger, logging.StreamHandler(sys.stdout), level, formatter, security_filter)

    log_file_path = None
    if _env_flag("LOG_TO_FILE", "true"):
        # <repo>/logs/app.log unless overridden
        default_path = Path(__file__).resolve().parents[2] / "logs" / "app.log"
        log_file_path = Path(os.getenv("LOG_FILE_PATH", str(default_path)))
        log_file_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            log_file_path,
            maxBytes=10 * 1024 * 1024,
            backupCount=5
        )
        _add_handler(root_logger, file_handler, level, formatter, security_filter)

    logging.getLogger("sqlalchemy.engine").setLevel(sql_level)
    logging.getLogger("app").setLevel(level)

    access_logger = get_logger("services.access_control")
    access_logger.setLevel(logging.INFO if _env_flag("ACCESS_LOG_EVENTS", "true") else logging.WARNING)

    root_logger.info(
        "Logging initialized level=%s sql=%s file=%s",
        logging.getLevelName(level),
        logging.getLevelName(sql_level),
        log_file_path or "disabled",
    )
    return root_logger


def get_logger(name: str) -> logging.Logger:
    """Logger under the `app.` namespace, e.g. get_logger("crud.payments")."""
    return logging.getLogger(f"app.{name}")


def log_security_event(event_type: str, details: str, level: str = "WARNING"):
    security_logger = get_logger("security")
    security_logger.log(
        getattr(logging, level.upper(), logging.WARNING),
        "Security event: %s - %s", event_type, details
    )

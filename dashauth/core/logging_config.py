"""
Structured logging for the accounts service.

One stdout handler on the root logger. In production every record is a JSON
object carrying the caller context (module, function and, for warnings and
above, the source line). Bearer tokens that end up in a message are masked
before the record is formatted.
"""

import logging
import re
import sys
from datetime import datetime, timezone
from typing import Any, Dict
from pythonjsonlogger import jsonlogger

SERVICE_NAME = "dashauth"

# header.claims.signature, each base64url
_JWT_RE = re.compile(r"\beyJ[\w-]+\.[\w-]+\.[\w-]*")
_BEARER_RE = re.compile(r"(Bearer\s+)\S+", re.IGNORECASE)


class RedactTokensFilter(logging.Filter):
    """Mask session tokens in log messages."""

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        masked = _BEARER_RE.sub(r"\1[redacted]", _JWT_RE.sub("[redacted-token]", message))
        if masked != message:
            record.msg = masked
            record.args = None
        return True


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """
    JSON formatter with the fields every account log line carries.
    """

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)

        created = datetime.fromtimestamp(record.created, tz=timezone.utc)
        log_record['timestamp'] = created.isoformat().replace('+00:00', 'Z')
        log_record['service'] = SERVICE_NAME
        log_record['level'] = record.levelname
        log_record['logger'] = record.name
        log_record['module'] = record.module
        log_record['function'] = record.funcName

        # Failures get the exact site
        if record.levelno >= logging.WARNING:
            log_record['line'] = record.lineno
            log_record['pathname'] = record.pathname


def setup_logging(log_level: str = "INFO", json_logs: bool = True) -> None:
    """
    Configure structured logging for the application.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_logs: JSON lines (production) or a readable single-line format (development)
    """
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.addFilter(RedactTokensFilter())

    if json_logs:
        formatter = CustomJsonFormatter('%(timestamp)s %(level)s %(logger)s %(message)s')
    else:
        formatter = logging.Formatter(
            '%(asctime)s %(levelname)-7s %(name)s [%(funcName)s:%(lineno)d] %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )
    console_handler.setFormatter(formatter)

    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))
    root_logger.addHandler(console_handler)

    # Quiet third-party chatter
    for name in ("urllib3", "boto3", "botocore"):
        logging.getLogger(name).setLevel(logging.WARNING)
    logging.getLogger("passlib").setLevel(logging.ERROR)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)

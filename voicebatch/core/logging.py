"""
Logging setup.

``text`` format for local runs, ``json`` for log shippers.
"""
import json
import logging
import sys
from datetime import datetime, timezone

from voicebatch.config import settings


class JSONFormatter(logging.Formatter):

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, ensure_ascii=False)


def setup_logging(level: str = None, fmt: str = None) -> None:
    level = (level or settings.LOG_LEVEL).upper()
    fmt = fmt or settings.LOG_FORMAT

    handler = logging.StreamHandler(sys.stdout)
    if fmt == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s [%(name)s] %(message)s")
        )

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(level)

    # requests' connection pool chatter
    logging.getLogger("urllib3").setLevel(logging.WARNING)


def mask_phone(phone: str) -> str:
    if not phone:
        return ""
    return phone[:5] + "..." if len(phone) > 5 else phone

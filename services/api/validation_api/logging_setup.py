import json
import logging
import os
import sys
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler

from .settings import settings

_RESERVED = set(vars(logging.makeLogRecord({})))


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        base = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc)
            .isoformat()
            .replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        # attach extras passed via logger.*(..., extra={...})
        for k, v in record.__dict__.items():
            if k in _RESERVED or k.startswith("_") or k in base:
                continue
            try:
                json.dumps({k: v})
                base[k] = v
            except (TypeError, ValueError):
                base[k] = str(v)
        if record.exc_info:
            base["exc"] = self.formatException(record.exc_info)
        return json.dumps(base, ensure_ascii=False)


def build_logger(
    name: str = "validation",
    level: str = settings.log_level,
    file_path: str = settings.log_file,
    max_bytes: int = 5_000_000,
    backup_count: int = 3,
) -> logging.Logger:
    logger = logging.getLogger(name)
    if logger.handlers:  # uvicorn --reload imports twice
        return logger
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    fmt = JsonFormatter()
    sh = logging.StreamHandler(sys.stdout)
    sh.setFormatter(fmt)
    logger.addHandler(sh)

    if file_path:
        directory = os.path.dirname(file_path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        fh = RotatingFileHandler(
            file_path, maxBytes=max_bytes, backupCount=backup_count
        )
        fh.setFormatter(fmt)
        logger.addHandler(fh)

    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    return logger


logger = build_logger()

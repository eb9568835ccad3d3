from __future__ import annotations

import json
import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

LEDGER_LOGGER = "stockcost.ledger"
PAYMENTS_LOGGER = "stockcost.payments"

# Audit channels get their own file on top of app.log.
AUDIT_LOGS = {
    LEDGER_LOGGER: "ledger.log",
    PAYMENTS_LOGGER: "payments.log",
}


class JsonFormatter(logging.Formatter):
    """One JSON object per line.

    Ledger and payment messages are written as ``event key=value ...``; the
    leading event name is lifted into its own field so the audit files can be
    filtered without parsing the message.
    """

    def format(self, record: logging.LogRecord) -> str:
        message = record.getMessage()
        payload = {
            "time": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": message,
        }
        head = message.split(" ", 1)[0]
        if head and "=" not in head:
            payload["event"] = head
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False)


class AuditFileHandler(RotatingFileHandler):
    """Marker type so setup_logging can find and replace its own audit handlers."""


def _handler(path: Path, level: int, cls: type = RotatingFileHandler) -> RotatingFileHandler:
    fh = cls(path, maxBytes=2_000_000, backupCount=5, encoding="utf-8")
    fh.setFormatter(JsonFormatter(datefmt="%Y-%m-%d %H:%M:%S"))
    fh.setLevel(level)
    return fh


def _attach_audit_handlers(logs_dir: Path) -> None:
    for name, filename in AUDIT_LOGS.items():
        logger = logging.getLogger(name)
        for old in [h for h in logger.handlers if isinstance(h, AuditFileHandler)]:
            logger.removeHandler(old)
            old.close()
        logger.addHandler(_handler(logs_dir / filename, logging.INFO, AuditFileHandler))
        logger.setLevel(logging.INFO)


def setup_logging(logs_dir: Path, level: int = logging.INFO) -> None:
    logs_dir.mkdir(parents=True, exist_ok=True)

    # Calling this again points the audit files at logs_dir without stacking handlers.
    _attach_audit_handlers(logs_dir)

    root = logging.getLogger()
    root.setLevel(level)
    if root.handlers:
        return

    root.addHandler(_handler(logs_dir / "app.log", logging.INFO))
    root.addHandler(_handler(logs_dir / "errors.log", logging.ERROR))

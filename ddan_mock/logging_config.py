"""
JSON logging for the mock DDAN server.

Scan events pass the record as ``extra={"scan": record.to_response()}``; the
formatter lifts it into top-level ``fileId``, ``status`` and ``result`` keys
so a client's submission and every later poll can be grepped by file id.
"""

import logging
import logging.config
import os

from pythonjsonlogger.json import JsonFormatter

SERVICE_NAME = "ddan-mock"
SCAN_FIELDS = ("fileId", "status", "result")


class ScanJsonFormatter(JsonFormatter):
    def __init__(self, *args, environment: str = "production", **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.environment = environment

    def add_fields(
        self,
        log_record: dict,
        record: logging.LogRecord,
        message_dict: dict,
    ) -> None:
        super().add_fields(log_record, record, message_dict)
        scan = log_record.pop("scan", None)
        if isinstance(scan, dict):
            for key in SCAN_FIELDS:
                if key in scan:
                    log_record[key] = scan[key]
        log_record["service"] = SERVICE_NAME
        log_record["environment"] = self.environment
        log_record["level"] = log_record.pop("levelname", record.levelname)


def setup_logging(level: str | None = None) -> None:
    """Route the server's and uvicorn's loggers to one JSON stdout handler.

    ``level`` falls back to LOG_LEVEL, then INFO. ENVIRONMENT is read here,
    not at import, so it follows the process that starts the server.
    """
    log_level = (level or os.getenv("LOG_LEVEL", "INFO")).upper()
    server_logger = {"handlers": ["json"], "level": log_level, "propagate": False}

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "json": {
                    "()": ScanJsonFormatter,
                    "fmt": "%(asctime)s %(levelname)s %(name)s %(message)s",
                    "rename_fields": {"asctime": "timestamp", "name": "logger"},
                    "environment": os.getenv("ENVIRONMENT", "production"),
                },
            },
            "handlers": {
                "json": {
                    "class": "logging.StreamHandler",
                    "formatter": "json",
                    "stream": "ext://sys.stdout",
                },
            },
            "root": {"handlers": ["json"], "level": log_level},
            "loggers": {
                name: dict(server_logger)
                for name in ("ddan_mock", "uvicorn", "uvicorn.error", "uvicorn.access")
            },
        }
    )

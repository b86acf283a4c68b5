# Copyright 2025 ATP Project Contributors
# Licensed under the Apache License, Version 2.0

"""JSON event logging for probe runs and alert delivery.

Operational events (one per probe, one per alert) are written as single-line
JSON objects so they can be shipped and queried alongside the probe log.
Everything else in the package logs through plain module loggers.
"""

from __future__ import annotations

import json
import logging
import sys
import time
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .domain.health.models import HealthCheckRecord

EVENT_LOGGER_ROOT = "fleet_console.events"


def _encode(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)


class StructuredLogger:
    """Writes ``{"ts", "level", "component", "event", ...}`` lines for one component."""

    def __init__(self, component: str, level: int = logging.INFO):
        self.component = component
        self.logger = logging.getLogger(f"{EVENT_LOGGER_ROOT}.{component}")
        root = logging.getLogger(EVENT_LOGGER_ROOT)
        if not root.handlers:
            handler = logging.StreamHandler(sys.stdout)
            handler.setFormatter(logging.Formatter("%(message)s"))
            root.addHandler(handler)
        self.logger.setLevel(level)

    def _log(self, level: int, event: str, fields: dict[str, Any]) -> None:
        record = {
            "ts": round(time.time(), 3),
            "level": logging.getLevelName(level),
            "component": self.component,
            "event": event,
        }
        record.update((k, v) for k, v in fields.items() if v is not None)
        self.logger.log(level, json.dumps(record, separators=(",", ":"), default=_encode))

    def info(self, event: str, **fields: Any) -> None:
        self._log(logging.INFO, event, fields)

    def warning(self, event: str, **fields: Any) -> None:
        self._log(logging.WARNING, event, fields)

    def error(self, event: str, **fields: Any) -> None:
        self._log(logging.ERROR, event, fields)


_loggers: dict[str, StructuredLogger] = {}


def get_logger(component: str) -> StructuredLogger:
    """Shared event logger for ``component`` (``probes``, ``alerts``, ...)."""
    if component not in _loggers:
        _loggers[component] = StructuredLogger(component)
    return _loggers[component]


def log_probe(record: HealthCheckRecord) -> None:
    """Emit the ``health_probe`` event for one probe log row.

    Failures are logged at warning level so a DOWN target stands out.
    """
    probes = get_logger("probes")
    fields = {
        "model_id": record.model_id,
        "category": record.category,
        "status": record.status,
        "response_time_ms": record.response_time_ms,
        "error_kind": record.error_kind,
        "checked_at": record.checked_at,
    }
    if record.is_success:
        probes.info("health_probe", **fields)
    else:
        probes.warning("health_probe", **fields)

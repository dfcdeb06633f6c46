# File: logging.py
# Directory: core
# Purpose: Structured JSON event helper for the sync engine. Ensures payloads
#          are always serializable and timestamped.
#
# Upstream:
#   - Imports: datetime, json, logging
#   - Callers: services.sync, services.mirror, services.context_injector
#
# Downstream:
#   - "docmirror.events" logger (stderr via the CLI's logging config)
#
# Contents:
#   - log_event(event_type: str, payload: dict)

import datetime
import json
import logging
from typing import Any, Dict

_events = logging.getLogger("docmirror.events")


def _safe(obj: Any) -> Any:
    """Pass ``obj`` through when json can encode it; otherwise return {"_repr": str(obj)}."""
    try:
        json.dumps(obj)
        return obj
    except (TypeError, ValueError):
        return {"_repr": str(obj)}


def log_event(event_type: str, payload: Dict[str, Any], *, level: int = logging.INFO) -> Dict[str, Any]:
    """
    Emit a structured log line and return the record that was logged.
    Example:
      {"timestamp":"2026-10-18T20:11:02.123Z","event":"sync_completed","details":{...}}
    """
    ts = datetime.datetime.now(datetime.timezone.utc).isoformat().replace("+00:00", "Z")
    record = {
        "timestamp": ts,
        "event": event_type,
        "details": _safe(payload),
    }
    _events.log(level, json.dumps(record, ensure_ascii=False))
    return record

from __future__ import annotations

import json
import logging
from typing import Any, Dict

_SENSITIVE_FIELDS = {"authorization", "api_key", "token"}


def log_event(logger: logging.Logger, level: int, event: str, **fields: Any) -> None:
    """Log a single-line JSON event; credential-bearing fields are masked."""

    if not logger.isEnabledFor(level):
        return

    payload: Dict[str, Any] = {"event": event}
    for key, value in fields.items():
        payload[key] = "***" if key.lower() in _SENSITIVE_FIELDS and value else value
    try:
        msg = json.dumps(payload, ensure_ascii=True, sort_keys=True, default=str)
    except (TypeError, ValueError):
        safe_payload = {
            k: (v if isinstance(v, (str, int, float, bool)) or v is None else repr(v)) for k, v in payload.items()
        }
        msg = json.dumps(safe_payload, ensure_ascii=True, sort_keys=True)
    logger.log(level, msg)

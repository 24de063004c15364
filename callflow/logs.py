from __future__ import annotations

import json
import logging


logger = logging.getLogger("callflow")


def log_event(event: str, *, enabled: bool = True, level: int = logging.INFO, **payload: object) -> None:
    """Emit one compact JSON object per flow event."""
    if not enabled:
        return
    base: dict[str, object] = {"component": "flow_engine", "event": event}
    base.update(payload)
    logger.log(level, json.dumps(base, sort_keys=True, separators=(",", ":"), default=str))

import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional


class StructuredEngineLogger:
    """
    JSON-lines logger for engine lifecycle and dropped-event diagnostics.
    """

    def __init__(self, logger: Optional[logging.Logger] = None, level: int = logging.INFO):
        self._logger = logger or logging.getLogger("momentum")
        self._level = level

    def emit(self, event_type: str, level: Optional[int] = None, **fields: Any) -> None:
        log_level = self._level if level is None else level
        if not self._logger.isEnabledFor(log_level):
            return
        payload: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "event_type": event_type,
        }
        payload.update(fields)
        self._logger.log(log_level, json.dumps(payload, default=str, ensure_ascii=True))

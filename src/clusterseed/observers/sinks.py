# src/clusterseed/observers/sinks.py
from __future__ import annotations

import json
import logging
from pathlib import Path

from .events import BaseEvent

_CONTEXT_KEYS = ("ts", "run_id", "phase", "host", "step")


class LoggerObserver:
    """Step events as DEBUG lines: ``[EVENT] nodes StepSkipped worker-node1/swap reason=...``."""

    def __init__(self, logger: logging.Logger):
        self.logger = logger

    def notify(self, event: BaseEvent) -> None:
        d = event.dict()
        where = "/".join(str(d[k]) for k in ("host", "step") if k in d)
        extra = " ".join(f"{k}={v}" for k, v in d.items() if k not in _CONTEXT_KEYS)
        self.logger.debug("[EVENT] %s %s %s %s", event.phase, type(event).__name__, where, extra)


class JsonFileObserver:
    """One JSON object per event, appended to ``path`` (JSON lines)."""

    def __init__(self, path: str | Path):
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)

    def notify(self, event: BaseEvent) -> None:
        record = {"event": type(event).__name__, **event.dict()}
        with self.path.open("a", encoding="utf-8") as f:
            f.write(json.dumps(record, sort_keys=True) + "\n")

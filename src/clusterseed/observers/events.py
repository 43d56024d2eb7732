# src/clusterseed/observers/events.py

from __future__ import annotations
from dataclasses import dataclass, asdict
from typing import Dict, Any, Optional
from datetime import datetime, timezone
import uuid


# ---------------------------------------------------------------------
# Base context and helper
# ---------------------------------------------------------------------
@dataclass(frozen=True)
class BaseEvent:
    ts: str           # ISO timestamp
    run_id: str       # correlates all events in a single invocation
    phase: str        # trust / nodes / cluster

    def dict(self) -> Dict[str, Any]:
        return asdict(self)


def new_ctx(phase: str, run_id: Optional[str] = None) -> Dict[str, Any]:
    return {
        "ts": datetime.now(timezone.utc).isoformat(timespec="seconds").replace("+00:00", "Z"),
        "run_id": run_id or str(uuid.uuid4()),
        "phase": phase,
    }


# ---------------------------------------------------------------------
# Step lifecycle
# ---------------------------------------------------------------------
@dataclass(frozen=True)
class StepStarted(BaseEvent):
    host: str
    step: str

@dataclass(frozen=True)
class StepSkipped(BaseEvent):
    host: str
    step: str
    reason: str

@dataclass(frozen=True)
class StepSucceeded(BaseEvent):
    host: str
    step: str
    duration_ms: int

@dataclass(frozen=True)
class StepFailed(BaseEvent):
    host: str
    step: str
    error: str


# ---------------------------------------------------------------------
# Summary
# ---------------------------------------------------------------------
@dataclass(frozen=True)
class RunSummary(BaseEvent):
    ok: int
    skipped: int
    failed: int
    aborted: bool

# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/clusterseed/provision/report.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional

OK = "OK"
SKIPPED = "SKIPPED"
FAILED = "FAILED"


@dataclass
class StepOutcome:
    phase: str
    host: str
    step: str
    status: str                 # "OK" | "SKIPPED" | "FAILED"
    error: Optional[str] = None
    output: str = ""            # stdout of the last command run by the step


@dataclass
class ProvisionReport:
    outcomes: List[StepOutcome] = field(default_factory=list)
    aborted: bool = False       # a failure stopped the run early

    def add(self, outcome: StepOutcome) -> None:
        self.outcomes.append(outcome)

    def count(self, status: str, phase: Optional[str] = None) -> int:
        return sum(1 for o in self.outcomes if o.status == status and phase in (None, o.phase))

    def failures(self) -> List[StepOutcome]:
        return [o for o in self.outcomes if o.status == FAILED]

    @property
    def ok(self) -> bool:
        return not self.failures()

    def for_host(self, host: str) -> List[StepOutcome]:
        return [o for o in self.outcomes if o.host == host]

    def summary(self, phase: Optional[str] = None) -> str:
        """Counts for one phase, or for the whole run."""
        return (
            f"OK={self.count(OK, phase)} SKIPPED={self.count(SKIPPED, phase)} "
            f"FAILED={self.count(FAILED, phase)}"
        )

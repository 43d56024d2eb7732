# src/clusterseed/remote/probe.py
from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import Mapping, Optional

from ..errors import AuthenticationFailed, ProbeUnreachableError, TransportError
from ..inventory.models import Host
from .executor import RemoteExecutor
from .transport import CommandResult

log = logging.getLogger("clusterseed")

ASSUME_ABSENT = "assume-absent"
SKIP = "skip"
ABORT = "abort"
POLICIES = (ASSUME_ABSENT, SKIP, ABORT)


class ProbeState(enum.Enum):
    PRESENT = "present"
    ABSENT = "absent"
    UNREACHABLE = "unreachable"


@dataclass(frozen=True)
class Probe:
    """
    Read-only check run before a mutating step.

    With a ``marker`` the probe passes when the marker text appears in the
    output. Without one it passes on exit code 0.
    """
    command: str
    marker: Optional[str] = None

    def render(self, variables: Mapping[str, str]) -> "Probe":
        return Probe(command=self.command.format(**variables), marker=self.marker)

    def evaluate(self, result: CommandResult) -> bool:
        if self.marker is None:
            return result.ok
        return self.marker in result.output


def run_probe(executor: RemoteExecutor, host: Host, probe: Probe) -> ProbeState:
    if executor.dry_run:
        return ProbeState.ABSENT
    try:
        result = executor.query(host, probe.command)
    except AuthenticationFailed as e:
        # reachable, the credential is just not accepted yet
        log.debug("[%s] probe auth refused: %s", host.label, e)
        return ProbeState.ABSENT
    except TransportError as e:
        log.warning("[%s] probe could not connect: %s", host.label, e)
        return ProbeState.UNREACHABLE
    return ProbeState.PRESENT if probe.evaluate(result) else ProbeState.ABSENT


def resolve_state(state: ProbeState, policy: str, host: Host, probe: Probe) -> bool:
    """
    True when the step is already done and must be skipped.
    """
    if state is ProbeState.PRESENT:
        return True
    if state is ProbeState.ABSENT:
        return False

    if policy == SKIP:
        log.warning("[%s] probe unreachable, treating as configured", host.label)
        return True
    if policy == ABORT:
        raise ProbeUnreachableError(f"[{host.label}] probe unreachable: {probe.command}")
    log.warning("[%s] probe unreachable, treating as not configured", host.label)
    return False


def check_probe(executor: RemoteExecutor, host: Host, probe: Probe, policy: str = ASSUME_ABSENT) -> bool:
    if policy not in POLICIES:
        raise ValueError(f"unknown probe failure policy {policy!r}")
    return resolve_state(run_probe(executor, host, probe), policy, host, probe)

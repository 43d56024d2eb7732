# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/clusterseed/provision/sequence.py
from __future__ import annotations

import logging
import time
import uuid
from typing import Callable, Optional, Sequence, Union

from ..config.credentials import Credentials
from ..config.models import SeedConfig
from ..errors import ClusterSeedError
from ..inventory.models import Host, HostRegistry
from ..observers.dispatcher import EventBus
from ..observers.events import (
    RunSummary,
    StepFailed,
    StepSkipped,
    StepStarted,
    StepSucceeded,
    new_ctx,
)
from ..remote.executor import RemoteExecutor
from ..remote.probe import check_probe
from .report import FAILED, OK, SKIPPED, ProvisionReport, StepOutcome
from .steps import Step, StepContext, host_variables

log = logging.getLogger("clusterseed")

StepSource = Union[Sequence[Step], Callable[[Host], Sequence[Step]]]


class SequenceRunner:
    """
    Runs steps host by host, in registry order, recording one StepOutcome per
    (host, step).

    On the first failure the run stops (``report.aborted``) unless
    ``config.continue_on_error`` is set, in which case only the failing
    host's remaining steps are abandoned.
    """

    def __init__(
        self,
        executor: RemoteExecutor,
        config: SeedConfig,
        credentials: Credentials,
        *,
        bus: Optional[EventBus] = None,
        run_id: Optional[str] = None,
        phase: str = "nodes",
    ):
        self.executor = executor
        self.config = config
        self.credentials = credentials
        self.bus = bus or EventBus()
        self.run_id = run_id or str(uuid.uuid4())
        self.phase = phase

    def _ctx(self) -> dict:
        return new_ctx(self.phase, self.run_id)

    def context_for(self, host: Host, registry: HostRegistry, extra: Optional[dict] = None) -> StepContext:
        return StepContext(
            executor=self.executor,
            host=host,
            registry=registry,
            config=self.config,
            credentials=self.credentials,
            variables=host_variables(host, self.credentials, self.config, extra),
        )

    # ------------------ single step ------------------

    def run_step(self, ctx: StepContext, step: Step, report: ProvisionReport) -> StepOutcome:
        host = ctx.host
        self.bus.emit(StepStarted(**self._ctx(), host=host.label, step=step.name))
        log.info("[%s] %s", host.label, step.name)
        start = time.monotonic()

        try:
            outcome = self._execute(ctx, step)
        except ClusterSeedError as e:
            log.error("[%s] %s failed: %s", host.label, step.name, e)
            outcome = StepOutcome(self.phase, host.label, step.name, FAILED, error=str(e))
            self.bus.emit(StepFailed(**self._ctx(), host=host.label, step=step.name, error=str(e)))
            report.add(outcome)
            return outcome

        if outcome.status == SKIPPED:
            self.bus.emit(StepSkipped(**self._ctx(), host=host.label, step=step.name, reason="already configured"))
        else:
            duration_ms = int((time.monotonic() - start) * 1000)
            self.bus.emit(StepSucceeded(**self._ctx(), host=host.label, step=step.name, duration_ms=duration_ms))
        report.add(outcome)
        return outcome

    def _execute(self, ctx: StepContext, step: Step) -> StepOutcome:
        host = ctx.host
        if step.probe is not None:
            probe = step.probe.render(ctx.variables)
            if check_probe(self.executor, host, probe, self.config.probe_failure_policy):
                log.info("[%s] %s already configured, skipping.", host.label, step.name)
                return StepOutcome(self.phase, host.label, step.name, SKIPPED)

        output = ""
        for cmd in step.render(ctx.variables):
            output = self.executor.run(host, cmd, sudo_password=step.sudo_password).stdout

        if step.action is not None:
            changed = step.action(ctx)
            if changed is False and not step.commands:
                log.info("[%s] %s: nothing to do.", host.label, step.name)
                return StepOutcome(self.phase, host.label, step.name, SKIPPED)

        return StepOutcome(self.phase, host.label, step.name, OK, output=output)

    # ------------------ sequence ------------------

    def run(
        self,
        registry: HostRegistry,
        steps: StepSource,
        report: Optional[ProvisionReport] = None,
        *,
        context_registry: Optional[HostRegistry] = None,
    ) -> ProvisionReport:
        """
        Run ``steps`` on every host of ``registry``.

        ``steps`` is either one list shared by all hosts or a callable giving
        the list for a host. ``context_registry`` is the full registry handed
        to steps when ``registry`` is a subset.
        """
        report = report if report is not None else ProvisionReport()
        if report.aborted:
            return report
        full = context_registry or registry

        for i, host in enumerate(registry, 1):
            host_steps = steps(host) if callable(steps) else steps
            log.info("[%s] %s (%d/%d) %s", self.phase, host.label, i, len(registry), host.address)
            ctx = self.context_for(host, full)

            for step in host_steps:
                outcome = self.run_step(ctx, step, report)
                if outcome.status != FAILED:
                    continue
                if not self.config.continue_on_error:
                    report.aborted = True
                    log.error("[%s] aborting: %s failed on %s", self.phase, step.name, host.label)
                    return report
                log.warning("[%s] abandoning remaining steps on %s", self.phase, host.label)
                break

        return report

    def summarize(self, report: ProvisionReport) -> None:
        self.bus.emit(RunSummary(
            **self._ctx(),
            ok=report.count(OK, self.phase),
            skipped=report.count(SKIPPED, self.phase),
            failed=report.count(FAILED, self.phase),
            aborted=report.aborted,
        ))
        log.info("[%s] %s", self.phase, report.summary(self.phase))

# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/clusterseed/kubernetes/bootstrap.py

from __future__ import annotations

import logging
import os
from typing import List, Optional

from ..config.credentials import Credentials
from ..config.models import SeedConfig
from ..errors import ClusterSeedError, ConfigError
from ..inventory.models import Host, HostRegistry
from ..observers.dispatcher import EventBus
from ..provision.report import OK, SKIPPED, ProvisionReport, StepOutcome
from ..provision.sequence import SequenceRunner
from ..provision.steps import Step, StepContext, literal
from ..remote.executor import RemoteExecutor
from ..remote.probe import Probe
from .node import cluster_nodes

log = logging.getLogger("clusterseed")

INIT_STEP = Step(
    name="kubeadm-init",
    probe=Probe(
        "test -f /etc/kubernetes/manifests/kube-apiserver.yaml && echo 'exists'",
        marker="exists",
    ),
    commands=(
        "sudo kubeadm init --pod-network-cidr={pod_network_cidr}",
        "mkdir -p $HOME/.kube && sudo cp -f /etc/kubernetes/admin.conf $HOME/.kube/config"
        " && sudo chown $(id -u):$(id -g) $HOME/.kube/config",
    ),
)

TOKEN_COMMAND = "kubeadm token create --print-join-command"


def parse_join_command(stdout: str) -> str:
    """Last `kubeadm join ...` line of the token command's stdout, or ""."""
    for line in reversed(stdout.splitlines()):
        line = line.strip()
        if line.startswith("kubeadm join "):
            return line
    return ""


def join_token_step(found: List[str]) -> Step:
    """
    Print a fresh join command on the control plane and append it to ``found``.
    """

    def _create(ctx: StepContext) -> bool:
        result = ctx.executor.run(ctx.host, TOKEN_COMMAND)
        join_command = parse_join_command(result.stdout)
        if not join_command and not ctx.executor.dry_run:
            raise ClusterSeedError(f"[{ctx.host.label}] no 'kubeadm join' line in the output of: {TOKEN_COMMAND}")
        found.append(join_command)
        return True

    return Step(name="join-token", action=_create)


def join_step(join_command: str) -> Step:
    return Step(
        name="kubeadm-join",
        probe=Probe("test -f /etc/kubernetes/kubelet.conf && echo 'exists'", marker="exists"),
        commands=(f"sudo {literal(join_command)}",),
    )


class ClusterBootstrapper:
    """
    Control plane + workers on nodes already provisioned by node_steps():
      - kubeadm init on the control plane (once), join command printed
      - kubeadm join on every worker
      - admin kubeconfig copied to the operator
      - network plugin manifests applied from the control plane
    """

    def __init__(
        self,
        executor: RemoteExecutor,
        registry: HostRegistry,
        config: SeedConfig,
        credentials: Credentials,
        *,
        bus: Optional[EventBus] = None,
        run_id: Optional[str] = None,
    ):
        self.executor = executor
        self.registry = registry
        self.config = config
        self.credentials = credentials
        self.runner = SequenceRunner(
            executor, config, credentials, bus=bus, run_id=run_id, phase="cluster",
        )

    # ------------------ topology ------------------

    def control_plane(self) -> Host:
        label = self.config.kubernetes.control_plane
        host = self.registry.lookup(label)
        if host is None:
            raise ConfigError(f"No host labelled '{label}' in the host registry")
        return host

    def workers(self) -> HostRegistry:
        nodes = cluster_nodes(self.registry, self.config.kubernetes)
        return nodes.without(self.control_plane().address)

    def _ctx(self, host: Host) -> StepContext:
        return self.runner.context_for(host, self.registry)

    def _record(self, report: ProvisionReport, outcome: StepOutcome) -> bool:
        if outcome.status in (OK, SKIPPED):
            return True
        if not self.config.continue_on_error:
            report.aborted = True
        return False

    # ------------------ phases ------------------


    def init_control_plane(self, report: ProvisionReport) -> Optional[str]:
        """
        Initialise the control plane and return the worker join command.

        Returns "" when the control plane was already initialised, and None
        when kubeadm init or the join token failed.
        """
        cp = self.control_plane()
        ctx = self._ctx(cp)
        outcome = self.runner.run_step(ctx, INIT_STEP, report)
        if outcome.status == SKIPPED:
            log.info("Control plane already initialized, skipping kubeadm init.")
            return ""
        if not self._record(report, outcome):
            return None

        found: List[str] = []
        outcome = self.runner.run_step(ctx, join_token_step(found), report)
        if not self._record(report, outcome):
            return None
        return found[0] if found else ""

    def join_workers(self, join_command: str, report: ProvisionReport) -> ProvisionReport:
        if not join_command:
            log.info("No join command (control plane already initialized), skipping worker join.")
            return report
        workers = self.workers()
        if not len(workers):
            log.info("No worker nodes in the registry.")
            return report
        return self.runner.run(workers, [join_step(join_command)], report, context_registry=self.registry)

    def fetch_kubeconfig(self, report: ProvisionReport) -> None:
        k8s = self.config.kubernetes
        if not k8s.fetch_kubeconfig:
            return
        local = k8s.local_kubeconfig.expanduser()

        def _download(ctx: StepContext) -> bool:
            try:
                if not ctx.executor.dry_run:
                    local.parent.mkdir(parents=True, exist_ok=True)
                # sftp paths are relative to the login home
                ctx.executor.get_file(ctx.host, ".kube/config", local)
                if not ctx.executor.dry_run:
                    os.chmod(local, 0o600)
            except OSError as e:
                raise ClusterSeedError(f"Cannot write kubeconfig {local}: {e}") from e
            return True

        cp = self.control_plane()
        outcome = self.runner.run_step(self._ctx(cp), Step(name="kubeconfig", action=_download), report)
        self._record(report, outcome)

    def install_network_plugin(self, report: ProvisionReport) -> None:
        manifests = tuple(literal(m) for m in self.config.kubernetes.network_manifests)
        if not manifests:
            return
        cp = self.control_plane()
        outcome = self.runner.run_step(self._ctx(cp), Step(name="network-plugin", commands=manifests), report)
        self._record(report, outcome)

    def run(self, report: Optional[ProvisionReport] = None) -> ProvisionReport:
        report = report if report is not None else ProvisionReport()
        if report.aborted:
            return report

        join_command = self.init_control_plane(report)
        if join_command is None:
            # every later step needs a working control plane
            log.error("[cluster] control plane is not initialized, stopping the cluster phase")
            report.aborted = True
        if not report.aborted:
            self.join_workers(join_command, report)
        if not report.aborted:
            self.fetch_kubeconfig(report)
        if not report.aborted:
            self.install_network_plugin(report)

        self.runner.summarize(report)
        return report

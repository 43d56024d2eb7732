# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/clusterseed/trust/ssh_trust.py

from __future__ import annotations

import logging
import shlex
import subprocess
from pathlib import Path
from typing import List, Optional

from ..config.credentials import Credentials
from ..config.models import SeedConfig
from ..errors import ClusterSeedError
from ..inventory.models import Host, HostRegistry
from ..observers.dispatcher import EventBus
from ..provision.report import ProvisionReport
from ..provision.sequence import SequenceRunner
from ..provision.steps import Step, StepContext, literal
from ..remote.executor import RemoteExecutor
from ..remote.probe import Probe, check_probe
from ..utils.execution import CommandRunner

log = logging.getLogger("clusterseed")


SSH_KEY_STEP = Step(
    name="ssh-key",
    probe=Probe("[ -f {remote_key} ] && echo 'exists'", marker="exists"),
    commands=(
        "mkdir -p ~/.ssh && chmod 700 ~/.ssh",
        "ssh-keygen -q -t rsa -b 4096 -N '' -f {remote_key}",
    ),
)

PASSWORDLESS_SUDO_STEP = Step(
    name="passwordless-sudo",
    probe=Probe(
        "sudo -n -l 2>/dev/null | grep -q 'NOPASSWD: ALL' && echo 'passwordless'",
        marker="passwordless",
    ),
    commands=(
        "echo '{user} ALL=(ALL) NOPASSWD: ALL' > /etc/sudoers.d/{user}"
        " && chmod 440 /etc/sudoers.d/{user}"
        " && visudo -cf /etc/sudoers.d/{user}",
    ),
    sudo_password=True,
)

SSHPASS_STEP = Step(
    name="sshpass",
    probe=Probe("command -v sshpass"),
    commands=(
        "sudo apt-get update -y",
        "sudo DEBIAN_FRONTEND=noninteractive apt-get install -y sshpass",
    ),
)


def hosts_file_step(registry: HostRegistry) -> Step:
    """
    Every registry line present in /etc/hosts; missing lines are appended.
    """
    lines = registry.hosts_file_lines()
    probe = " && ".join(f"grep -Fxq {literal(shlex.quote(ln))} /etc/hosts" for ln in lines)
    commands = tuple(
        f"grep -Fxq {q} /etc/hosts || echo {q} | sudo tee -a /etc/hosts > /dev/null"
        for q in (literal(shlex.quote(ln)) for ln in lines)
    )
    return Step(name="hosts-file", probe=Probe(probe), commands=commands)


def ensure_operator_key(key_path: Path, runner: CommandRunner) -> str:
    """
    Make sure the operator has a key pair at ``key_path``; return the public key.
    """
    pub_path = Path(f"{key_path}.pub")
    if key_path.exists():
        log.info("[trust] operator key %s already exists, skipping generation.", key_path)
    else:
        key_path.parent.mkdir(parents=True, exist_ok=True)
        try:
            runner.run(["ssh-keygen", "-q", "-t", "rsa", "-b", "4096", "-N", "", "-f", str(key_path)])
        except (subprocess.CalledProcessError, OSError) as e:
            raise ClusterSeedError(f"Cannot generate operator key {key_path}: {e}") from e
        if runner.ctx.dry_run:
            return ""
    try:
        return pub_path.read_text(encoding="utf-8").strip()
    except OSError as e:
        raise ClusterSeedError(f"Cannot read operator public key {pub_path}: {e}") from e


def operator_key_step(public_key: str, key_executor: RemoteExecutor) -> Step:
    """
    Key-only SSH from the operator to the host, installing the operator's
    public key with the password transport when the key is not accepted.
    """

    def _install(ctx: StepContext) -> bool:
        probe = Probe("echo success", marker="success")
        if check_probe(key_executor, ctx.host, probe, ctx.config.probe_failure_policy):
            log.info("[%s] operator key already accepted, skipping.", ctx.host.label)
            return False
        key = shlex.quote(public_key)
        ctx.executor.run(
            ctx.host,
            "mkdir -p ~/.ssh && chmod 700 ~/.ssh"
            " && touch ~/.ssh/authorized_keys && chmod 600 ~/.ssh/authorized_keys"
            f" && (grep -qxF {key} ~/.ssh/authorized_keys || echo {key} >> ~/.ssh/authorized_keys)",
        )
        return True

    return Step(name="operator-key", action=_install)


def pair_step(target: Host, credentials: Credentials) -> Step:
    """
    Key copy from the host the step runs on to ``target``.
    """
    dest = literal(shlex.quote(f"{credentials.user}@{target.address}"))
    password = literal(shlex.quote(credentials.password))
    return Step(
        name=f"trust->{target.label}",
        probe=Probe(
            f"ssh -o BatchMode=yes -o StrictHostKeyChecking=no -o ConnectTimeout=10 {dest} echo success",
            marker="success",
        ),
        commands=(
            f"sshpass -p {password} ssh-copy-id -i {{remote_key}}.pub -o StrictHostKeyChecking=no {dest}",
        ),
    )


def pair_steps(source: Host, registry: HostRegistry, credentials: Credentials) -> List[Step]:
    return [
        pair_step(target, credentials)
        for target in registry
        if target.address != source.address
    ]


class SSHTrustSetup:
    """
    Passwordless SSH across the registry:
      1) per host: node key, passwordless sudo, sshpass, /etc/hosts, operator key
      2) per ordered pair (a, b), a != b: copy a's key to b, run on a
    Everything runs over the password transport.
    """

    def __init__(
        self,
        executor: RemoteExecutor,
        key_executor: RemoteExecutor,
        registry: HostRegistry,
        config: SeedConfig,
        credentials: Credentials,
        *,
        bus: Optional[EventBus] = None,
        run_id: Optional[str] = None,
        local_runner: Optional[CommandRunner] = None,
    ):
        self.executor = executor
        self.key_executor = key_executor
        self.registry = registry
        self.config = config
        self.credentials = credentials
        self.local_runner = local_runner or CommandRunner(ctx=executor.ctx)
        self.runner = SequenceRunner(
            executor, config, credentials, bus=bus, run_id=run_id, phase="trust",
        )

    def host_steps(self, public_key: str) -> List[Step]:
        return [
            SSH_KEY_STEP,
            PASSWORDLESS_SUDO_STEP,
            SSHPASS_STEP,
            hosts_file_step(self.registry),
            operator_key_step(public_key, self.key_executor),
        ]

    def run(self, report: Optional[ProvisionReport] = None) -> ProvisionReport:
        report = report if report is not None else ProvisionReport()
        if not len(self.registry):
            log.warning("[trust] host registry is empty, nothing to do")
            return report

        log.info("[trust] Generating operator SSH key...")
        public_key = ensure_operator_key(self.config.ssh.resolved_key_path(), self.local_runner)

        log.info("[trust] Configuring %d hosts...", len(self.registry))
        self.runner.run(self.registry, self.host_steps(public_key), report)

        log.info("[trust] Enabling passwordless SSH between all nodes...")
        self.runner.run(
            self.registry,
            lambda h: pair_steps(h, self.registry, self.credentials),
            report,
        )

        self.runner.summarize(report)
        return report

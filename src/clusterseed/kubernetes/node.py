# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/clusterseed/kubernetes/node.py

from __future__ import annotations

import logging
import shlex
from pathlib import Path
from typing import List, Sequence

from ..config.models import KubernetesSettings, SeedConfig
from ..errors import ConfigError
from ..inventory.models import HostRegistry
from ..provision.steps import Step, StepContext, literal
from ..remote.probe import Probe, check_probe

log = logging.getLogger("clusterseed")

CA_CERT_DIR = "/usr/local/share/ca-certificates"


def cluster_nodes(registry: HostRegistry, k8s: KubernetesSettings) -> HostRegistry:
    """Registry hosts that become cluster nodes (control plane + workers)."""
    excluded = set(k8s.exclude_labels) - {k8s.control_plane}
    return HostRegistry(h for h in registry if h.label not in excluded)


def firewall_step(ports: Sequence[str]) -> Step:
    commands = [f"sudo ufw allow {literal(shlex.quote(p))}" for p in ports]
    commands.append("sudo ufw --force enable")
    return Step(name="firewall", commands=tuple(commands))


def certificates_step(certificates: Sequence[Path]) -> Step:
    """
    Trust each local CA certificate on the node. Certificates already present
    under /usr/local/share/ca-certificates are left alone.
    """

    def _install(ctx: StepContext) -> bool:
        changed = False
        for cert in certificates:
            cert = Path(cert).expanduser()
            name = cert.name
            dest = f"{CA_CERT_DIR}/{name}"
            probe = Probe(f"[ -f {shlex.quote(dest)} ] && echo 'exists'", marker="exists")
            if check_probe(ctx.executor, ctx.host, probe, ctx.config.probe_failure_policy):
                log.info("[%s] Certificate %s already exists, skipping.", ctx.host.label, name)
                continue
            if not cert.is_file():
                raise ConfigError(f"Certificate file not found: {cert}")

            tmp = f"/tmp/{name}"
            ctx.executor.put_file(ctx.host, cert, tmp)
            ctx.executor.run(
                ctx.host,
                f"sudo mv {shlex.quote(tmp)} {shlex.quote(dest)} && sudo update-ca-certificates",
            )
            changed = True
        return changed

    return Step(name="certificates", action=_install)


IPV4_FORWARDING_STEP = Step(
    name="ipv4-forwarding",
    probe=Probe("sysctl net.ipv4.ip_forward", marker="= 1"),
    commands=(
        "echo 'net.ipv4.ip_forward=1' | sudo tee /etc/sysctl.d/99-kubernetes-cri.conf",
        "sudo sysctl --system",
    ),
)

SWAP_STEP = Step(
    name="swap",
    commands=("sudo swapoff -a && sudo sed -i '/swap/d' /etc/fstab",),
)

KUBERNETES_REPOSITORY_STEP = Step(
    name="kubernetes-repository",
    commands=(
        "sudo mkdir -p -m 755 /etc/apt/keyrings",
        "curl -fsSL https://pkgs.k8s.io/core:/stable:/{kubernetes_channel}/deb/Release.key"
        " | sudo gpg --batch --yes --dearmor -o /etc/apt/keyrings/kubernetes-apt-keyring.gpg",
        "echo 'deb [signed-by=/etc/apt/keyrings/kubernetes-apt-keyring.gpg]"
        " https://pkgs.k8s.io/core:/stable:/{kubernetes_channel}/deb/ /'"
        " | sudo tee /etc/apt/sources.list.d/kubernetes.list",
        "sudo apt update",
    ),
)


def packages_step(packages: Sequence[str], hold: Sequence[str]) -> Step:
    commands = [f"sudo apt install -y {' '.join(literal(shlex.quote(p)) for p in packages)}"]
    if hold:
        commands.append(f"sudo apt-mark hold {' '.join(literal(shlex.quote(p)) for p in hold)}")
    return Step(name="packages", commands=tuple(commands))


CONTAINERD_STEP = Step(
    name="containerd",
    commands=(
        "sudo mkdir -p /etc/containerd",
        "containerd config default | sudo tee /etc/containerd/config.toml > /dev/null",
        "sudo sed -i 's/SystemdCgroup = false/SystemdCgroup = true/' /etc/containerd/config.toml",
        "sudo systemctl restart containerd",
    ),
)


def node_steps(config: SeedConfig) -> List[Step]:
    """
    Per-node steps, in order: firewall, certificates, IPv4 forwarding, swap,
    apt repository, packages, containerd.
    """
    k8s = config.kubernetes
    return [
        firewall_step(k8s.firewall_ports),
        certificates_step(k8s.certificates),
        IPV4_FORWARDING_STEP,
        SWAP_STEP,
        KUBERNETES_REPOSITORY_STEP,
        packages_step(k8s.packages, k8s.hold_packages),
        CONTAINERD_STEP,
    ]

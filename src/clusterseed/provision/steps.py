# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/clusterseed/provision/steps.py

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Dict, List, Mapping, Optional, Sequence

from ..config.credentials import Credentials
from ..config.models import SeedConfig
from ..inventory.models import Host, HostRegistry
from ..remote.executor import RemoteExecutor
from ..remote.probe import Probe


def literal(text: str) -> str:
    """Escape text so it survives command-template rendering unchanged."""
    return text.replace("{", "{{").replace("}", "}}")


@dataclass(frozen=True)
class StepContext:
    executor: RemoteExecutor
    host: Host
    registry: HostRegistry
    config: SeedConfig
    credentials: Credentials
    variables: Mapping[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class Step:
    """
    One provisioning step.

    ``commands`` are str.format templates rendered with the per-host
    variables and run in order. ``action`` runs after them for work that is
    not a plain command (file transfer, per-item probing); it returns False
    when it found nothing to do.
    """
    name: str
    commands: Sequence[str] = ()
    probe: Optional[Probe] = None
    sudo_password: bool = False
    action: Optional[Callable[[StepContext], bool]] = None

    def render(self, variables: Mapping[str, str]) -> List[str]:
        return [c.format(**variables) for c in self.commands]


def host_variables(
    host: Host,
    credentials: Credentials,
    config: SeedConfig,
    extra: Optional[Mapping[str, str]] = None,
) -> Dict[str, str]:
    k8s = config.kubernetes
    variables = {
        "address": host.address,
        "label": host.label,
        "user": credentials.user,
        "remote_key": config.ssh.remote_key_path,
        "kubernetes_version": k8s.version,
        "kubernetes_channel": k8s.minor_channel,
        "pod_network_cidr": k8s.pod_network_cidr,
    }
    if extra:
        variables.update(extra)
    return variables

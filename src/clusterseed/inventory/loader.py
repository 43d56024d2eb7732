# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/clusterseed/inventory/loader.py
from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional

from ..errors import HostFileError
from .models import Host, HostRegistry

log = logging.getLogger("clusterseed")


# Used when no host file is given.
DEFAULT_HOSTS = {
    "172.16.197.100": "ubuntu",
    "172.16.197.110": "control-plane",
    "172.16.197.120": "worker-node1",
    "172.16.197.130": "worker-node2",
    "172.16.197.140": "worker-node3",
}


def parse_host_line(line: str) -> Optional[Host]:
    """
    Parse one ``<address> <name>[,<alias>...]`` line.

    Only the first comma-separated name is kept. Returns None for blank,
    comment, or single-column lines.
    """
    stripped = line.strip()
    if not stripped or stripped.startswith("#"):
        return None
    parts = stripped.split()
    if len(parts) < 2:
        return None
    label = parts[1].split(",")[0]
    if not label:
        return None
    return Host(address=parts[0], label=label)


def parse_hosts_text(text: str) -> HostRegistry:
    hosts: List[Host] = []
    for raw in text.splitlines():
        h = parse_host_line(raw)
        if h is None:
            continue
        hosts.append(h)
    return HostRegistry(hosts)


def load_hosts_file(path: str | Path) -> HostRegistry:
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise HostFileError(f"Cannot read host file {path}: {e}") from e

    registry = parse_hosts_text(text)
    log.debug("Loaded %d hosts from %s", len(registry), path)
    return registry


def default_registry() -> HostRegistry:
    return HostRegistry.from_mapping(DEFAULT_HOSTS)


def resolve_registry(path: Optional[str | Path] = None) -> HostRegistry:
    """Host file when given, otherwise the built-in mapping."""
    if path is None:
        log.debug("No host file given, using built-in host list")
        return default_registry()
    return load_hosts_file(path)

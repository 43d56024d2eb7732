# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/clusterseed/inventory/models.py

from __future__ import annotations

import ipaddress
from dataclasses import dataclass
from typing import Iterable, Iterator, List, Optional, Tuple


@dataclass(frozen=True)
class Host:
    """
    A node driven over SSH.
    """
    address: str   # IP or DNS used to connect
    label: str     # logical node name (first alias in the host file)


def _order_key(address: str) -> Tuple[int, int, int, str]:
    # IPs first in numeric order (v4 before v6), then anything else by name
    try:
        ip = ipaddress.ip_address(address)
    except ValueError:
        return (1, 0, 0, address)
    return (0, ip.version, int(ip), address)


class HostRegistry:
    """
    Immutable address -> host collection with a stable iteration order.

    Later entries with a repeated address replace earlier ones.
    """

    def __init__(self, hosts: Iterable[Host] = ()):
        by_address = {}
        for h in hosts:
            by_address[h.address] = h
        self._hosts: Tuple[Host, ...] = tuple(
            sorted(by_address.values(), key=lambda h: _order_key(h.address))
        )

    @classmethod
    def from_mapping(cls, mapping: dict) -> "HostRegistry":
        return cls(Host(address=a, label=l) for a, l in mapping.items())

    def __iter__(self) -> Iterator[Host]:
        return iter(self._hosts)

    def __len__(self) -> int:
        return len(self._hosts)

    def __contains__(self, address: object) -> bool:
        return any(h.address == address for h in self._hosts)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, HostRegistry):
            return NotImplemented
        return self._hosts == other._hosts

    def __repr__(self) -> str:
        return f"HostRegistry({list(self._hosts)!r})"

    @property
    def hosts(self) -> Tuple[Host, ...]:
        return self._hosts

    def addresses(self) -> List[str]:
        return [h.address for h in self._hosts]

    def lookup(self, label: str) -> Optional[Host]:
        """Return the first host carrying ``label``, or None."""
        for h in self._hosts:
            if h.label == label:
                return h
        return None

    def without(self, *addresses: str) -> "HostRegistry":
        drop = set(addresses)
        return HostRegistry(h for h in self._hosts if h.address not in drop)

    def hosts_file_lines(self) -> List[str]:
        """Lines to be present in every node's /etc/hosts."""
        return [f"{h.address} {h.label}" for h in self._hosts]

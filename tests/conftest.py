# tests/conftest.py
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

import logging

import pytest

from clusterseed.config.credentials import Credentials
from clusterseed.config.models import SeedConfig
from clusterseed.errors import AuthenticationFailed, TransportError
from clusterseed.inventory.models import Host, HostRegistry
from clusterseed.remote.executor import RemoteExecutor
from clusterseed.remote.transport import CommandResult


# ----------------- Fake transport -----------------

@dataclass
class Call:
    address: str
    command: str
    stdin: Optional[str] = None


@dataclass
class _Rule:
    needle: str
    output: str
    rc: int
    address: Optional[str]
    stderr: str = ""


class FakeTransport:
    """
    Records every command; answers with the first matching rule
    (substring of the command, optionally pinned to one address).
    ``output`` is the stdout of the answer.
    Unmatched commands succeed with empty output.
    """
    def __init__(self):
        self.calls: List[Call] = []
        self.uploads: List[tuple] = []
        self.downloads: List[tuple] = []
        self.unreachable: set = set()
        self.refused: set = set()
        self.closed = False
        self._rules: List[_Rule] = []

    def on(
        self, needle: str, output: str = "", rc: int = 0, address: Optional[str] = None, stderr: str = "",
    ) -> "FakeTransport":
        self._rules.append(_Rule(needle, output, rc, address, stderr))
        return self

    def exec(self, host: Host, command: str, *, stdin_data: Optional[str] = None) -> CommandResult:
        self.calls.append(Call(host.address, command, stdin_data))
        if host.address in self.unreachable:
            raise TransportError(f"Failed to SSH into {host.address}: timed out")
        if host.address in self.refused:
            raise AuthenticationFailed(f"Authentication refused by {host.address}")
        for r in self._rules:
            if r.needle in command and (r.address is None or r.address == host.address):
                return CommandResult(command=command, exit_code=r.rc, stdout=r.output, stderr=r.stderr)
        return CommandResult(command=command, exit_code=0)

    def put_file(self, host: Host, local_path: Path, remote_path: str) -> None:
        self.uploads.append((host.address, str(local_path), remote_path))

    def get_file(self, host: Host, remote_path: str, local_path: Path) -> None:
        self.downloads.append((host.address, remote_path, str(local_path)))
        Path(local_path).write_text("apiVersion: v1\nkind: Config\n")

    def close(self) -> None:
        self.closed = True

    # helpers for assertions
    def commands(self, address: Optional[str] = None) -> List[str]:
        return [c.command for c in self.calls if address is None or c.address == address]

    def addresses(self) -> List[str]:
        return [c.address for c in self.calls]


# ----------------- Fixtures -----------------

@pytest.fixture(autouse=True)
def _reset_logger():
    yield
    logger = logging.getLogger("clusterseed")
    for h in list(logger.handlers):
        h.close()
    logger.handlers.clear()
    logger.propagate = True


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def transport_factory():
    return FakeTransport


@pytest.fixture
def creds() -> Credentials:
    return Credentials(user="kez", password="s3cret")


@pytest.fixture
def executor(transport, creds) -> RemoteExecutor:
    return RemoteExecutor(transport, sudo_password=creds.password)


@pytest.fixture
def registry() -> HostRegistry:
    return HostRegistry([
        Host("10.0.0.12", "worker-node2"),
        Host("10.0.0.10", "control-plane"),
        Host("10.0.0.11", "worker-node1"),
    ])


@pytest.fixture
def config(tmp_path) -> SeedConfig:
    return SeedConfig.model_validate({
        "ssh": {"key_path": str(tmp_path / "id_rsa")},
        "kubernetes": {"local_kubeconfig": str(tmp_path / "kube" / "config")},
    })

# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/clusterseed/remote/executor.py

from __future__ import annotations

import logging
import shlex
from pathlib import Path
from typing import Iterable, Optional

from ..errors import RemoteCommandError
from ..inventory.models import Host
from ..utils.execution import ExecutionContext
from .transport import CommandResult, Transport

log = logging.getLogger("clusterseed")

MASK = "********"


class RemoteExecutor:
    """
    Runs commands on hosts through a Transport.

    - ``run`` raises RemoteCommandError on a non-zero exit
    - ``query`` returns the result whatever the exit code (used by probes)
    - secrets (the SSH password) are masked in every log line
    - dry-run logs the command and reports success without connecting
    """

    def __init__(
        self,
        transport: Transport,
        ctx: Optional[ExecutionContext] = None,
        *,
        sudo_password: Optional[str] = None,
        secrets: Iterable[str] = (),
    ):
        self.transport = transport
        self.ctx = ctx or ExecutionContext()
        self.sudo_password = sudo_password
        self._secrets = [s for s in [sudo_password, *secrets] if s]

    @property
    def dry_run(self) -> bool:
        return self.ctx.dry_run

    def mask(self, text: str) -> str:
        for s in self._secrets:
            text = text.replace(s, MASK)
        return text

    def _sudo_wrap(self, command: str) -> str:
        # -p '' keeps the prompt out of the captured output
        return f"sudo -S -p '' bash -c {shlex.quote(command)}"

    def query(self, host: Host, command: str) -> CommandResult:
        log.debug("[%s] ? %s", host.label, self.mask(command))
        if self.dry_run:
            return CommandResult(command=command, exit_code=0)
        result = self.transport.exec(host, command)
        log.debug("[%s] ? exit=%d %s", host.label, result.exit_code, self.mask(result.output.strip()))
        return result

    def run(self, host: Host, command: str, *, sudo_password: bool = False) -> CommandResult:
        """
        Run a mutating command. With ``sudo_password`` the command runs under
        ``sudo -S`` and the SSH password is fed on stdin.
        """
        log.info("[%s] $ %s", host.label, self.mask(command))
        if self.dry_run:
            log.info("[%s] dry-run: skipped execution", host.label)
            return CommandResult(command=command, exit_code=0)

        stdin_data = None
        final = command
        if sudo_password:
            final = self._sudo_wrap(command)
            stdin_data = (self.sudo_password or "") + "\n"

        result = self.transport.exec(host, final, stdin_data=stdin_data)
        output = self.mask(result.output)
        if output.strip():
            log.debug("[%s] %s", host.label, output.rstrip())

        if not result.ok:
            log.error("[%s] exit %d: %s", host.label, result.exit_code, output.strip())
            raise RemoteCommandError(host.label, self.mask(command), result.exit_code, output)
        return CommandResult(command=command, exit_code=result.exit_code, stdout=result.stdout, stderr=result.stderr)

    def put_file(self, host: Host, local_path: Path, remote_path: str) -> None:
        log.info("[%s] upload %s -> %s", host.label, local_path, remote_path)
        if self.dry_run:
            return
        self.transport.put_file(host, local_path, remote_path)

    def get_file(self, host: Host, remote_path: str, local_path: Path) -> None:
        log.info("[%s] download %s -> %s", host.label, remote_path, local_path)
        if self.dry_run:
            return
        self.transport.get_file(host, remote_path, local_path)

    def close(self) -> None:
        self.transport.close()

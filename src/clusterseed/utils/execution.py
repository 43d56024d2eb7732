# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

import logging
import subprocess
import time
from dataclasses import dataclass
from typing import Optional, Sequence

log = logging.getLogger("clusterseed")


@dataclass(frozen=True)
class ExecutionContext:
    """
    controls how commands are executed
    """

    dry_run: bool = False


@dataclass
class CommandRunner:
    """
    Runs operator-side (local) commands with logging.
    """
    ctx: ExecutionContext = ExecutionContext()
    label: str = "local"

    def run(self, cmd: Sequence[str], *, check: bool = True) -> subprocess.CompletedProcess:
        cmd_str = " ".join(map(str, cmd))
        log.info("[%s] $ %s", self.label, cmd_str)

        if self.ctx.dry_run:
            log.info("[%s] dry-run: skipped execution", self.label)
            return subprocess.CompletedProcess(args=list(cmd), returncode=0, stdout="", stderr="")

        start = time.time()
        try:
            result = subprocess.run(list(cmd), capture_output=True, check=check, text=True)
        except subprocess.CalledProcessError as e:
            log.error("[%s][exit %s]\n%s", self.label, e.returncode, (e.stdout or "") + (e.stderr or ""))
            raise

        if result.stdout:
            log.debug("[%s][stdout]\n%s", self.label, result.stdout.rstrip())
        if result.stderr:
            log.debug("[%s][stderr]\n%s", self.label, result.stderr.rstrip())
        log.debug("[%s][exit %s] (%.2fs)", self.label, result.returncode, time.time() - start)
        return result

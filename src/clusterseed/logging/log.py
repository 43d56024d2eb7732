# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

#src/clusterseed/logging/log.py

from __future__ import annotations

import logging
from pathlib import Path
from datetime import datetime, timezone
import uuid
from typing import Iterable

FORMAT = "%(asctime)s | %(levelname)-7s | %(message)s"


def init_logging(
    *,
    command: str = "run",
    base_dir: Path | None = None,
    name: str = "clusterseed",
    verbose: bool = False,
    dry_run: bool = False,
) -> tuple[logging.Logger, str, Path]:
    """
    One log file per CLI invocation, named after the command:
      - full trace in ~/.clusterseed/logs/clusterseed-<command>-<ts>-<run_id>.log
        (every remote command and its output)
      - console output at INFO (DEBUG with --debug)
      - returns run_id so observers can reuse it
    """
    run_id = str(uuid.uuid4())

    if base_dir is None:
        base_dir = Path.home() / ".clusterseed" / "logs"
    base_dir.mkdir(parents=True, exist_ok=True)

    ts = datetime.now(timezone.utc).strftime("%Y%m%d-%H%M%S")
    log_path = base_dir / f"{name}-{command}-{ts}-{run_id}.log"

    logger = logging.getLogger(name)
    logger.setLevel(logging.DEBUG)
    for h in list(logger.handlers):
        h.close()
    logger.handlers.clear()
    logger.propagate = False

    formatter = logging.Formatter(FORMAT, datefmt="%Y-%m-%d %H:%M:%S")

    fh = logging.FileHandler(log_path)
    fh.setLevel(logging.DEBUG)
    fh.setFormatter(formatter)

    ch = logging.StreamHandler()
    ch.setLevel(logging.DEBUG if verbose else logging.INFO)
    ch.setFormatter(formatter)

    logger.addHandler(fh)
    logger.addHandler(ch)

    mode = " (dry-run)" if dry_run else ""
    logger.info(f"=== clusterseed {command} started{mode} ===")
    logger.info(f"run_id={run_id}")
    logger.info(f"log_file={log_path}")

    return logger, run_id, log_path


def log_targets(logger: logging.Logger, hosts: Iterable, phase: str) -> None:
    """Record which hosts a phase will touch, in execution order."""
    hosts = list(hosts)
    logger.info(f"[{phase}] {len(hosts)} target host(s)")
    for h in hosts:
        logger.debug(f"[{phase}]   {h.address} {h.label}")

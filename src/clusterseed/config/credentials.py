# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/clusterseed/config/credentials.py
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Mapping, Optional

from dotenv import dotenv_values

from ..errors import CredentialsError

log = logging.getLogger("clusterseed")

USER_VAR = "SSH_USER"
PASSWORD_VAR = "SSH_PASSWORD"


@dataclass(frozen=True)
class Credentials:
    user: str
    password: str = field(repr=False)


def load_credentials(
    env_file: Optional[str | Path] = ".env",
    environ: Optional[Mapping[str, str]] = None,
) -> Credentials:
    """
    Resolve SSH_USER and SSH_PASSWORD.

    Values from the key=value file only fill variables missing from the
    process environment.
    """
    merged: Dict[str, str] = {}
    if env_file is not None:
        env_path = Path(env_file)
        if env_path.is_file():
            merged.update({k: v for k, v in dotenv_values(env_path).items() if v is not None})
            log.debug("Loaded credentials file %s", env_path)
        else:
            log.warning("No %s file found, using system environment variables.", env_path)

    env = os.environ if environ is None else environ
    merged.update({k: v for k, v in env.items() if v})
    user = merged.get(USER_VAR, "")
    password = merged.get(PASSWORD_VAR, "")

    if not user or not password:
        raise CredentialsError(
            f"{USER_VAR} and {PASSWORD_VAR} must be set as environment variables "
            f"or in a .env file"
        )
    return Credentials(user=user, password=password)

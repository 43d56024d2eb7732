# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/clusterseed/config/loader.py

import logging
import os
from pathlib import Path
from typing import Optional

import yaml
from pydantic import ValidationError

from ..errors import ConfigError
from .models import SeedConfig

log = logging.getLogger("clusterseed")

DEFAULT_CONFIG_NAME = "clusterseed.yaml"


def _load_yaml(path: Path) -> dict:
    """Load a YAML file, expanding ${ENV_VAR} references."""
    raw = path.read_text()
    expanded = os.path.expandvars(raw)
    data = yaml.safe_load(expanded) or {}
    if not isinstance(data, dict):
        raise ConfigError(f"{path}: top level must be a mapping")
    return data


def load_config(path: Optional[str | Path] = None) -> SeedConfig:
    """
    Load and validate a clusterseed YAML config.

    With no path, ``clusterseed.yaml`` in the working directory is used if it
    exists; otherwise every setting keeps its default.
    """
    if path is None:
        candidate = Path.cwd() / DEFAULT_CONFIG_NAME
        if not candidate.is_file():
            log.debug("No %s found, using defaults", DEFAULT_CONFIG_NAME)
            return SeedConfig()
        path = candidate

    path = Path(path)
    try:
        data = _load_yaml(path)
    except OSError as e:
        raise ConfigError(f"Cannot read config {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    try:
        return SeedConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid config {path}:\n{e}") from e

# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/clusterseed/errors.py
class ClusterSeedError(RuntimeError):
    """Base class for clusterseed failures."""

class CredentialsError(ClusterSeedError):
    """Raised when SSH_USER / SSH_PASSWORD cannot be resolved."""

class ConfigError(ClusterSeedError):
    """Raised when the cluster config file is unreadable or invalid."""

class HostFileError(ClusterSeedError):
    """Raised when the host list file cannot be read."""

class TransportError(ClusterSeedError):
    """Raised when an SSH connection cannot be established or used."""

class ProbeUnreachableError(ClusterSeedError):
    """Raised by the 'abort' probe policy when a probe cannot reach its host."""


class RemoteCommandError(ClusterSeedError):
    """Raised when a remote command exits non-zero."""

    def __init__(self, label: str, command: str, exit_code: int, output: str):
        self.label = label
        self.command = command
        self.exit_code = exit_code
        self.output = output
        super().__init__(f"[{label}] command failed (rc={exit_code}): {command}")

class AuthenticationFailed(ClusterSeedError):
    """Raised when a host answers SSH but refuses the credential."""

# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/clusterseed/remote/transport.py

from __future__ import annotations

import logging
import shlex
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional, Protocol

import paramiko

from ..config.models import SSHSettings
from ..errors import AuthenticationFailed, TransportError
from ..inventory.models import Host
from ..utils.retry import RetryError, retry

log = logging.getLogger("clusterseed")


@dataclass(frozen=True)
class CommandResult:
    command: str
    exit_code: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.exit_code == 0

    @property
    def output(self) -> str:
        """stdout then stderr, on separate lines."""
        if self.stdout and self.stderr and not self.stdout.endswith("\n"):
            return self.stdout + "\n" + self.stderr
        return self.stdout + self.stderr


class Transport(Protocol):
    """
    How commands reach a host. Implementations raise TransportError when the
    host cannot be reached; a non-zero exit is returned, not raised.
    """

    def exec(self, host: Host, command: str, *, stdin_data: Optional[str] = None) -> CommandResult: ...

    def put_file(self, host: Host, local_path: Path, remote_path: str) -> None: ...

    def get_file(self, host: Host, remote_path: str, local_path: Path) -> None: ...

    def close(self) -> None: ...


def _load_pkey(key_path: Path):
    for key_cls in (
        paramiko.Ed25519Key,
        paramiko.RSAKey,
        paramiko.ECDSAKey,
    ):
        try:
            return key_cls.from_private_key_file(str(key_path))
        except paramiko.SSHException:
            continue
    raise TransportError(f"Unsupported private key format for {key_path}")


class ParamikoTransport:
    """
    SSH transport on paramiko. One client per address, opened lazily.

    With ``password`` set, only password authentication is attempted (the
    bootstrap credential). Otherwise the private key at ``key_path`` is used
    when it exists, falling back to the agent and default keys.
    """

    def __init__(
        self,
        username: str,
        *,
        password: Optional[str] = None,
        key_path: Optional[Path] = None,
        settings: Optional[SSHSettings] = None,
    ):
        self.username = username
        self.password = password
        self.key_path = key_path
        self.settings = settings or SSHSettings()
        self._clients: Dict[str, paramiko.SSHClient] = {}

    # ------------------ connection ------------------

    def _connect_once(self, host: Host) -> paramiko.SSHClient:
        client = paramiko.SSHClient()
        client.set_missing_host_key_policy(paramiko.AutoAddPolicy())

        kwargs = dict(
            hostname=host.address,
            port=self.settings.port,
            username=self.username,
            timeout=self.settings.connect_timeout,
        )
        if self.password is not None:
            kwargs.update(password=self.password, look_for_keys=False, allow_agent=False)
        elif self.key_path is not None and Path(self.key_path).is_file():
            kwargs.update(pkey=_load_pkey(Path(self.key_path)), look_for_keys=False, allow_agent=False)
        else:
            kwargs.update(look_for_keys=True, allow_agent=True)

        try:
            client.connect(**kwargs)
        except paramiko.AuthenticationException as e:
            client.close()
            raise AuthenticationFailed(
                f"Authentication as '{self.username}' refused by {host.address}: {e}"
            ) from e
        except (paramiko.SSHException, OSError) as e:
            client.close()
            raise TransportError(f"Failed to SSH into {host.address}: {e}") from e
        return client

    def _client(self, host: Host) -> paramiko.SSHClient:
        client = self._clients.get(host.address)
        if client is not None:
            return client

        def _log_retry(attempt: int, exc: Exception) -> None:
            if attempt < self.settings.connect_attempts:
                log.info(
                    "[%s] SSH not ready (attempt %d/%d, %s), retrying in %ss...",
                    host.label, attempt, self.settings.connect_attempts, exc,
                    self.settings.connect_retry_delay,
                )

        connect = retry(
            attempts=self.settings.connect_attempts,
            delay=self.settings.connect_retry_delay,
            retry_on=(TransportError,),   # AuthenticationFailed is not retried
            on_retry=_log_retry,
        )(self._connect_once)

        try:
            client = connect(host)
        except RetryError as e:
            cause = e.__cause__
            if isinstance(cause, TransportError):
                raise cause
            raise TransportError(str(e)) from e
        self._clients[host.address] = client
        return client

    # ------------------ operations ------------------

    def exec(self, host: Host, command: str, *, stdin_data: Optional[str] = None) -> CommandResult:
        client = self._client(host)
        wrapped = f"bash -lc {shlex.quote(command)}"
        try:
            stdin, stdout, stderr = client.exec_command(wrapped, timeout=self.settings.command_timeout)
            if stdin_data is not None:
                stdin.write(stdin_data)
                stdin.flush()
            out = stdout.read().decode("utf-8", errors="replace")
            err = stderr.read().decode("utf-8", errors="replace")
            exit_code = stdout.channel.recv_exit_status()
        except (paramiko.SSHException, OSError) as e:
            self._drop(host)
            raise TransportError(f"[{host.label}] SSH session failed: {e}") from e
        return CommandResult(command=command, exit_code=exit_code, stdout=out, stderr=err)

    def put_file(self, host: Host, local_path: Path, remote_path: str) -> None:
        client = self._client(host)
        try:
            sftp = client.open_sftp()
            try:
                sftp.put(str(local_path), remote_path)
            finally:
                sftp.close()
        except (paramiko.SSHException, OSError) as e:
            raise TransportError(f"[{host.label}] upload {local_path} -> {remote_path} failed: {e}") from e

    def get_file(self, host: Host, remote_path: str, local_path: Path) -> None:
        client = self._client(host)
        try:
            sftp = client.open_sftp()
            try:
                sftp.get(remote_path, str(local_path))
            finally:
                sftp.close()
        except (paramiko.SSHException, OSError) as e:
            raise TransportError(f"[{host.label}] download {remote_path} -> {local_path} failed: {e}") from e

    def _drop(self, host: Host) -> None:
        client = self._clients.pop(host.address, None)
        if client is not None:
            client.close()

    def close(self) -> None:
        for client in self._clients.values():
            client.close()
        self._clients.clear()

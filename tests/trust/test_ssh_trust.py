from pathlib import Path

import pytest

from clusterseed.inventory.models import HostRegistry
from clusterseed.provision.report import OK, SKIPPED
from clusterseed.remote.executor import RemoteExecutor
from clusterseed.trust.ssh_trust import SSHTrustSetup, ensure_operator_key, pair_steps
from clusterseed.utils.execution import ExecutionContext


class StubRunner:
    def __init__(self, dry_run=False):
        self.ctx = ExecutionContext(dry_run=dry_run)
        self.cmds = []

    def run(self, cmd, *, check=True):
        self.cmds.append(list(cmd))
        if not self.ctx.dry_run:
            key = Path(cmd[-1])
            key.write_text("private")
            Path(f"{key}.pub").write_text("ssh-rsa NEWKEY operator\n")


@pytest.fixture
def operator_key(config):
    key = config.ssh.resolved_key_path()
    key.write_text("private")
    Path(f"{key}.pub").write_text("ssh-rsa AAAAop operator@laptop\n")
    return key


@pytest.fixture
def key_transport(transport_factory):
    return transport_factory()


@pytest.fixture
def setup(executor, key_transport, registry, config, creds, operator_key):
    return SSHTrustSetup(
        executor, RemoteExecutor(key_transport), registry, config, creds,
        local_runner=StubRunner(),
    )


def test_key_copied_between_every_ordered_pair(setup, transport):
    setup.run()
    copies = [c for c in transport.calls if "ssh-copy-id" in c.command]
    pairs = [(c.address, c.command.rsplit("@", 1)[1]) for c in copies]

    assert len(pairs) == 6
    assert len(set(pairs)) == 6
    assert all(src != dst for src, dst in pairs)
    assert copies[0].command == (
        "sshpass -p s3cret ssh-copy-id -i ~/.ssh/id_rsa.pub -o StrictHostKeyChecking=no kez@10.0.0.11"
    )


def test_host_setup_finishes_before_key_exchange(setup, transport):
    setup.run()
    cmds = transport.commands()
    first_copy = next(i for i, c in enumerate(cmds) if "ssh-copy-id" in c)
    last_setup = max(i for i, c in enumerate(cmds) if "ssh-keygen" in c or "authorized_keys" in c)
    assert last_setup < first_copy


def test_passwordless_sudo_uses_password_on_stdin(setup, transport):
    setup.run()
    sudo = [c for c in transport.calls if "/etc/sudoers.d/kez" in c.command]
    assert len(sudo) == 3
    assert all(c.command.startswith("sudo -S -p '' bash -c ") for c in sudo)
    assert all(c.stdin == "s3cret\n" for c in sudo)


def test_operator_key_installed_when_refused(setup, transport, key_transport):
    key_transport.refused.add("10.0.0.11")
    key_transport.on("echo success", output="success")
    setup.run()
    installs = [c for c in transport.calls if "authorized_keys" in c.command]
    assert [c.address for c in installs] == ["10.0.0.11"]
    assert "ssh-rsa AAAAop operator@laptop" in installs[0].command


def test_rerun_on_configured_hosts_changes_nothing(setup, transport, key_transport):
    transport.on("echo success", output="success")
    transport.on("echo 'exists'", output="exists")
    transport.on("echo 'passwordless'", output="passwordless")
    key_transport.on("echo success", output="success")

    report = setup.run()

    mutating = ("ssh-copy-id", "ssh-keygen", "sudoers.d", "tee -a", "authorized_keys", "apt-get")
    assert not any(m in c for c in transport.commands() for m in mutating)
    assert report.count(OK) == 0
    assert report.count(SKIPPED) == 3 * 5 + 6


def test_pair_steps_exclude_self(registry, creds):
    source = registry.lookup("worker-node1")
    steps = pair_steps(source, registry, creds)
    assert [s.name for s in steps] == ["trust->control-plane", "trust->worker-node2"]


def test_empty_registry_is_a_no_op(executor, key_transport, config, creds, transport):
    report = SSHTrustSetup(
        executor, RemoteExecutor(key_transport), HostRegistry(), config, creds,
        local_runner=StubRunner(),
    ).run()
    assert report.outcomes == []
    assert transport.calls == []


def test_operator_key_generated_when_missing(tmp_path):
    runner = StubRunner()
    key = tmp_path / "keys" / "id_rsa"
    assert ensure_operator_key(key, runner) == "ssh-rsa NEWKEY operator"
    assert runner.cmds[0][:2] == ["ssh-keygen", "-q"]


def test_operator_key_dry_run(tmp_path):
    runner = StubRunner(dry_run=True)
    assert ensure_operator_key(tmp_path / "id_rsa", runner) == ""
    assert not (tmp_path / "id_rsa.pub").exists()


def test_existing_operator_key_is_reused(tmp_path):
    runner = StubRunner()
    key = tmp_path / "id_rsa"
    key.write_text("private")
    (tmp_path / "id_rsa.pub").write_text("ssh-rsa OLD me\n")
    assert ensure_operator_key(key, runner) == "ssh-rsa OLD me"
    assert runner.cmds == []

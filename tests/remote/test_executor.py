import logging

import pytest

from clusterseed.errors import RemoteCommandError
from clusterseed.remote.executor import RemoteExecutor
from clusterseed.utils.execution import ExecutionContext


def test_run_raises_on_non_zero_exit(transport, executor, registry):
    host = registry.lookup("worker-node1")
    transport.on("apt install", output="E: Unable to locate package", rc=100)
    with pytest.raises(RemoteCommandError) as ei:
        executor.run(host, "sudo apt install -y nothing")
    assert ei.value.exit_code == 100
    assert ei.value.label == "worker-node1"
    assert "Unable to locate package" in ei.value.output


def test_query_returns_non_zero_without_raising(transport, executor, registry):
    transport.on("test -f", rc=1)
    result = executor.query(registry.lookup("worker-node1"), "test -f /etc/kubernetes/kubelet.conf")
    assert not result.ok
    assert result.exit_code == 1


def test_sudo_password_fed_on_stdin(transport, executor, registry):
    host = registry.lookup("control-plane")
    result = executor.run(host, "echo 'kez ALL=(ALL) NOPASSWD: ALL' > /etc/sudoers.d/kez", sudo_password=True)
    call = transport.calls[-1]
    assert call.command.startswith("sudo -S -p '' bash -c ")
    assert "/etc/sudoers.d/kez" in call.command
    assert call.stdin == "s3cret\n"
    assert result.command == "echo 'kez ALL=(ALL) NOPASSWD: ALL' > /etc/sudoers.d/kez"


def test_plain_run_sends_no_stdin(transport, executor, registry):
    executor.run(registry.lookup("control-plane"), "sudo swapoff -a")
    assert transport.calls[-1].stdin is None
    assert transport.calls[-1].command == "sudo swapoff -a"


def test_secrets_masked_in_logs_and_errors(transport, executor, registry, caplog):
    caplog.set_level(logging.DEBUG, logger="clusterseed")
    transport.on("ssh-copy-id", output="Permission denied for s3cret", rc=1)
    with pytest.raises(RemoteCommandError) as ei:
        executor.run(registry.lookup("worker-node1"), "sshpass -p s3cret ssh-copy-id kez@10.0.0.12")
    assert "s3cret" not in str(ei.value)
    assert "s3cret" not in ei.value.output
    assert "s3cret" not in caplog.text
    assert "********" in caplog.text


def test_dry_run_skips_transport(transport, registry, tmp_path):
    ex = RemoteExecutor(transport, ExecutionContext(dry_run=True))
    host = registry.lookup("control-plane")
    assert ex.run(host, "sudo kubeadm reset -f").ok
    ex.put_file(host, tmp_path / "ca.crt", "/tmp/ca.crt")
    ex.get_file(host, ".kube/config", tmp_path / "config")
    assert transport.calls == []
    assert transport.uploads == []
    assert transport.downloads == []

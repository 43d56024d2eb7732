from pathlib import Path

import pytest
from typer.testing import CliRunner

from clusterseed.cli.app import app

runner = CliRunner()


@pytest.fixture
def workdir(tmp_path: Path, monkeypatch):
    monkeypatch.setenv("HOME", str(tmp_path))
    monkeypatch.delenv("SSH_USER", raising=False)
    monkeypatch.delenv("SSH_PASSWORD", raising=False)
    monkeypatch.chdir(tmp_path)
    (tmp_path / "hosts").write_text("10.0.0.12 worker-node2\n10.0.0.2 control-plane,cp\n# operator\n")
    (tmp_path / ".env").write_text("SSH_USER=kez\nSSH_PASSWORD=s3cret\n")
    return tmp_path


def test_hosts_prints_registry_in_order(workdir):
    result = runner.invoke(app, ["hosts", "--hosts", str(workdir / "hosts")])
    assert result.exit_code == 0
    assert result.output.splitlines() == ["10.0.0.2\tcontrol-plane", "10.0.0.12\tworker-node2"]


def test_hosts_missing_file_exits_2(workdir):
    result = runner.invoke(app, ["hosts", "--hosts", str(workdir / "missing")])
    assert result.exit_code == 2


def test_trust_without_credentials_exits_2(workdir):
    result = runner.invoke(app, ["trust", "--env-file", str(workdir / "missing.env")])
    assert result.exit_code == 2


def test_invalid_config_exits_2(workdir):
    (workdir / "clusterseed.yaml").write_text("probe_failure_policy: sometimes\n")
    result = runner.invoke(app, ["provision", "--hosts", str(workdir / "hosts"), "--dry-run"])
    assert result.exit_code == 2


def test_provision_dry_run(workdir):
    result = runner.invoke(app, ["provision", "--hosts", str(workdir / "hosts"), "--dry-run"])
    assert result.exit_code == 0, result.output
    assert "FAILED=0" in result.output
    assert not (workdir / ".kube" / "config").exists()
    assert list((workdir / ".clusterseed" / "logs").glob("*.jsonl"))


def test_trust_dry_run(workdir):
    result = runner.invoke(app, ["trust", "--hosts", str(workdir / "hosts"), "--dry-run"])
    assert result.exit_code == 0, result.output
    assert "FAILED=0" in result.output
    assert not (workdir / ".ssh" / "id_rsa").exists()


def test_hosts_uses_config_hosts_file(workdir):
    (workdir / "lab-hosts").write_text("10.1.0.20 worker-node1\n10.1.0.10 control-plane\n")
    (workdir / "clusterseed.yaml").write_text(f"hosts_file: {workdir / 'lab-hosts'}\n")
    result = runner.invoke(app, ["hosts"])
    assert result.exit_code == 0
    assert result.output.splitlines() == ["10.1.0.10\tcontrol-plane", "10.1.0.20\tworker-node1"]

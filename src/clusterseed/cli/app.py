# src/clusterseed/cli/app.py
from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer

from clusterseed.config.credentials import Credentials, load_credentials
from clusterseed.config.loader import load_config
from clusterseed.config.models import SeedConfig
from clusterseed.errors import ClusterSeedError
from clusterseed.inventory.loader import resolve_registry
from clusterseed.inventory.models import HostRegistry
from clusterseed.kubernetes.bootstrap import ClusterBootstrapper
from clusterseed.kubernetes.node import cluster_nodes, node_steps
from clusterseed.logging.log import init_logging, log_targets
from clusterseed.observers.dispatcher import EventBus
from clusterseed.observers.sinks import JsonFileObserver, LoggerObserver
from clusterseed.provision.report import ProvisionReport
from clusterseed.provision.sequence import SequenceRunner
from clusterseed.remote.executor import RemoteExecutor
from clusterseed.remote.transport import ParamikoTransport
from clusterseed.trust.ssh_trust import SSHTrustSetup
from clusterseed.utils.execution import ExecutionContext


# ------------------------------------------------------------------------------
# CLI setup
# ------------------------------------------------------------------------------

app = typer.Typer(help="Cluster bootstrap: SSH trust, node provisioning, kubeadm cluster")

EXIT_FAILED = 1
EXIT_CONFIG = 2

HostsOpt = typer.Option(None, "--hosts", "-H", help="Host file (<address> <name>[,alias...] per line). Default: built-in list")
EnvFileOpt = typer.Option(Path(".env"), "--env-file", help="key=value file with SSH_USER / SSH_PASSWORD")
ConfigOpt = typer.Option(None, "--config", "-c", help="clusterseed YAML config (default: ./clusterseed.yaml if present)")
DryRunOpt = typer.Option(False, "--dry-run", help="Log commands without running them")
DebugOpt = typer.Option(False, "--debug", "-d", help="Show command output on the console")


# ------------------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------------------

def _load_inputs(
    hosts: Optional[Path],
    config: Optional[Path],
    env_file: Optional[Path],
) -> tuple[SeedConfig, HostRegistry, Credentials]:
    """
    Config, registry and credentials, or a fatal exit (code 2).
    """
    try:
        cfg = load_config(config)
        registry = resolve_registry(hosts or cfg.hosts_file)
        creds = load_credentials(env_file)
    except ClusterSeedError as e:
        typer.secho(f"❌ {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(EXIT_CONFIG)
    return cfg, registry, creds


def _event_bus(logger, run_id: str) -> EventBus:
    return EventBus(observers=[
        LoggerObserver(logger),
        JsonFileObserver(Path.home() / ".clusterseed" / "logs" / f"{run_id}.jsonl"),
    ])


def _finish(report: ProvisionReport) -> None:
    typer.echo(f"\nSummary: {report.summary()}")
    for o in report.failures():
        typer.secho(f"❌ [{o.phase}] {o.host} {o.step}: {o.error}", fg=typer.colors.RED, err=True)
    if not report.ok:
        if report.aborted:
            typer.secho("Run aborted; later steps and hosts were not processed.", fg=typer.colors.YELLOW, err=True)
        raise typer.Exit(EXIT_FAILED)


# ------------------------------------------------------------------------------
# Commands
# ------------------------------------------------------------------------------

@app.command()
def hosts(
    hosts_file: Optional[Path] = HostsOpt,
    config: Optional[Path] = ConfigOpt,
):
    """
    Print the host registry in execution order.
    """
    try:
        cfg = load_config(config)
        registry = resolve_registry(hosts_file or cfg.hosts_file)
    except ClusterSeedError as e:
        typer.secho(f"❌ {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(EXIT_CONFIG)
    for h in registry:
        typer.echo(f"{h.address}\t{h.label}")


@app.command()
def trust(
    hosts_file: Optional[Path] = HostsOpt,
    env_file: Optional[Path] = EnvFileOpt,
    config: Optional[Path] = ConfigOpt,
    dry_run: bool = DryRunOpt,
    debug: bool = DebugOpt,
):
    """
    Passwordless SSH across all hosts:
      1) node SSH keys, passwordless sudo, /etc/hosts, operator key
      2) key copy between every ordered pair of hosts
    """
    logger, run_id, _ = init_logging(command="trust", verbose=debug, dry_run=dry_run)
    typer.echo("🔐 Retrieving SSH credentials...")
    cfg, registry, creds = _load_inputs(hosts_file, config, env_file)
    log_targets(logger, registry, "trust")

    ctx = ExecutionContext(dry_run=dry_run)
    executor = RemoteExecutor(
        ParamikoTransport(creds.user, password=creds.password, settings=cfg.ssh),
        ctx,
        sudo_password=creds.password,
    )
    key_executor = RemoteExecutor(
        ParamikoTransport(creds.user, key_path=cfg.ssh.resolved_key_path(), settings=cfg.ssh),
        ctx,
        secrets=[creds.password],
    )
    try:
        report = SSHTrustSetup(
            executor, key_executor, registry, cfg, creds,
            bus=_event_bus(logger, run_id), run_id=run_id,
        ).run()
    except ClusterSeedError as e:
        typer.secho(f"❌ {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(EXIT_FAILED)
    finally:
        executor.close()
        key_executor.close()

    _finish(report)


@app.command()
def provision(
    hosts_file: Optional[Path] = HostsOpt,
    env_file: Optional[Path] = EnvFileOpt,
    config: Optional[Path] = ConfigOpt,
    skip_nodes: bool = typer.Option(False, "--skip-nodes", help="Skip per-node provisioning"),
    skip_cluster: bool = typer.Option(False, "--skip-cluster", help="Skip kubeadm init/join and network plugin"),
    dry_run: bool = DryRunOpt,
    debug: bool = DebugOpt,
):
    """
    Kubernetes on the cluster nodes (key-based SSH, after `trust`):
      1) per node: firewall, certificates, IPv4 forwarding, swap, apt repo, packages, containerd
      2) kubeadm init on the control plane, join workers, fetch kubeconfig, network plugin
    """
    logger, run_id, _ = init_logging(command="provision", verbose=debug, dry_run=dry_run)
    cfg, registry, creds = _load_inputs(hosts_file, config, env_file)
    nodes = cluster_nodes(registry, cfg.kubernetes)
    log_targets(logger, nodes, "nodes")

    executor = RemoteExecutor(
        ParamikoTransport(creds.user, key_path=cfg.ssh.resolved_key_path(), settings=cfg.ssh),
        ExecutionContext(dry_run=dry_run),
        secrets=[creds.password],
    )
    bus = _event_bus(logger, run_id)
    report = ProvisionReport()
    try:
        if not skip_nodes:
            typer.echo("\n[nodes] Provisioning cluster nodes...")
            runner = SequenceRunner(executor, cfg, creds, bus=bus, run_id=run_id, phase="nodes")
            runner.run(nodes, node_steps(cfg), report, context_registry=registry)
            runner.summarize(report)
        else:
            typer.echo("[nodes] Skipped.")

        if not skip_cluster:
            typer.echo("\n[cluster] Bootstrapping Kubernetes cluster...")
            ClusterBootstrapper(executor, registry, cfg, creds, bus=bus, run_id=run_id).run(report)
        else:
            typer.echo("[cluster] Skipped.")
    except ClusterSeedError as e:
        typer.secho(f"❌ {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(EXIT_CONFIG)
    finally:
        executor.close()

    _finish(report)


def main() -> None:
    app()


if __name__ == "__main__":
    main()

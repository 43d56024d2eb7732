# src/clusterseed/config/models.py

from pathlib import Path
from typing import List, Literal, Optional
from pydantic import BaseModel, Field


DEFAULT_FIREWALL_PORTS = [
    "6443/tcp",
    "2379:2380/tcp",
    "10250/tcp",
    "10251/tcp",
    "10252/tcp",
    "30000:32767/tcp",
]

DEFAULT_NETWORK_MANIFESTS = [
    "kubectl apply --server-side -f https://raw.githubusercontent.com/projectcalico/calico/v3.25.0/manifests/tigera-operator.yaml",
    "kubectl apply -f https://docs.projectcalico.org/manifests/calico.yaml",
]


class SSHSettings(BaseModel):
    key_path: Path = Path("~/.ssh/id_rsa")     # operator key for direct (key-based) SSH
    port: int = 22
    connect_timeout: float = 30.0
    command_timeout: float = 600.0
    connect_attempts: int = Field(default=1, ge=1)
    connect_retry_delay: int = Field(default=5, ge=0)
    remote_key_path: str = "~/.ssh/id_rsa"     # key generated on each node for inter-node trust

    def resolved_key_path(self) -> Path:
        return self.key_path.expanduser()


class KubernetesSettings(BaseModel):
    version: str = "1.30.0"
    pod_network_cidr: str = "192.168.0.0/16"
    control_plane: str = "control-plane"       # label of the control-plane host
    exclude_labels: List[str] = Field(default_factory=lambda: ["ubuntu"])  # hosts that are not cluster nodes
    packages: List[str] = Field(default_factory=lambda: ["containerd", "kubelet", "kubeadm", "kubectl"])
    hold_packages: List[str] = Field(default_factory=lambda: ["kubelet", "kubeadm", "kubectl"])
    firewall_ports: List[str] = Field(default_factory=lambda: list(DEFAULT_FIREWALL_PORTS))
    certificates: List[Path] = Field(default_factory=list)   # local CA .crt files to trust on every node
    network_manifests: List[str] = Field(default_factory=lambda: list(DEFAULT_NETWORK_MANIFESTS))
    fetch_kubeconfig: bool = True
    local_kubeconfig: Path = Path("~/.kube/config")

    @property
    def minor_channel(self) -> str:
        """'1.30.0' -> 'v1.30' (pkgs.k8s.io repository channel)."""
        parts = self.version.lstrip("v").split(".")
        return "v" + ".".join(parts[:2])


class SeedConfig(BaseModel):
    ssh: SSHSettings = Field(default_factory=SSHSettings)
    kubernetes: KubernetesSettings = Field(default_factory=KubernetesSettings)
    probe_failure_policy: Literal["assume-absent", "skip", "abort"] = "assume-absent"
    continue_on_error: bool = False
    hosts_file: Optional[Path] = None

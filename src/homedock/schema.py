"""
Installer data model.

Host probes fill HostFacts once; config.build_config folds them into the
frozen InstallConfig that every stage receives.  Stages never mutate it,
they return values (PreflightOutcome, StorageDriver, DaemonFlags) that the
pipeline hands to the next stage.
"""

from enum import Enum
from pathlib import Path
from typing import List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field


# --- Host probes ---


class Capability(str, Enum):
    PRESENT = "present"
    ABSENT = "absent"


class HostFacts(BaseModel):
    """Results of the one-time host capability probes."""

    model_config = ConfigDict(frozen=True)

    platform: str
    euid: int
    username: str = ""
    arch: str = ""
    distro_id: str = ""  # ID= from os-release, lowercased

    systemd: Capability = Capability.ABSENT  # systemd user manager reachable
    iptables: Capability = Capability.ABSENT

    # Rootless prerequisites
    newuidmap: Capability = Capability.ABSENT
    newgidmap: Capability = Capability.ABSENT
    userns_clone: Capability = Capability.ABSENT  # kernel.unprivileged_userns_clone
    user_namespaces: Capability = Capability.ABSENT  # user.max_user_namespaces > 0
    subuid: Capability = Capability.ABSENT
    subgid: Capability = Capability.ABSENT
    # First id past every range already in /etc/subuid and /etc/subgid
    subuid_start: int = 100000
    subgid_start: int = 100000

    @property
    def has_systemd(self) -> bool:
        return self.systemd == Capability.PRESENT

    @property
    def has_iptables(self) -> bool:
        return self.iptables == Capability.PRESENT


# --- Configuration ---


class InstallConfig(BaseModel):
    """Everything the stages need, resolved once at startup."""

    model_config = ConfigDict(frozen=True)

    home: Path
    bin_dir: Path
    daemon: str = "dockerd"

    runtime_dir: Path
    runtime_dir_is_fallback: bool = False  # synthesized /tmp dir, created by preflight

    path_env: str = ""  # PATH as seen at startup; never modified

    engine_url: str
    extras_url: str
    engine_sha256: Optional[str] = None
    extras_sha256: Optional[str] = None

    unit_path: Path
    overwrite_unit: bool = False
    skip_start: bool = False
    skip_iptables: bool = False

    rootful_socket: Path = Path("/var/run/docker.sock")
    host_root: Path = Path("/")  # root for /etc, /proc and /run lookups

    facts: HostFacts

    @property
    def daemon_path(self) -> Path:
        return self.bin_dir / self.daemon

    @property
    def socket_path(self) -> Path:
        return self.runtime_dir / "docker.sock"

    @property
    def docker_host(self) -> str:
        return f"unix://{self.socket_path}"


# --- Preflight ---


class PreflightStatus(str, Enum):
    PROCEED = "proceed"
    ALREADY_INSTALLED = "already_installed"
    FAILED = "failed"


class PreflightOutcome(BaseModel):
    status: PreflightStatus
    message: str = ""
    remediation: str = ""  # shell script for the administrator, when capabilities are missing


# --- Daemon and service unit ---


class StorageDriver(str, Enum):
    OVERLAY2 = "overlay2"
    VFS = "vfs"


class DaemonFlags(BaseModel):
    """dockerd-rootless.sh arguments, shared by the unit file and the manual command."""

    experimental: bool = True
    iptables: bool = True
    storage_driver: StorageDriver = StorageDriver.VFS

    def to_args(self) -> List[str]:
        args: List[str] = []
        if self.experimental:
            args.append("--experimental")
        if not self.iptables:
            args.append("--iptables=false")
        args += ["--storage-driver", self.storage_driver.value]
        return args


class UnitSection(BaseModel):
    """One [Section] of a systemd unit; entries keep their order."""

    name: str
    entries: List[Tuple[str, str]] = Field(default_factory=list)


class ServiceUnit(BaseModel):
    sections: List[UnitSection] = Field(default_factory=list)

    def get(self, section: str, key: str) -> Optional[str]:
        for s in self.sections:
            if s.name == section:
                for k, v in s.entries:
                    if k == key:
                        return v
        return None

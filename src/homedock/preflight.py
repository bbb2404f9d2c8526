"""
Preflight checks for a rootless install.

Runs, in order:
  - platform is Linux
  - not running as root
  - $HOME exists, bin dir (or $HOME) writable
  - no rootful dockerd reachable on /var/run/docker.sock
  - runtime dir usable (the private fallback is created here)
  - existing install short-circuits to "already installed"
  - rootless prerequisites (id-mapping helpers, user namespaces, subuid/subgid)

The first failing check wins, except the prerequisites, which are all
collected into one script for an administrator to run.
"""

import os
import stat
from pathlib import Path
from typing import Callable, List, Optional

from .schema import (
    Capability, HostFacts, InstallConfig, PreflightOutcome, PreflightStatus,
)
from .inspectors.userns import SUBID_COUNT
from ._util import debug as _debug_fn, is_writable, owner_uid


def _debug(msg: str) -> None:
    _debug_fn("preflight", msg)


# ---------------------------------------------------------------------------
# Individual checks
# ---------------------------------------------------------------------------

def _check_platform(config: InstallConfig) -> Optional[str]:
    if config.facts.platform == "Linux":
        return None
    return f"Rootless Docker cannot be installed on {config.facts.platform}"


def _check_not_root(config: InstallConfig) -> Optional[str]:
    if config.facts.euid != 0:
        return None
    return "Refusing to install rootless Docker as the root user"


def _check_home(config: InstallConfig) -> Optional[str]:
    if config.home.is_dir():
        return None
    return f"Aborting because HOME directory {config.home} does not exist"


def _check_bin_dir(config: InstallConfig) -> Optional[str]:
    if config.bin_dir.is_dir():
        if is_writable(config.bin_dir):
            return None
        return f"Aborting because {config.bin_dir} is not writable"
    if is_writable(config.home):
        return None
    return f"Aborting because {config.home} is not writable"


def _check_rootful_docker(config: InstallConfig) -> Optional[str]:
    if is_writable(config.rootful_socket):
        _debug(f"rootful: FAIL ({config.rootful_socket} is writable)")
        return "Aborting because rootful Docker is running and accessible"
    _debug("rootful: ok")
    return None


def _check_private_dir(d: Path, uid: int) -> Optional[str]:
    """The fallback path is predictable, so an existing one must be ours and 0700."""
    if d.is_symlink() or not d.is_dir():
        return f"Aborting because {d} is not a directory"
    owner = owner_uid(d)
    if owner != uid:
        return f"Aborting because {d} is owned by uid {owner}, not {uid}"
    mode = stat.S_IMODE(d.lstat().st_mode)
    if mode != 0o700:
        return f"Aborting because {d} has mode {mode:o}, expected 700"
    return None


def _check_runtime_dir(config: InstallConfig) -> Optional[str]:
    """Only check allowed to write: it creates the private fallback dir."""
    d = config.runtime_dir
    if config.runtime_dir_is_fallback:
        try:
            d.mkdir(mode=0o700, parents=True, exist_ok=True)
        except OSError as exc:
            return f"Aborting because {d} could not be created: {exc}"
        msg = _check_private_dir(d, config.facts.euid)
        if msg:
            return msg
        _debug(f"runtime dir: using fallback {d}")
    elif config.facts.has_systemd and not d.is_dir():
        user = config.facts.username or str(config.facts.euid)
        return (
            f"Aborting because runtime directory {d} does not exist. "
            "systemd-logind normally creates it at login: log in with a real "
            f"session (ssh, console) rather than su/sudo, or run "
            f"`sudo loginctl enable-linger {user}`, then set "
            f"XDG_RUNTIME_DIR=/run/user/{config.facts.euid}"
        )
    if not is_writable(d):
        return f"Aborting because {d} is not writable"
    return None


def is_installed(config: InstallConfig) -> bool:
    """An executable dockerd in the bin dir means a previous install succeeded."""
    p = config.daemon_path
    return p.is_file() and os.access(str(p), os.X_OK)


# ---------------------------------------------------------------------------
# Rootless prerequisites
# ---------------------------------------------------------------------------

_UIDMAP_PACKAGES = {
    "ubuntu": "apt-get install -y uidmap",
    "debian": "apt-get install -y uidmap",
    "fedora": "dnf install -y shadow-utils",
    "centos": "dnf install -y shadow-utils",
    "rhel": "dnf install -y shadow-utils",
    "opensuse-leap": "zypper install -y shadow",
    "opensuse-tumbleweed": "zypper install -y shadow",
    "arch": "pacman -S --noconfirm shadow",
}


def missing_capabilities(facts: HostFacts) -> List[str]:
    """Names of the HostFacts prerequisite fields that were probed absent."""
    fields = ("newuidmap", "newgidmap", "userns_clone", "user_namespaces", "subuid", "subgid")
    return [f for f in fields if getattr(facts, f) == Capability.ABSENT]


def remediation_script(facts: HostFacts, missing: List[str]) -> str:
    """One `sudo sh -x` heredoc that fixes every missing prerequisite."""
    lines: List[str] = []
    if "newuidmap" in missing or "newgidmap" in missing:
        cmd = _UIDMAP_PACKAGES.get(facts.distro_id)
        if cmd:
            lines.append(cmd)
        else:
            lines.append("# Install newuidmap and newgidmap (package uidmap or shadow-utils)")

    sysctls = []
    if "userns_clone" in missing:
        sysctls.append(("50-rootless.conf", "kernel.unprivileged_userns_clone = 1"))
    if "user_namespaces" in missing:
        sysctls.append(("51-rootless.conf", "user.max_user_namespaces = 28633"))
    for filename, setting in sysctls:
        lines.append(f"cat <<EOT > /etc/sysctl.d/{filename}")
        lines.append(setting)
        lines.append("EOT")
    if sysctls:
        lines.append("sysctl --system")

    owner = facts.username or str(facts.euid)
    for field in ("subuid", "subgid"):
        if field in missing:
            start = getattr(facts, f"{field}_start")
            lines.append(f'echo "{owner}:{start}:{SUBID_COUNT}" >> /etc/{field}')

    out = [
        "# Missing system requirements. Please run the following commands to",
        "# install the requirements and run this installer again.",
        "",
        "cat <<EOF | sudo sh -x",
    ]
    out += lines
    out.append("EOF")
    return "\n".join(out) + "\n"


# ---------------------------------------------------------------------------
# Public entry point
# ---------------------------------------------------------------------------

_ORDERED_CHECKS: List[Callable[[InstallConfig], Optional[str]]] = [
    _check_platform,
    _check_not_root,
    _check_home,
    _check_bin_dir,
    _check_rootful_docker,
    _check_runtime_dir,
]


def run_preflight(config: InstallConfig) -> PreflightOutcome:
    """Run all checks in order and report whether installation should proceed."""
    for check in _ORDERED_CHECKS:
        msg = check(config)
        if msg:
            _debug(f"{check.__name__}: FAIL")
            return PreflightOutcome(status=PreflightStatus.FAILED, message=msg)

    if is_installed(config):
        _debug(f"existing install at {config.daemon_path}")
        return PreflightOutcome(
            status=PreflightStatus.ALREADY_INSTALLED,
            message=f"# Existing rootless Docker detected at {config.daemon_path}",
        )

    missing = missing_capabilities(config.facts)
    if missing:
        _debug(f"missing prerequisites: {', '.join(missing)}")
        return PreflightOutcome(
            status=PreflightStatus.FAILED,
            message="Aborting because rootless Docker prerequisites are missing: "
                    + ", ".join(missing),
            remediation=remediation_script(config.facts, missing),
        )
    return PreflightOutcome(status=PreflightStatus.PROCEED)

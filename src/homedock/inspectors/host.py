"""Host inspector: platform, identity, distro, systemd user manager and required binaries."""

import os
import platform
import shutil
from pathlib import Path
from typing import Dict, Mapping, Optional

from ..executor import Executor
from ..schema import Capability
from .._util import debug as _debug_fn, safe_read


def _debug(msg: str) -> None:
    _debug_fn("host", msg)


def _present(ok: bool) -> Capability:
    return Capability.PRESENT if ok else Capability.ABSENT


def read_os_release(host_root: Path) -> Dict[str, str]:
    """Parse etc/os-release under host_root into a dict (empty when missing)."""
    text = safe_read(Path(host_root) / "etc" / "os-release", label="host")
    data: Dict[str, str] = {}
    if not text:
        return data
    for line in text.splitlines():
        if "=" in line and not line.lstrip().startswith("#"):
            k, v = line.split("=", 1)
            data[k.strip()] = v.strip().strip('"')
    return data


def distro_id(host_root: Path) -> str:
    return read_os_release(host_root).get("ID", "").lower()


def username(euid: int, env: Mapping[str, str]) -> str:
    """Login name for *euid*; falls back to $USER when the passwd lookup fails."""
    try:
        import pwd
        return pwd.getpwuid(euid).pw_name
    except (ImportError, KeyError):
        return env.get("USER") or env.get("LOGNAME") or ""


def machine_arch() -> str:
    """Map platform.machine() onto the arch names used by download.docker.com."""
    machine = platform.machine()
    return {
        "amd64": "x86_64",
        "arm64": "aarch64",
        "armv7l": "armhf",
        "armv6l": "armel",
    }.get(machine.lower(), machine)


def which(binary: str, env: Mapping[str, str]) -> Optional[str]:
    return shutil.which(binary, path=env.get("PATH", os.defpath))


def probe_systemd(executor: Executor) -> Capability:
    """Present when a systemd user manager answers on this session."""
    result = executor(["systemctl", "--user", "show-environment"])
    if result.returncode == 0:
        _debug("systemd user manager: present")
        return Capability.PRESENT
    _debug(f"systemd user manager: absent (rc={result.returncode}) {result.stderr.strip()}")
    return Capability.ABSENT


def run(
    host_root: Path,
    executor: Executor,
    env: Mapping[str, str],
) -> dict:
    """Collect identity, platform and binary-presence facts as HostFacts fields."""
    system = platform.system()
    euid = os.geteuid() if hasattr(os, "geteuid") else -1
    facts = {
        "platform": system,
        "euid": euid,
        "username": username(euid, env),
        "arch": machine_arch(),
        "distro_id": distro_id(host_root),
    }
    _debug(f"platform={system} euid={euid} user={facts['username']} "
           f"arch={facts['arch']} distro={facts['distro_id'] or '?'}")

    # Nothing else is meaningful off Linux; preflight rejects the platform.
    if system != "Linux":
        return facts

    facts["systemd"] = probe_systemd(executor)
    for binary in ("iptables", "newuidmap", "newgidmap"):
        found = which(binary, env)
        _debug(f"{binary}: {found or 'not found'}")
        facts[binary] = _present(found is not None)
    return facts

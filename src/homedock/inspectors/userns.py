"""User namespace inspector: kernel sysctls and subordinate id ranges under host_root."""

from pathlib import Path
from typing import Optional

from ..schema import Capability
from .._util import debug as _debug_fn, safe_read

# Conventional first subordinate id and per-user range size.
SUBID_BASE = 100000
SUBID_COUNT = 65536


def _debug(msg: str) -> None:
    _debug_fn("userns", msg)


def _read_int(p: Path) -> Optional[int]:
    text = safe_read(p, label="userns")
    if text is None:
        return None
    try:
        return int(text.strip())
    except ValueError:
        _debug(f"cannot parse {p}: {text.strip()!r}")
        return None


def check_userns_clone(host_root: Path) -> Capability:
    """kernel.unprivileged_userns_clone exists only on Debian-patched kernels.

    A kernel without the knob allows unprivileged user namespaces.
    """
    value = _read_int(Path(host_root) / "proc/sys/kernel/unprivileged_userns_clone")
    if value is None or value == 1:
        return Capability.PRESENT
    _debug(f"unprivileged_userns_clone={value}")
    return Capability.ABSENT


def check_max_user_namespaces(host_root: Path) -> Capability:
    value = _read_int(Path(host_root) / "proc/sys/user/max_user_namespaces")
    if value is None or value > 0:
        return Capability.PRESENT
    _debug(f"max_user_namespaces={value}")
    return Capability.ABSENT


def has_subid_range(text: Optional[str], username: str, uid: int) -> bool:
    """True if a subuid/subgid file assigns a non-empty range to the user.

    Entries are ``name:start:count``; the name field may also be the numeric id.
    """
    if not text:
        return False
    owners = {str(uid)}
    if username:
        owners.add(username)
    for line in text.splitlines():
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        parts = line.split(":")
        if len(parts) != 3 or parts[0] not in owners:
            continue
        try:
            if int(parts[2]) > 0:
                return True
        except ValueError:
            continue
    return False


def next_subid_start(text: Optional[str]) -> int:
    """First id above every range in a subuid/subgid file, at least SUBID_BASE."""
    start = SUBID_BASE
    for line in (text or "").splitlines():
        parts = line.strip().split(":")
        if len(parts) != 3:
            continue
        try:
            start = max(start, int(parts[1]) + int(parts[2]))
        except ValueError:
            continue
    return start


def run(host_root: Path, username: str, uid: int) -> dict:
    """Return HostFacts fields for the rootless kernel and id-mapping prerequisites."""
    host_root = Path(host_root)
    facts = {
        "userns_clone": check_userns_clone(host_root),
        "user_namespaces": check_max_user_namespaces(host_root),
    }
    for field, filename in (("subuid", "etc/subuid"), ("subgid", "etc/subgid")):
        text = safe_read(host_root / filename, label="userns")
        ok = has_subid_range(text, username, uid)
        _debug(f"{filename} entry for {username or uid}: {'yes' if ok else 'no'}")
        facts[field] = Capability.PRESENT if ok else Capability.ABSENT
        facts[f"{field}_start"] = next_subid_start(text)
    return facts

"""
Configuration: fold CLI arguments, environment and probed host facts into
one frozen InstallConfig.  Nothing here touches the filesystem beyond
read-only existence and permission checks.
"""

import argparse
import os
from pathlib import Path
from typing import Mapping, Optional, Tuple

from .schema import HostFacts, InstallConfig
from ._util import debug as _debug_fn, is_writable

DEFAULT_CHANNEL = "stable"
DEFAULT_VERSION = "27.5.1"
DOWNLOAD_BASE = "https://download.docker.com/linux/static"

# Parent of the private runtime dir used when no systemd user manager exists.
FALLBACK_RUNTIME_BASE = Path("/tmp")

UNIT_NAME = "docker.service"


def _debug(msg: str) -> None:
    _debug_fn("config", msg)


def engine_url(channel: str, arch: str, version: str) -> str:
    return f"{DOWNLOAD_BASE}/{channel}/{arch}/docker-{version}.tgz"


def extras_url(channel: str, arch: str, version: str) -> str:
    return f"{DOWNLOAD_BASE}/{channel}/{arch}/docker-rootless-extras-{version}.tgz"


def fallback_runtime_dir(uid: int, base: Optional[Path] = None) -> Path:
    return (base or FALLBACK_RUNTIME_BASE) / f"docker-rootless-{uid}"


def resolve_runtime_dir(
    env: Mapping[str, str],
    uid: int,
    has_systemd: bool,
    host_root: Path = Path("/"),
) -> Tuple[Path, bool]:
    """Pick the runtime directory for the daemon socket.

    $XDG_RUNTIME_DIR if it is a directory, else /run/user/<uid>.  With
    systemd the choice stands (preflight fails if it is missing, logind is
    supposed to create it).  Without systemd an unusable directory is
    replaced by the private fallback.  Returns (path, is_fallback).
    """
    xdg = env.get("XDG_RUNTIME_DIR", "")
    if xdg and Path(xdg).is_dir():
        candidate = Path(xdg)
    else:
        candidate = Path(host_root) / "run" / "user" / str(uid)
    if has_systemd or is_writable(candidate):
        return candidate, False
    fallback = fallback_runtime_dir(uid)
    _debug(f"runtime dir {candidate} unusable without systemd, using {fallback}")
    return fallback, True


def build_config(
    args: argparse.Namespace,
    env: Mapping[str, str],
    facts: HostFacts,
    host_root: Path = Path("/"),
) -> InstallConfig:
    home = Path(env.get("HOME") or os.path.expanduser("~"))
    bin_dir = Path(args.bin_dir) if args.bin_dir else home / "bin"
    runtime_dir, is_fallback = resolve_runtime_dir(
        env, facts.euid, facts.has_systemd, host_root=host_root,
    )
    arch = facts.arch or "x86_64"

    config = InstallConfig(
        home=home,
        bin_dir=bin_dir,
        runtime_dir=runtime_dir,
        runtime_dir_is_fallback=is_fallback,
        path_env=env.get("PATH", ""),
        engine_url=args.engine_url or engine_url(args.channel, arch, args.version),
        extras_url=args.extras_url or extras_url(args.channel, arch, args.version),
        engine_sha256=args.engine_sha256,
        extras_sha256=args.extras_sha256,
        unit_path=home / ".config" / "systemd" / "user" / UNIT_NAME,
        overwrite_unit=args.overwrite_unit,
        skip_start=args.skip_start,
        skip_iptables=args.skip_iptables,
        rootful_socket=Path(host_root) / "var" / "run" / "docker.sock",
        host_root=Path(host_root),
        facts=facts,
    )
    _debug(f"bin={config.bin_dir} runtime={config.runtime_dir} "
           f"(fallback={config.runtime_dir_is_fallback}) unit={config.unit_path}")
    return config

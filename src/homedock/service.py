"""
Service registrar.

With a systemd user manager: write ~/.config/systemd/user/docker.service if
it is not there yet, reload, start the service unless it is already
running, and show its status.  An existing unit file is never rewritten
unless --overwrite-unit is given; the service is still started.

Without systemd: print the command that starts the daemon by hand.  Both
paths use the same DaemonFlags.
"""

import sys
from typing import List, Optional

from jinja2 import Environment

from .executor import Executor, RunResult
from .install import InstallError
from .renderers import instructions as instructions_renderer
from .renderers import unit as unit_renderer
from .schema import DaemonFlags, InstallConfig, StorageDriver
from ._util import debug as _debug_fn

SERVICE = "docker"


def _debug(msg: str) -> None:
    _debug_fn("service", msg)


def daemon_flags(config: InstallConfig, driver: StorageDriver) -> DaemonFlags:
    """--iptables=false only when iptables is missing from PATH (or explicitly skipped)."""
    return DaemonFlags(
        experimental=True,
        iptables=config.facts.has_iptables and not config.skip_iptables,
        storage_driver=driver,
    )


def write_unit(
    config: InstallConfig,
    flags: DaemonFlags,
    env: Optional[Environment] = None,
) -> bool:
    """Write the unit file.  Returns False if an existing file was left alone."""
    path = config.unit_path
    if path.exists() and not config.overwrite_unit:
        _debug(f"{path} exists, leaving it untouched")
        return False
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(unit_renderer.render(unit_renderer.build_unit(config, flags), env))
    _debug(f"wrote {path}")
    return True


def _systemctl(executor: Executor, *args: str) -> RunResult:
    cmd: List[str] = ["systemctl", "--user"] + list(args)
    return executor(cmd)


def _require(result: RunResult, what: str) -> None:
    if result.returncode != 0:
        detail = (result.stderr or result.stdout).strip()
        raise InstallError(f"systemctl --user {what} failed (rc={result.returncode}): {detail}")


def register(
    config: InstallConfig,
    flags: DaemonFlags,
    executor: Executor,
    env: Optional[Environment] = None,
) -> bool:
    """Register and start the daemon.  Returns True if systemd now manages it."""
    if not config.facts.has_systemd:
        print(instructions_renderer.render_manual_start(config, flags), end="")
        return False

    if write_unit(config, flags, env):
        _require(_systemctl(executor, "daemon-reload"), "daemon-reload")

    if config.skip_start:
        print(f"# Skipping start; run: systemctl --user start {SERVICE}")
        return True

    if _systemctl(executor, "is-active", "--quiet", SERVICE).returncode != 0:
        print("# starting systemd service")
        _require(_systemctl(executor, "start", SERVICE), f"start {SERVICE}")

    status = _systemctl(executor, "status", "--no-pager", SERVICE)
    if status.stdout:
        print(status.stdout, end="" if status.stdout.endswith("\n") else "\n")
    if status.returncode != 0:
        print(f"WARNING: {SERVICE} service is not running; see "
              f"journalctl --user -u {SERVICE}", file=sys.stderr)
    return True

"""
Pipeline orchestrator: preflight, storage probe, download/extract, service
registration, instructions.  Strictly linear; each stage gets the frozen
config and whatever the previous stage returned.
"""

import sys

from .executor import Executor
from .inspectors.storage import select_driver
from .install import install_artifacts
from .preflight import run_preflight
from .renderers import instructions as instructions_renderer
from .schema import InstallConfig, PreflightStatus
from .service import daemon_flags, register
from ._util import debug as _debug_fn


def _debug(msg: str) -> None:
    _debug_fn("pipeline", msg)


def verify_daemon(config: InstallConfig, executor: Executor) -> bool:
    """Run `docker info` against the new daemon.  Failure is only a warning."""
    result = executor([str(config.bin_dir / "docker"), "--host", config.docker_host, "info"])
    if result.returncode == 0:
        print(result.stdout, end="" if result.stdout.endswith("\n") else "\n")
        return True
    print(
        f"WARNING: `docker info` failed (rc={result.returncode}); the daemon may still be "
        f"starting. {result.stderr.strip()}",
        file=sys.stderr,
    )
    return False


def run_install(config: InstallConfig, executor: Executor) -> int:
    """Run the whole install.  Returns the process exit status.

    Download, extraction and systemctl failures raise InstallError.
    """
    outcome = run_preflight(config)
    if outcome.status == PreflightStatus.FAILED:
        print(outcome.message, file=sys.stderr)
        if outcome.remediation:
            print("", file=sys.stderr)
            print(outcome.remediation, end="", file=sys.stderr)
        return 1
    if outcome.status == PreflightStatus.ALREADY_INSTALLED:
        print(outcome.message)
        print(instructions_renderer.render(config), end="")
        return 0

    driver = select_driver(executor, config.facts.distro_id)
    flags = daemon_flags(config, driver)
    _debug(f"daemon flags: {' '.join(flags.to_args())}")

    install_artifacts(config)
    supervised = register(config, flags, executor)
    if supervised and not config.skip_start:
        verify_daemon(config, executor)

    print(instructions_renderer.render(config), end="")
    return 0

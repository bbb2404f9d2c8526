"""Shell-comment instructions printed at the end of a run (and on re-runs)."""

import shutil
from typing import List

from ..schema import DaemonFlags, InstallConfig
from .unit import rootless_script


def bin_on_path(config: InstallConfig) -> bool:
    return str(config.bin_dir) in config.path_env.split(":")


def render_manual_start(config: InstallConfig, flags: DaemonFlags) -> str:
    """Foreground command for hosts without a systemd user manager."""
    cmd = " ".join([rootless_script(config)] + flags.to_args())
    lines = [
        "# systemd not detected, dockerd daemon needs to be started manually",
        "#",
        cmd,
        "#",
    ]
    return "\n".join(lines) + "\n"


def render_service_control() -> str:
    lines = [
        "#",
        "# To control docker service run:",
        "# systemctl --user (start|stop|restart) docker",
        "#",
    ]
    return "\n".join(lines) + "\n"


def render(config: InstallConfig) -> str:
    lines: List[str] = [f"# Docker binaries are installed in {config.bin_dir}"]

    found = shutil.which(config.daemon, path=config.path_env)
    if found != str(config.daemon_path):
        lines.append(
            f"# WARN: {config.daemon} is not in your current PATH or pointing to {config.daemon_path}"
        )
    lines.append(
        "# Make sure the following environment variables are set (or add them to ~/.bashrc):"
    )
    lines.append("")
    if not bin_on_path(config):
        lines.append(f"export PATH={config.bin_dir}:$PATH")
    lines.append(f"export DOCKER_HOST={config.docker_host}")
    lines.append("")

    text = "\n".join(lines) + "\n"
    if config.facts.has_systemd:
        text += render_service_control()
    return text

"""systemd user unit for the rootless daemon."""

from typing import Optional

from jinja2 import Environment

from ..schema import DaemonFlags, InstallConfig, ServiceUnit, UnitSection

_SYSTEM_PATH = "/usr/local/sbin:/usr/local/bin:/usr/sbin:/usr/bin:/sbin:/bin"


def rootless_script(config: InstallConfig) -> str:
    return str(config.bin_dir / "dockerd-rootless.sh")


def build_unit(config: InstallConfig, flags: DaemonFlags) -> ServiceUnit:
    exec_start = " ".join([rootless_script(config)] + flags.to_args())
    return ServiceUnit(sections=[
        UnitSection(name="Unit", entries=[
            ("Description", "Docker Application Container Engine (Rootless)"),
            ("Documentation", "https://docs.docker.com/go/rootless/"),
        ]),
        UnitSection(name="Service", entries=[
            ("Environment", f"PATH={config.bin_dir}:{_SYSTEM_PATH}"),
            ("ExecStart", exec_start),
            ("ExecReload", "/bin/kill -s HUP $MAINPID"),
            ("TimeoutSec", "0"),
            ("RestartSec", "2"),
            ("Restart", "always"),
            ("StartLimitBurst", "3"),
            ("StartLimitInterval", "60s"),
            ("LimitNOFILE", "infinity"),
            ("LimitNPROC", "infinity"),
            ("LimitCORE", "infinity"),
            ("TasksMax", "infinity"),
            ("Delegate", "yes"),
            ("Type", "simple"),
        ]),
        UnitSection(name="Install", entries=[
            ("WantedBy", "default.target"),
        ]),
    ])


def render(unit: ServiceUnit, env: Optional[Environment] = None) -> str:
    if env is None:
        from . import make_env
        env = make_env()
    return env.get_template("systemd-unit.j2").render(unit=unit)

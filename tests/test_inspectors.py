"""
Tests for host inspectors using fixture files under tmp host roots.
No subprocess or real host required.
"""

from pathlib import Path
from unittest.mock import patch

import pytest

from conftest import RecordingExecutor, fail, has, ok
from homedock.inspectors import run_all
from homedock.inspectors.host import distro_id, machine_arch, probe_systemd, read_os_release
from homedock.inspectors.storage import probe_overlay, select_driver
from homedock.inspectors.userns import (
    check_max_user_namespaces,
    check_userns_clone,
    has_subid_range,
    next_subid_start,
)
from homedock.schema import Capability, StorageDriver


def _write(root: Path, rel: str, text: str) -> None:
    p = root / rel
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(text)


def _fake_bin(d: Path, *names: str) -> None:
    d.mkdir(parents=True, exist_ok=True)
    for name in names:
        p = d / name
        p.write_text("#!/bin/sh\n")
        p.chmod(0o755)


# ---------------------------------------------------------------------------
# os-release / arch
# ---------------------------------------------------------------------------

def test_read_os_release(tmp_path):
    _write(tmp_path, "etc/os-release", 'NAME="Ubuntu"\nID=ubuntu\n# comment\nVERSION_ID="24.04"\n')
    data = read_os_release(tmp_path)
    assert data["ID"] == "ubuntu"
    assert data["VERSION_ID"] == "24.04"
    assert distro_id(tmp_path) == "ubuntu"


def test_distro_id_missing_file(tmp_path):
    assert distro_id(tmp_path) == ""


@pytest.mark.parametrize("machine,expected", [
    ("x86_64", "x86_64"),
    ("AMD64", "x86_64"),
    ("arm64", "aarch64"),
    ("armv7l", "armhf"),
    ("s390x", "s390x"),
])
def test_machine_arch(machine, expected):
    with patch("homedock.inspectors.host.platform.machine", return_value=machine):
        assert machine_arch() == expected


# ---------------------------------------------------------------------------
# systemd
# ---------------------------------------------------------------------------

def test_probe_systemd_present():
    ex = RecordingExecutor([(has("show-environment"), ok("PATH=/usr/bin\n"))])
    assert probe_systemd(ex) == Capability.PRESENT
    assert ex.calls == [["systemctl", "--user", "show-environment"]]


def test_probe_systemd_no_bus():
    ex = RecordingExecutor([(has("show-environment"), fail(1, "Failed to connect to bus"))])
    assert probe_systemd(ex) == Capability.ABSENT


def test_probe_systemd_not_installed():
    ex = RecordingExecutor([(has("systemctl"), fail(127))])
    assert probe_systemd(ex) == Capability.ABSENT


# ---------------------------------------------------------------------------
# user namespaces
# ---------------------------------------------------------------------------

def test_userns_clone_knob_absent_means_allowed(tmp_path):
    assert check_userns_clone(tmp_path) == Capability.PRESENT


def test_userns_clone_disabled(tmp_path):
    _write(tmp_path, "proc/sys/kernel/unprivileged_userns_clone", "0\n")
    assert check_userns_clone(tmp_path) == Capability.ABSENT


def test_userns_clone_enabled(tmp_path):
    _write(tmp_path, "proc/sys/kernel/unprivileged_userns_clone", "1\n")
    assert check_userns_clone(tmp_path) == Capability.PRESENT


def test_max_user_namespaces_zero(tmp_path):
    _write(tmp_path, "proc/sys/user/max_user_namespaces", "0\n")
    assert check_max_user_namespaces(tmp_path) == Capability.ABSENT


def test_max_user_namespaces_positive(tmp_path):
    _write(tmp_path, "proc/sys/user/max_user_namespaces", "63413\n")
    assert check_max_user_namespaces(tmp_path) == Capability.PRESENT


_SUBUID = """\
# managed by useradd
bob:100000:65536
alice:165536:65536
1002:231072:65536
carol:296608:0
"""


@pytest.mark.parametrize("user,uid,expected", [
    ("alice", 1000, True),
    ("", 1002, True),
    ("dave", 1002, True),
    ("carol", 1003, False),
    ("eve", 1004, False),
])
def test_has_subid_range(user, uid, expected):
    assert has_subid_range(_SUBUID, user, uid) is expected


def test_has_subid_range_no_file():
    assert has_subid_range(None, "alice", 1000) is False


def test_next_subid_start_past_existing_ranges():
    assert next_subid_start(_SUBUID) == 296608


def test_next_subid_start_empty_file():
    assert next_subid_start(None) == 100000
    assert next_subid_start("# nothing\n") == 100000


# ---------------------------------------------------------------------------
# run_all
# ---------------------------------------------------------------------------

def _patched_linux(euid=1000):
    return (
        patch("homedock.inspectors.host.platform.system", return_value="Linux"),
        patch("homedock.inspectors.host.os.geteuid", return_value=euid),
        patch("homedock.inspectors.host.username", return_value="alice"),
    )


def test_run_all_linux(tmp_path):
    _write(tmp_path, "etc/os-release", "ID=debian\n")
    _write(tmp_path, "etc/subuid", "alice:100000:65536\n")
    _write(tmp_path, "proc/sys/kernel/unprivileged_userns_clone", "0\n")
    bindir = tmp_path / "usr/bin"
    _fake_bin(bindir, "newuidmap", "newgidmap")
    ex = RecordingExecutor([(has("show-environment"), ok())])

    p1, p2, p3 = _patched_linux()
    with p1, p2, p3:
        facts = run_all(tmp_path, ex, {"PATH": str(bindir)})

    assert facts.platform == "Linux"
    assert facts.euid == 1000
    assert facts.distro_id == "debian"
    assert facts.systemd == Capability.PRESENT
    assert facts.iptables == Capability.ABSENT
    assert facts.newuidmap == Capability.PRESENT
    assert facts.newgidmap == Capability.PRESENT
    assert facts.userns_clone == Capability.ABSENT
    assert facts.user_namespaces == Capability.PRESENT
    assert facts.subuid == Capability.PRESENT
    assert facts.subgid == Capability.ABSENT
    assert facts.subuid_start == 165536
    assert facts.subgid_start == 100000


def test_run_all_non_linux_skips_probes(tmp_path):
    ex = RecordingExecutor()
    with patch("homedock.inspectors.host.platform.system", return_value="Darwin"), \
         patch("homedock.inspectors.host.os.geteuid", return_value=501):
        facts = run_all(tmp_path, ex, {"PATH": "/usr/bin"})
    assert facts.platform == "Darwin"
    assert ex.calls == []
    assert facts.systemd == Capability.ABSENT


# ---------------------------------------------------------------------------
# storage driver
# ---------------------------------------------------------------------------

def test_probe_overlay_ok_and_scratch_removed():
    ex = RecordingExecutor([(has("unshare"), ok())])
    assert probe_overlay(ex) is True
    cmd = ex.calls[0]
    assert cmd[:4] == ["unshare", "--user", "--map-root-user", "--mount"]
    assert "overlay" in cmd
    merged = Path(cmd[-1])
    assert merged.name == "merged"
    assert not merged.parent.exists()


def test_probe_overlay_mount_fails():
    ex = RecordingExecutor([(has("unshare"), fail(32, "mount: permission denied"))])
    assert probe_overlay(ex) is False


def test_probe_overlay_unshare_missing():
    ex = RecordingExecutor([(has("unshare"), fail(127))])
    assert probe_overlay(ex) is None


def test_select_driver_overlay():
    ex = RecordingExecutor([(has("unshare"), ok())])
    assert select_driver(ex, "fedora") == StorageDriver.OVERLAY2


def test_select_driver_mount_failure_falls_back_to_vfs():
    ex = RecordingExecutor([(has("unshare"), fail(32))])
    assert select_driver(ex, "ubuntu") == StorageDriver.VFS


@pytest.mark.parametrize("distro,expected", [
    ("ubuntu", StorageDriver.OVERLAY2),
    ("fedora", StorageDriver.VFS),
    ("", StorageDriver.VFS),
])
def test_select_driver_distro_heuristic_when_probe_cannot_run(distro, expected):
    ex = RecordingExecutor([(has("unshare"), fail(127))])
    assert select_driver(ex, distro) == expected

"""Shared utilities for homedock: debug logging, safe filesystem helpers."""

import os
import shutil
import signal
import sys
import tempfile
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

_DEBUG = bool(os.environ.get("HOMEDOCK_DEBUG", ""))

# SIGINT already raises KeyboardInterrupt; these would otherwise kill the
# process without unwinding.
_EXIT_SIGNALS = tuple(
    getattr(signal, name) for name in ("SIGTERM", "SIGHUP") if hasattr(signal, name)
)


def debug(label: str, msg: str) -> None:
    """Print a debug message to stderr when HOMEDOCK_DEBUG is set."""
    if _DEBUG:
        print(f"[homedock] {label}: {msg}", file=sys.stderr)


def safe_read(p: Path, label: str = "") -> Optional[str]:
    """Read a text file, returning None when it is missing or unreadable."""
    try:
        return p.read_text()
    except (PermissionError, OSError) as exc:
        if label:
            debug(label, f"cannot read {p}: {exc}")
        return None


def is_writable(p: Path) -> bool:
    """True if *p* exists and the current user may write to it."""
    return p.exists() and os.access(str(p), os.W_OK)


def owner_uid(p: Path) -> int:
    """Owner of *p* itself, not of a symlink target."""
    return p.lstat().st_uid


def _raise_exit(signum, frame) -> None:
    raise SystemExit(128 + signum)


@contextmanager
def scratch_dir(prefix: str = "homedock-") -> Iterator[Path]:
    """Yield a fresh temporary directory that is removed on every exit path.

    While the directory is held, SIGTERM and SIGHUP raise SystemExit so the
    cleanup below still runs when the installer is killed.
    """
    path = Path(tempfile.mkdtemp(prefix=prefix))
    debug("scratch", f"created {path}")
    previous = {}
    if threading.current_thread() is threading.main_thread():
        for sig in _EXIT_SIGNALS:
            previous[sig] = signal.signal(sig, _raise_exit)
    try:
        yield path
    finally:
        for sig, handler in previous.items():
            signal.signal(sig, handler)
        shutil.rmtree(path, ignore_errors=True)
        debug("scratch", f"removed {path}")

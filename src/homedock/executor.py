"""
Subprocess executor.

Probes, the installer and the service registrar never call subprocess
directly; they receive an Executor so tests can substitute fixture output.
"""

import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional

from ._util import debug as _debug_fn


@dataclass
class RunResult:
    stdout: str
    stderr: str
    returncode: int


Executor = Callable[..., RunResult]


def _debug(msg: str) -> None:
    _debug_fn("exec", msg)


def make_executor(timeout: Optional[int] = 120) -> Executor:
    """Return an executor that runs commands on the local host.

    A missing binary yields returncode 127 and a timeout yields 124, so
    callers only ever branch on the result.
    """

    def run(cmd: List[str], cwd: Optional[Path] = None) -> RunResult:
        _debug(" ".join(cmd))
        try:
            proc = subprocess.run(
                cmd,
                cwd=str(cwd) if cwd else None,
                capture_output=True,
                text=True,
                timeout=timeout,
            )
        except FileNotFoundError as exc:
            return RunResult(stdout="", stderr=str(exc), returncode=127)
        except subprocess.TimeoutExpired:
            return RunResult(stdout="", stderr=f"timed out after {timeout}s", returncode=124)
        return RunResult(stdout=proc.stdout, stderr=proc.stderr, returncode=proc.returncode)

    return run

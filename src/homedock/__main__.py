"""
CLI entry point. Parses args, probes the host and delegates to pipeline.
"""

import os
import sys
from pathlib import Path
from typing import Mapping, Optional

from .cli import parse_args
from .config import build_config
from .executor import Executor, make_executor
from .pipeline import run_install


def main(
    argv: Optional[list] = None,
    env: Optional[Mapping[str, str]] = None,
    executor: Optional[Executor] = None,
    host_root: Path = Path("/"),
) -> int:
    args = parse_args(argv)
    env = dict(os.environ) if env is None else env
    executor = executor or make_executor()

    try:
        from .inspectors import run_all

        facts = run_all(host_root, executor, env)
        config = build_config(args, env, facts, host_root=host_root)
        return run_install(config, executor)
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())

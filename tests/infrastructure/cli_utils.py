"""
Utilities for working with CLI in tests.
"""

import os
import subprocess
import sys
from pathlib import Path


def run_cli(root: Path, *args: str) -> subprocess.CompletedProcess:
    """
    Runs tpl.cli with specified arguments in the given directory.

    Args:
        root: Working directory for command execution
        *args: Command line arguments for tpl.cli

    Returns:
        CompletedProcess with execution results
    """
    env = os.environ.copy()
    env.pop("TPL_DEBUG", None)
    project_root = str(Path(__file__).resolve().parents[2])
    env["PYTHONPATH"] = os.pathsep.join(p for p in (project_root, env.get("PYTHONPATH")) if p)
    return subprocess.run(
        [sys.executable, "-m", "tpl.cli", *args],
        cwd=root, env=env, capture_output=True, text=True, encoding="utf-8"
    )


__all__ = ["run_cli"]

"""GitHub Actions workflow-command helpers.

Docs: https://docs.github.com/en/actions/using-workflows/workflow-commands-for-github-actions
"""

from __future__ import annotations

import os
import sys
import uuid
from collections.abc import Mapping
from pathlib import Path
from typing import TextIO


def escape_data(message: str) -> str:
    """Escape a workflow-command message so it stays on one line."""
    return message.replace("%", "%25").replace("\r", "%0D").replace("\n", "%0A")


def set_failed(message: str, stream: TextIO | None = None) -> None:
    """Emit an ``::error::`` annotation. The caller sets the exit code."""
    out = stream or sys.stdout
    out.write(f"::error::{escape_data(message)}\n")
    out.flush()


def _make_delimiter(body: str) -> str:
    delimiter = f"GITHUB_OUTPUT_{uuid.uuid4().hex}"
    while delimiter in body:
        delimiter = f"GITHUB_OUTPUT_{uuid.uuid4().hex}"
    return delimiter


def set_outputs(
    outputs: Mapping[str, str],
    environ: Mapping[str, str] | None = None,
) -> bool:
    """Append step outputs to the file named by GITHUB_OUTPUT.

    Multi-line values use the heredoc form with a random delimiter.

    Returns:
        False when GITHUB_OUTPUT is not set (not running in Actions).
    """
    env = os.environ if environ is None else environ
    output_path = env.get("GITHUB_OUTPUT")
    if not output_path:
        return False

    with Path(output_path).open("a", encoding="utf-8") as out:
        for name, value in outputs.items():
            if "\n" in value:
                delimiter = _make_delimiter(value)
                out.write(f"{name}<<{delimiter}\n{value}\n{delimiter}\n")
            else:
                out.write(f"{name}={value}\n")
    return True

"""Run an approved command in the user's shell."""
from __future__ import annotations

import asyncio
import logging
import os
from pathlib import Path
from typing import Optional

from th.client.errors import ExecutionError

logger = logging.getLogger(__name__)

SHELL = "bash"


async def execute_command(command: str, cwd: Optional[Path] = None) -> int:
    """
    Run a command through ``bash -lc`` with the terminal attached.

    Output goes straight to the user's terminal rather than being captured,
    so interactive commands behave normally.

    Returns:
        The command's exit code

    Raises:
        ExecutionError: bash could not be started or the directory is missing
    """
    workdir = Path(cwd) if cwd else Path.cwd()
    if not workdir.is_dir():
        raise ExecutionError(f"Working directory not found: {workdir}")

    logger.debug(f"Executing in {workdir}: {command}")
    try:
        process = await asyncio.create_subprocess_exec(
            SHELL,
            "-lc",
            command,
            cwd=str(workdir),
            env=os.environ.copy(),
        )
    except OSError as e:
        raise ExecutionError(f"Could not start {SHELL}: {e}") from e

    return await process.wait()

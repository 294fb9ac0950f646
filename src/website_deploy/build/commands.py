"""Subprocess wrappers for the external static-site toolchain."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

from ..errors import BuildCommandError
from ..models import StepOutcome

logger = logging.getLogger(__name__)

PACKAGE_MANIFEST = 'package.json'
INSTALL_COMMAND = 'npm install'


async def _run_shell(command: str, cwd: Path) -> tuple[int, str, str]:
    proc = await asyncio.create_subprocess_shell(
        command,
        cwd=str(cwd),
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )
    stdout, stderr = await proc.communicate()
    return (
        proc.returncode if proc.returncode is not None else -1,
        stdout.decode('utf-8', errors='replace'),
        stderr.decode('utf-8', errors='replace'),
    )


async def run_build_command(command: str, cwd: Path) -> str:
    """Run the user's build command in ``cwd`` and return its stdout.

    Raises:
        BuildCommandError: On non-zero exit, with stdout/stderr verbatim.
    """
    logger.info('Running build command: %s', command, extra={'cwd': str(cwd)})
    returncode, stdout, stderr = await _run_shell(command, cwd)
    if returncode != 0:
        raise BuildCommandError(command, returncode, stdout, stderr)
    return stdout


async def install_dependencies(project_path: Path) -> StepOutcome:
    """Install toolchain dependencies when a package manifest is present.

    Best effort: failures are reported in the outcome, never raised.
    """
    if not (project_path / PACKAGE_MANIFEST).is_file():
        return StepOutcome(name='install_dependencies', ok=True, detail='no package manifest')

    logger.info(INSTALL_COMMAND, extra={'cwd': str(project_path)})
    try:
        returncode, _, stderr = await _run_shell(INSTALL_COMMAND, project_path)
    except OSError as exc:
        return StepOutcome(name='install_dependencies', ok=False, detail=str(exc))

    if returncode != 0:
        return StepOutcome(
            name='install_dependencies',
            ok=False,
            detail=f'exit {returncode}: {stderr.strip()[:200]}',
        )
    return StepOutcome(name='install_dependencies', ok=True)

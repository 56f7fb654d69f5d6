"""Subprocess wrapper used by every ZimbraKit service."""

import logging
import os
import shlex
import subprocess
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import TextIO

from zimbrakit.errors import ExternalCommandError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CommandResult:
    """Outcome of a finished command."""

    argv: list[str]
    returncode: int
    stdout: str
    stderr: str


def format_argv(argv: Sequence[str]) -> str:
    return " ".join(shlex.quote(str(a)) for a in argv)


def run_command(
    argv: Sequence[str | Path],
    *,
    check: bool = True,
    capture: bool = True,
    env: Mapping[str, str] | None = None,
    cwd: Path | None = None,
    timeout: int | None = None,
    stream: TextIO | None = None,
) -> CommandResult:
    """Run a command with consistent logging and error mapping.

    With capture=False the child inherits the terminal, which is what apt and
    the interactive Zimbra installer need; stdout/stderr are then empty.
    Passing stream sends the child's stdout there instead (stderr in JSON mode,
    so stdout stays a single JSON document).

    Raises:
        ExternalCommandError: If the binary is missing, the command times out,
            or (with check=True) it exits non-zero
    """
    argv_list = [str(a) for a in argv]
    logger.info(f"CMD {format_argv(argv_list)}")

    try:
        proc = subprocess.run(
            argv_list,
            capture_output=capture,
            stdout=None if capture else stream,
            text=True,
            cwd=cwd,
            env=dict(os.environ, **env) if env else None,
            timeout=timeout,
        )
    except FileNotFoundError:
        raise ExternalCommandError(
            f"Command not found: {argv_list[0]}",
            code="COMMAND_NOT_FOUND",
            suggestion=f"Install the package that provides '{argv_list[0]}'",
            argv=argv_list,
        )
    except subprocess.TimeoutExpired:
        raise ExternalCommandError(
            f"Command timed out after {timeout}s: {format_argv(argv_list)}",
            code="COMMAND_TIMEOUT",
            argv=argv_list,
        )

    stdout = proc.stdout or ""
    stderr = proc.stderr or ""
    if stdout:
        logger.debug(f"STDOUT {stdout.strip()}")
    if stderr:
        logger.debug(f"STDERR {stderr.strip()}")

    if check and proc.returncode != 0:
        detail = (stderr or stdout).strip()
        message = f"Command failed ({proc.returncode}): {format_argv(argv_list)}"
        if detail:
            message = f"{message}\n{detail}"
        logger.error(message)
        raise ExternalCommandError(
            message,
            argv=argv_list,
            returncode=proc.returncode,
        )

    return CommandResult(
        argv=argv_list,
        returncode=proc.returncode,
        stdout=stdout,
        stderr=stderr,
    )

"""
The external command effect: runs host shell commands for the evaluator.

This is an explicit, unsandboxed trust boundary. Command text may be computed
at runtime and is handed to the host shell as-is, with the interpreter's own
privileges. The dialect grammars are the only gate on what reaches it.
"""
from __future__ import annotations

import asyncio

from triglot.triglot_datatypes import ExternalCommandError


def _strip_trailing_newline(text: str) -> str:
    if text.endswith("\r\n"):
        return text[:-2]
    if text.endswith("\n"):
        return text[:-1]
    return text


async def run_command(command: str) -> str:
    """Run `command` through the host shell and return its standard output.

    The caller is blocked until the process exits. One trailing newline is
    stripped from the captured output. A non-zero exit status or a failure to
    spawn the shell raises ExternalCommandError.
    """
    try:
        proc = await asyncio.create_subprocess_shell(
            command,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except (OSError, ValueError) as e:
        # ValueError: text the OS cannot take, e.g. an embedded NUL byte
        raise ExternalCommandError(f"failed to execute command: {e}") from e

    stdout, stderr = await proc.communicate()
    out = stdout.decode("utf-8", errors="replace")
    err = stderr.decode("utf-8", errors="replace")
    if proc.returncode != 0:
        detail = _strip_trailing_newline(err)
        msg = f"command exited with status {proc.returncode}"
        if detail:
            msg = f"{msg}: {detail}"
        raise ExternalCommandError(msg, exit_code=proc.returncode, stderr=err)
    return _strip_trailing_newline(out)

import sys

import pytest
from triglot.triglot_shell import run_command, _strip_trailing_newline
from triglot.triglot_datatypes import ExternalCommandError

pytestmark = pytest.mark.skipif(sys.platform == "win32", reason="uses a POSIX shell")


@pytest.mark.parametrize("raw, expected", [
    ("out\n", "out"),
    ("out\r\n", "out"),
    ("out\n\n", "out\n"),
    ("out", "out"),
    ("", ""),
])
def test_strip_trailing_newline(raw, expected):
    assert _strip_trailing_newline(raw) == expected

@pytest.mark.asyncio
async def test_run_command_captures_stdout():
    assert await run_command("echo hello") == "hello"

@pytest.mark.asyncio
async def test_run_command_strips_only_one_newline():
    assert await run_command("printf 'a\\n\\n'") == "a\n"

@pytest.mark.asyncio
async def test_run_command_nonzero_exit():
    with pytest.raises(ExternalCommandError) as excinfo:
        await run_command("echo oops >&2; exit 3")
    err = excinfo.value
    assert err.exit_code == 3
    assert "oops" in err.stderr
    assert err.message == "command exited with status 3: oops"
    assert err.kind == "ExternalCommandError"

@pytest.mark.asyncio
async def test_run_command_unknown_program():
    with pytest.raises(ExternalCommandError) as excinfo:
        await run_command("definitely-not-a-real-program-xyz")
    assert excinfo.value.exit_code == 127

@pytest.mark.asyncio
async def test_run_command_rejects_unspawnable_text():
    with pytest.raises(ExternalCommandError, match="failed to execute command"):
        await run_command("echo a\x00b")

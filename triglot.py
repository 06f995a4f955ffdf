
import asyncio
import sys
from pathlib import Path

from triglot.triglot_runtime import ScriptRunner
from triglot.triglot_printer import Printer
from triglot.triglot_codegen import MODES, generate

EXTENSION_DIALECTS = {".pi": "pi", ".rho": "rho", ".tau": "tau"}
BLOCK_OPENERS = ("for ", "while ", "if ")

HELP = """Commands:
  :pi  :rho  :tau          switch dialect
  :gen <path> <mode>       generate proxy/agent stubs for a file
  :help, :h                show this help
  :quit, :q                leave the REPL
In rho and tau, a line opening a block (for, while, if) keeps reading
until an empty line."""

# A basic awaitable input prompt.
async def ainput(prompt: str) -> str:
    loop = asyncio.get_running_loop()
    sys.stdout.write(prompt)
    sys.stdout.flush()
    return await loop.run_in_executor(None, sys.stdin.readline)

def print_result(result, printer: Printer):
    # Print side effects (from `emit` / `-->`)
    for effect in result.side_effects:
        if effect.get('topics') == ['stdout']:
            print(effect.get('message', ''))
    if result.status == 'error':
        print(result.format_error(), file=sys.stderr)
        return
    print(printer.pformat(result.value))

async def run_script_file(file_path: str):
    """Run a triglot script file non-interactively and exit with appropriate status."""
    p = Path(file_path)
    dialect = EXTENSION_DIALECTS.get(p.suffix, "rho")
    runner = ScriptRunner(dialect=dialect)
    printer = Printer()
    try:
        source = p.read_text(encoding="utf-8")
    except FileNotFoundError:
        print(f"Error: file not found: {file_path}", file=sys.stderr)
        raise SystemExit(1)
    result = await runner.handle_script(source)
    print_result(result, printer)
    if result.status == 'error':
        raise SystemExit(1)

def run_gen_command(args):
    if len(args) != 2:
        print(f"usage: :gen <path> <{'|'.join(MODES)}>", file=sys.stderr)
        return
    res = generate(args[0], args[1])
    if not res.ok:
        print(f"gen failed: {res.error}", file=sys.stderr)
        return
    print(f"wrote {res.header_path}")
    print(f"wrote {res.impl_path}")

async def read_block(first_line: str) -> str:
    """Keeps reading lines after a block header until an empty line."""
    lines = [first_line.rstrip("\r\n")]
    while True:
        raw = await ainput(".. ")
        if raw == "" or not raw.strip():
            break
        lines.append(raw.rstrip("\r\n"))
    return "\n".join(lines)

async def main():
    """Run a script file when provided, otherwise start the interactive REPL."""
    if len(sys.argv) > 1:
        arg = sys.argv[1]
        if not arg.startswith("-"):
            await run_script_file(arg)
            return

    print("triglot REPL v0.1 (pi, rho, tau)")
    print("Type :help for commands, :quit or Ctrl+D to quit.")

    # Setup
    runner = ScriptRunner(dialect="pi")
    printer = Printer()

    # REPL Loop
    while True:
        try:
            raw = await ainput(f"{runner.dialect}> ")
            if raw == "":
                raise EOFError
            line = raw.strip()

            if not line:
                continue

            if line.startswith(":"):
                command, *args = line.split()
                match command:
                    case ":quit" | ":q":
                        break
                    case ":help" | ":h":
                        print(HELP)
                    case ":pi" | ":rho" | ":tau":
                        runner.set_dialect(command[1:])
                        print(f"dialect: {runner.dialect}")
                    case ":gen":
                        run_gen_command(args)
                    case _:
                        print(f"unknown command {command}, try :help", file=sys.stderr)
                continue

            source = line
            if runner.dialect != "pi" and line.startswith(BLOCK_OPENERS):
                source = await read_block(line)

            result = await runner.handle_script(source)
            print_result(result, printer)

        except EOFError:
            print("\nExiting.")
            break
        except Exception as e:
            print(f"Error: {e}", file=sys.stderr)

if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        print("\nExiting.")

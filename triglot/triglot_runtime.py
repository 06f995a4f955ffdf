# triglot_runtime.py

from dataclasses import dataclass, field
from typing import Any, Dict, List, Literal as TypingLiteral, Optional

from triglot.triglot_datatypes import Scope, Node, TriglotError, ReaderError
from triglot.triglot_interpreter import Evaluator
from triglot.triglot_readers import DIALECTS, make_reader

# ===================================================================
# Script Execution
# ===================================================================


@dataclass
class ExecutionResult:
    """The structured result of one top-level evaluation."""
    status: TypingLiteral['success', 'error']
    value: Any = None
    error_kind: Optional[str] = None
    error_message: Optional[str] = None
    side_effects: List[Dict] = field(default_factory=list)

    def format_error(self) -> str:
        """Formats an error as `<Kind>: <message>`."""
        if self.status != 'error':
            return ""
        msg = str(self.error_message or "Unknown error")
        if self.error_kind:
            return f"{self.error_kind}: {msg}"
        return msg


class ScriptRunner:
    """Reads and evaluates triglot source against one long-lived session.

    The root scope and the continuation stack survive across calls, including
    calls that fail: an error aborts only the current input.
    """

    def __init__(self, dialect: str = "pi", command_runner=None):
        self.root_scope = Scope()
        self.evaluator = Evaluator(command_runner=command_runner)
        self.readers = {name: make_reader(name) for name in DIALECTS}
        self.dialect = None
        self.set_dialect(dialect)

    def set_dialect(self, dialect: str) -> None:
        if dialect not in self.readers:
            raise ValueError(f"unknown dialect {dialect!r}, expected one of {', '.join(DIALECTS)}")
        self.dialect = dialect

    def _error(self, kind: str, message: str) -> ExecutionResult:
        formatted = f"{kind}: {message}"
        self.evaluator.side_effects.append({'topics': ['stderr'], 'message': formatted})
        return ExecutionResult(
            status='error',
            error_kind=kind,
            error_message=message,
            side_effects=self.evaluator.side_effects,
        )

    async def handle_script(self, source_code: str, dialect: Optional[str] = None) -> ExecutionResult:
        """The main entry point to execute source text in the current (or given) dialect."""
        # Clear side effects for each run
        self.evaluator.side_effects = []
        reader = self.readers.get(dialect or self.dialect)
        if reader is None:
            return self._error("ValueError", f"unknown dialect {dialect!r}")

        # 1. Read
        try:
            nodes = reader.read(source_code)
        except ReaderError as e:
            return self._error("ParseError", e.msg or str(e))

        # 2. Evaluate
        return await self._run(nodes)

    async def evaluate(self, node: Node) -> ExecutionResult:
        """Evaluates an already-built expression tree in the session scope."""
        self.evaluator.side_effects = []
        return await self._run([node])

    async def _run(self, nodes: List[Node]) -> ExecutionResult:
        result = None
        try:
            for node in nodes:
                result = await self.evaluator.eval(node, self.root_scope)
        except TriglotError as e:
            return self._error(e.kind, e.message)
        except Exception as e:
            self.evaluator._dbg("internal error at", self.evaluator.current_node)
            return self._error("InternalError", str(e))
        return ExecutionResult(
            status='success',
            value=result,
            side_effects=self.evaluator.side_effects,
        )

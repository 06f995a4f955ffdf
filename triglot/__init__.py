from triglot.triglot_datatypes import (
    Color, Map, Future, Continuation, Scope,
    PENDING, Resolved, Rejected,
    TriglotError, ReaderError,
)
from triglot.triglot_interpreter import Evaluator, ContinuationStack
from triglot.triglot_printer import Printer
from triglot.triglot_readers import DIALECTS, make_reader
from triglot.triglot_runtime import ScriptRunner, ExecutionResult

__version__ = "0.1.0"

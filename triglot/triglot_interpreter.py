"""
The core triglot interpreter: the Evaluator and its ContinuationStack.
"""
import os
import sys
from typing import Any, Callable, Dict, List, Optional

from triglot import triglot_ops as ops
from triglot.triglot_codegen import generate
from triglot.triglot_datatypes import (
    Scope, Map, Future, Continuation, Color, Resolved, Rejected,
    TriglotError, TypeMismatch, FutureRejected,
    Node, Literal, ColorLiteral, ArrayLiteral, MapLiteral, BinaryOp, Scale, Mix,
    VarRef, Assign, Block, If, ForLoop, WhileLoop,
    Resume, Break, Continue, Capture, Compose, Choice,
    Async, Await, Defer, Settle, Index, Command, Emit, Generate,
)
from triglot.triglot_printer import Printer
from triglot.triglot_shell import run_command

BINARY_OPS: Dict[str, Callable[[Any, Any], Any]] = {
    "+": ops.add,
    "-": ops.sub,
    "*": ops.mul,
    "/": ops.div,
    "<": ops.less_than,
    ">": ops.greater_than,
    "==": ops.equals,
    "blend": ops.blend,
}


class ContinuationStack:
    """The session's deferred computations, resumed last-in first-out."""

    def __init__(self):
        self._entries: List[Continuation] = []

    def push(self, cont: Continuation) -> None:
        if not isinstance(cont, Continuation):
            raise TypeMismatch(f"only continuations can be pushed, got {ops.type_name(cont)}")
        self._entries.append(cont)

    def pop(self) -> Optional[Continuation]:
        """Removes and returns the top entry, or None when the stack is empty."""
        if self._entries:
            return self._entries.pop()
        return None

    def peek(self) -> Optional[Continuation]:
        return self._entries[-1] if self._entries else None

    def clear(self) -> int:
        """Drops every entry and returns how many were dropped."""
        dropped = len(self._entries)
        self._entries.clear()
        return dropped

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self):
        return iter(self._entries)

    def __repr__(self) -> str:
        return f"<ContinuationStack depth={len(self._entries)}>"


class Evaluator:
    """The triglot execution engine."""

    def __init__(self, command_runner=None):
        self.continuations = ContinuationStack()
        # Output records shaped like {'topics': [...], 'message': str}
        self.side_effects: List[Dict[str, Any]] = []
        self.current_node: Optional[Node] = None
        self.run_command = command_runner or run_command

    def _dbg(self, *parts):
        if os.environ.get("TRIGLOT_DEBUG"):
            print("[DBG]", *parts, file=sys.stderr)

    def _max_loop_iters(self) -> Optional[int]:
        raw = os.environ.get("TRIGLOT_MAX_LOOP_ITERS")
        if not raw:
            return None
        try:
            return int(raw)
        except ValueError:
            return None

    async def eval(self, node: Node, scope: Scope) -> Any:
        """Public entry point for evaluation."""
        self.current_node = node
        return await self._eval(node, scope)

    # -----------------------------------------------------------------
    # Continuation stack operations
    # -----------------------------------------------------------------

    async def resume(self) -> Any:
        """Runs the top continuation in its captured scope; Unit when there is none."""
        cont = self.continuations.pop()
        if cont is None:
            return None
        self._dbg("resume", cont.expr, "depth", len(self.continuations))
        return await self._eval(cont.expr, cont.scope)

    def break_flow(self) -> None:
        """Drops every pending continuation. There is no protected base entry."""
        dropped = self.continuations.clear()
        self._dbg("break dropped", dropped)
        return None

    async def continue_with(self, cont: Any) -> Any:
        if not isinstance(cont, Continuation):
            raise TypeMismatch(f"continue expects a Continuation, got {ops.type_name(cont)}")
        self.continuations.push(cont)
        return await self.resume()

    # -----------------------------------------------------------------
    # Dispatcher
    # -----------------------------------------------------------------

    async def _eval(self, node: Node, scope: Scope) -> Any:
        """Recursive dispatcher for evaluating any expression node."""
        self.current_node = node
        match node:
            case Literal(value=value):
                return value

            case ColorLiteral(r=r, g=g, b=b):
                channels = []
                for channel in (r, g, b):
                    v = await self._eval(channel, scope)
                    if type(v) is not float:
                        raise TypeMismatch(f"color channel must be a Number, got {ops.type_name(v)}")
                    channels.append(v)
                return Color.saturated(*channels)

            case ArrayLiteral(items=items):
                out = []
                for item in items:
                    out.append(await self._eval(item, scope))
                return tuple(out)

            case MapLiteral(pairs=pairs):
                out = []
                for key_node, value_node in pairs:
                    key = await self._eval(key_node, scope)
                    value = await self._eval(value_node, scope)
                    out.append((key, value))
                return Map(out)

            case BinaryOp(op=op, left=left, right=right):
                func = BINARY_OPS.get(op)
                if func is None:
                    raise TypeMismatch(f"unknown operator {op!r}")
                lhs = await self._eval(left, scope)
                rhs = await self._eval(right, scope)
                return func(lhs, rhs)

            case Scale(target=target, factor=factor):
                color = await self._eval(target, scope)
                amount = await self._eval(factor, scope)
                return ops.scale(color, amount)

            case Mix(left=left, right=right, ratio=ratio):
                a = await self._eval(left, scope)
                b = await self._eval(right, scope)
                r = await self._eval(ratio, scope)
                return ops.mix(a, b, r)

            case VarRef(name=name):
                return scope.lookup(name)

            case Assign(name=name, value=value_node):
                value = await self._eval(value_node, scope)
                return scope.assign(name, value)

            case Block(body=body):
                inner = scope.child()
                result = None
                for expr in body:
                    result = await self._eval(expr, inner)
                return result

            case If(condition=condition, then=then, otherwise=otherwise):
                if ops.is_truthy(await self._eval(condition, scope)):
                    return await self._eval(then, scope)
                if otherwise is not None:
                    return await self._eval(otherwise, scope)
                return None

            case ForLoop():
                return await self._for(node, scope)

            case WhileLoop():
                return await self._while(node, scope)

            case Resume():
                return await self.resume()

            case Break():
                return self.break_flow()

            case Continue(target=target):
                return await self.continue_with(await self._eval(target, scope))

            case Capture(body=body):
                return Continuation(body, scope)

            case Compose(first=first, second=second):
                c1 = await self._eval(first, scope)
                c2 = await self._eval(second, scope)
                if not isinstance(c1, Continuation) or not isinstance(c2, Continuation):
                    raise TypeMismatch(
                        f"compose requires two continuations, got {ops.type_name(c1)} and {ops.type_name(c2)}"
                    )
                # c2 goes first so that c1 is resumed first
                self.continuations.push(c2)
                self.continuations.push(c1)
                return None

            case Choice(first=first, second=second):
                value = await self._eval(first, scope)
                if value is None:
                    return await self._eval(second, scope)
                return value

            case Async(body=body):
                try:
                    value = await self._eval(body, scope)
                except TriglotError as e:
                    self._dbg("async rejected:", e.kind, e.message)
                    return Future(Rejected(e.message))
                return Future(Resolved(value))

            case Await(target=target):
                value = await self._eval(target, scope)
                if not isinstance(value, Future):
                    return value
                return await self._await(value, scope)

            case Defer(body=body):
                future = Future()
                self.continuations.push(Continuation(Settle(future, body), scope))
                return future

            case Settle(future=future, body=body):
                try:
                    value = await self._eval(body, scope)
                except TriglotError as e:
                    future.reject(e.message)
                else:
                    future.resolve(value)
                return future

            case Index(target=target, key=key):
                container = await self._eval(target, scope)
                k = await self._eval(key, scope)
                return ops.index(container, k)

            case Command(text=text):
                command = await self._eval(text, scope)
                if not isinstance(command, str):
                    raise TypeMismatch(f"command must be Text, got {ops.type_name(command)}")
                self._dbg("run", command)
                return await self.run_command(command)

            case Emit(value=value_node):
                value = await self._eval(value_node, scope)
                if isinstance(value, tuple):
                    printer = Printer()
                    message = " ".join(printer.pformat(item) for item in value)
                    self.side_effects.append({'topics': ['stdout'], 'message': message})
                    return None
                return value

            case Generate(path=path, mode=mode):
                source = await self._eval(path, scope)
                kind = await self._eval(mode, scope)
                if not isinstance(source, str) or not isinstance(kind, str):
                    raise TypeMismatch(
                        f"gen expects Text path and mode, got {ops.type_name(source)} and {ops.type_name(kind)}"
                    )
                res = generate(source, kind)
                if not res.ok:
                    self.side_effects.append({'topics': ['stderr'], 'message': res.error})
                return Map([
                    ("ok", res.ok),
                    ("header", res.header_path),
                    ("implementation", res.impl_path),
                ])

        raise TypeMismatch(f"cannot evaluate {type(node).__name__}")

    # -----------------------------------------------------------------
    # Loops
    # -----------------------------------------------------------------

    async def _for(self, node: ForLoop, scope: Scope) -> Any:
        source = await self._eval(node.source, scope)
        if not isinstance(source, tuple):
            raise TypeMismatch(f"for expects an Array, got {ops.type_name(source)}")
        last = None
        for item in source:
            inner = scope.child()
            inner[node.var] = item
            last = await self._eval(node.body, inner)
        return last

    async def _while(self, node: WhileLoop, scope: Scope) -> None:
        max_iters = self._max_loop_iters()
        iter_count = 0
        while ops.is_truthy(await self._eval(node.condition, scope)):
            # Guard against accidental infinite loops
            if max_iters is not None and iter_count >= max_iters:
                raise RuntimeError("while: iteration limit exceeded")
            await self._eval(node.body, scope.child())
            iter_count += 1
        return None

    # -----------------------------------------------------------------
    # Futures
    # -----------------------------------------------------------------

    async def _await(self, future: Future, scope: Scope) -> Any:
        match future.state:
            case Resolved(value=value):
                return value
            case Rejected(message=message):
                raise FutureRejected(message)

        # Pending: queue a retry beneath the entry ahead of us, let that entry
        # run, then resume the retry.
        ahead = self.continuations.pop()
        if ahead is None:
            raise FutureRejected("future is still pending")
        retry = Continuation(Await(Literal(future)), scope)
        self.continuations.push(retry)
        self.continuations.push(ahead)
        await self.resume()
        while len(self.continuations) and self.continuations.peek() is not retry:
            await self.resume()
        if self.continuations.peek() is retry:
            return await self.resume()
        # The retry was dropped by a break.
        return await self._await(future, scope)

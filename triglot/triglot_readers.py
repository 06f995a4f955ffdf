"""
Front-end readers: turn pi, rho and tau source text into expression trees.

rho and tau share the lark grammar in grammar/infix.lark; tau additionally
admits the async/await/defer prefixes. pi is postfix and is read with an
operand stack, using the infix grammar only for literal tokens.
"""

import re
from pathlib import Path
from typing import List, Optional

from lark import Lark, Transformer
from lark.exceptions import LarkError, VisitError
from lark.indenter import Indenter

from triglot.triglot_datatypes import (
    ReaderError, Node,
    Literal, ColorLiteral, ArrayLiteral, MapLiteral, BinaryOp, Scale, Mix,
    VarRef, Assign, Block, If, ForLoop, WhileLoop,
    Resume, Break, Continue, Capture, Compose, Choice,
    Async, Await, Defer, Index, Command, Emit, Generate,
)

DIALECTS = ("pi", "rho", "tau")


class TabIndenter(Indenter):
    NL_type = '_NL'
    OPEN_PAREN_types = ['LPAR', 'LSQB', 'LBRACE']
    CLOSE_PAREN_types = ['RPAR', 'RSQB', 'RBRACE']
    INDENT_type = '_INDENT'
    DEDENT_type = '_DEDENT'
    tab_len = 4


_lark_parser: Optional[Lark] = None


def _get_parser() -> Lark:
    """Get the singleton Lark parser instance."""
    global _lark_parser
    if _lark_parser is None:
        grammar_path = Path(__file__).parent / "grammar" / "infix.lark"
        _lark_parser = Lark(
            grammar_path.read_text(encoding="utf-8"),
            parser="lalr",
            postlex=TabIndenter(),
            maybe_placeholders=True,
        )
    return _lark_parser


def splice_commands(text: str) -> Node:
    """Builds a Text node, splicing in the output of any `cmd` spans.

    `"dir: `pwd`"` reads as `"dir: " + run("pwd")`. Empty spans are dropped.
    """
    parts = text.split("`")
    if len(parts) == 1:
        return Literal(text)
    if len(parts) % 2 == 0:
        raise ReaderError(f"unterminated backtick in text {text!r}")
    pieces: List[Node] = []
    for i, part in enumerate(parts):
        if not part:
            continue
        pieces.append(Command(Literal(part)) if i % 2 else Literal(part))
    if not pieces:
        return Literal("")
    node = pieces[0]
    for piece in pieces[1:]:
        node = BinaryOp("+", node, piece)
    return node


class InfixTransformer(Transformer):
    """Builds expression nodes from the infix parse tree."""

    # name -> (arity, builder)
    CALLS = {
        "color": (3, lambda a: ColorLiteral(*a)),
        "blend": (2, lambda a: BinaryOp("blend", *a)),
        "scale": (2, lambda a: Scale(*a)),
        "mix": (3, lambda a: Mix(*a)),
        "compose": (2, lambda a: Compose(*a)),
        "choice": (2, lambda a: Choice(*a)),
        "run": (1, lambda a: Command(*a)),
        "emit": (1, lambda a: Emit(*a)),
        "gen": (2, lambda a: Generate(*a)),
    }

    def __init__(self, allow_async: bool):
        super().__init__()
        self.allow_async = allow_async

    def _async_only(self, keyword: str):
        if not self.allow_async:
            raise ReaderError(f"'{keyword}' is only available in the tau dialect")

    # Statements
    def start(self, children):
        return list(children)

    def suite(self, children):
        return Block(tuple(children))

    def for_stmt(self, children):
        name, source, body = children
        return ForLoop(str(name), source, body)

    def while_stmt(self, children):
        condition, body = children
        return WhileLoop(condition, body)

    def if_stmt(self, children):
        condition, then, otherwise = children
        return If(condition, then, otherwise)

    # Expressions
    def assign(self, children):
        name, value = children
        return Assign(str(name), value)

    def async_expr(self, children):
        self._async_only("async")
        return Async(children[0])

    def await_expr(self, children):
        self._async_only("await")
        return Await(children[0])

    def defer_expr(self, children):
        self._async_only("defer")
        return Defer(children[0])

    def continue_expr(self, children):
        return Continue(children[0])

    def capture_expr(self, children):
        return Capture(children[0])

    def lt(self, children):
        return BinaryOp("<", *children)

    def gt(self, children):
        return BinaryOp(">", *children)

    def eq(self, children):
        return BinaryOp("==", *children)

    def add(self, children):
        return BinaryOp("+", *children)

    def sub(self, children):
        return BinaryOp("-", *children)

    def mul(self, children):
        return BinaryOp("*", *children)

    def div(self, children):
        return BinaryOp("/", *children)

    def neg(self, children):
        operand = children[0]
        if isinstance(operand, Literal) and isinstance(operand.value, float):
            return Literal(-operand.value)
        return BinaryOp("-", Literal(0.0), operand)

    def index(self, children):
        target, key = children
        return Index(target, key)

    # Atoms
    def number(self, children):
        return Literal(float(children[0]))

    def string(self, children):
        return splice_commands(str(children[0])[1:-1])

    def true(self, children):
        return Literal(True)

    def false(self, children):
        return Literal(False)

    def unit(self, children):
        return Literal(None)

    def resume(self, children):
        return Resume()

    def brk(self, children):
        return Break()

    def command(self, children):
        return Command(Literal(str(children[0])[1:-1]))

    def var(self, children):
        return VarRef(str(children[0]))

    def call(self, children):
        name, args = str(children[0]), children[1] or []
        spec = self.CALLS.get(name)
        if spec is None:
            raise ReaderError(f"unknown form '{name}'")
        arity, build = spec
        if len(args) != arity:
            raise ReaderError(f"{name} expects {arity} arguments, got {len(args)}")
        return build(args)

    def array(self, children):
        return ArrayLiteral(tuple(children[0] or ()))

    def map(self, children):
        return MapLiteral(tuple(children))

    def args(self, children):
        return list(children)

    def pair(self, children):
        key, value = children
        return (key, value)


class InfixReader:
    """Reads rho (and, with allow_async, tau) source into a list of top-level nodes."""

    def __init__(self, allow_async: bool = False):
        self.allow_async = allow_async

    def read(self, source: str) -> List[Node]:
        text = source.strip("\n") + "\n"
        try:
            tree = _get_parser().parse(text)
        except LarkError as e:
            raise ReaderError(str(e)) from e
        try:
            return InfixTransformer(self.allow_async).transform(tree)
        except VisitError as e:
            if isinstance(e.orig_exc, ReaderError):
                raise e.orig_exc from None
            raise

    def read_expression(self, source: str) -> Node:
        nodes = self.read(source)
        if len(nodes) != 1:
            raise ReaderError(f"expected a single expression, got {len(nodes)}")
        return nodes[0]


_PI_OPEN = "([{"
_PI_CLOSE = ")]}"
_PI_QUOTES = "\"'`"


def _pi_tokens(line: str):
    """Splits a pi line on whitespace outside quotes and brackets.

    Quoted strings, commands, (nested) array/map literals and name(...) forms
    therefore stay whole. A token starting with `#` ends the line.
    """
    token = []
    depth = 0
    quote = None
    for ch in line:
        if quote:
            token.append(ch)
            if ch == quote:
                quote = None
            continue
        if ch.isspace() and depth == 0:
            if token:
                yield "".join(token)
                token = []
            continue
        if ch == "#" and not token and depth == 0:
            return
        token.append(ch)
        if ch in _PI_QUOTES:
            quote = ch
        elif ch in _PI_OPEN:
            depth += 1
        elif ch in _PI_CLOSE and depth > 0:
            depth -= 1
    if token:
        yield "".join(token)


_PI_NAME = re.compile(r'[A-Za-z_][A-Za-z0-9_]*')

_PI_BINARY = {
    "+": lambda a, b: BinaryOp("+", a, b),
    "-": lambda a, b: BinaryOp("-", a, b),
    "*": lambda a, b: BinaryOp("*", a, b),
    "/": lambda a, b: BinaryOp("/", a, b),
    "<": lambda a, b: BinaryOp("<", a, b),
    ">": lambda a, b: BinaryOp(">", a, b),
    "==": lambda a, b: BinaryOp("==", a, b),
    "blend": lambda a, b: BinaryOp("blend", a, b),
    "scale": Scale,
    "get": Index,
    "compose": Compose,
    "choice": Choice,
}

_PI_UNARY = {
    "-->": Emit,
    "continue": Continue,
    "capture": Capture,
    "run": Command,
}

_PI_NULLARY = {
    "resume": Resume,
    "break": Break,
    "true": lambda: Literal(True),
    "false": lambda: Literal(False),
    "unit": lambda: Literal(None),
}


class PostfixReader:
    """Reads pi (postfix/RPN) source: `3 4 +`, `5 "x" =`, `arr -->`."""

    def __init__(self):
        self._literals = InfixReader(allow_async=False)

    def _pop(self, stack: List[Node], count: int, word: str) -> List[Node]:
        if len(stack) < count:
            raise ReaderError(f"Not enough operands for {word}")
        operands = stack[-count:]
        del stack[-count:]
        return operands

    def read(self, source: str) -> List[Node]:
        """Each line is one statement and must reduce to at most one expression."""
        nodes: List[Node] = []
        for line in source.splitlines():
            stack: List[Node] = []
            for token in _pi_tokens(line):
                stack.append(self._word(token, stack))
            if len(stack) > 1:
                raise ReaderError(f"Stack has {len(stack)} values remaining")
            nodes.extend(stack)
        return nodes

    def _word(self, token: str, stack: List[Node]) -> Node:
        if token in _PI_BINARY:
            a, b = self._pop(stack, 2, token)
            return _PI_BINARY[token](a, b)
        if token in _PI_UNARY:
            (a,) = self._pop(stack, 1, token)
            return _PI_UNARY[token](a)
        if token in _PI_NULLARY:
            return _PI_NULLARY[token]()
        if token == "=":
            value, name = self._pop(stack, 2, token)
            if not isinstance(name, Literal) or not isinstance(name.value, str):
                raise ReaderError("Variable name must be a string")
            return Assign(name.value, value)
        if _PI_NAME.fullmatch(token):
            return VarRef(token)
        return self._literals.read_expression(token)


def make_reader(dialect: str):
    match dialect:
        case "pi":
            return PostfixReader()
        case "rho":
            return InfixReader(allow_async=False)
        case "tau":
            return InfixReader(allow_async=True)
    raise ValueError(f"unknown dialect {dialect!r}, expected one of {', '.join(DIALECTS)}")

"""
Defines the core data types for the triglot runtime.

This module provides the closed set of runtime values, the error kinds the
evaluator raises, the lexical Scope chain and the expression-tree nodes that
every front-end dialect (pi, rho, tau) produces.
"""

from __future__ import annotations

import collections.abc
import math
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, Optional, Tuple

# =================================================================
# Error kinds
# =================================================================

class TriglotError(Exception):
    """Base class for every recoverable evaluation failure."""
    kind = "Error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class TypeMismatch(TriglotError):
    kind = "TypeMismatch"


class DivisionByZero(TriglotError):
    kind = "DivisionByZero"

    def __init__(self, message: str = "division by zero"):
        super().__init__(message)


class IndexOutOfBounds(TriglotError):
    kind = "IndexOutOfBounds"

    def __init__(self, index: int, length: int):
        super().__init__(f"index {index} out of bounds for array of length {length}")
        self.index = index
        self.length = length


class KeyNotFound(TriglotError):
    kind = "KeyNotFound"

    def __init__(self, key: Any):
        from triglot.triglot_printer import Printer
        super().__init__(f"key {Printer().pformat(key)} not found in map")
        self.key = key


class UnboundVariable(TriglotError):
    kind = "UnboundVariable"

    def __init__(self, name: str):
        super().__init__(f"'{name}' is not bound")
        self.name = name


class ExternalCommandError(TriglotError):
    kind = "ExternalCommandError"

    def __init__(self, message: str, exit_code: Optional[int] = None, stderr: str = ""):
        super().__init__(message)
        self.exit_code = exit_code
        self.stderr = stderr


class FutureRejected(TriglotError):
    kind = "FutureRejected"


class ReaderError(SyntaxError):
    """Raised by a front-end reader when source text cannot become a tree."""
    pass


# =================================================================
# Runtime values
# =================================================================
#
# Number -> float, Text -> str, Boolean -> bool, Unit -> None,
# Array -> tuple. The remaining variants are the classes below.

@dataclass(frozen=True)
class Color:
    """An RGB color with 8-bit channels."""
    r: int
    g: int
    b: int

    def __post_init__(self):
        for channel in (self.r, self.g, self.b):
            if not isinstance(channel, int) or isinstance(channel, bool) or not 0 <= channel <= 255:
                raise TypeMismatch(f"color channel must be an integer in 0..255, got {channel!r}")

    @classmethod
    def saturated(cls, r: float, g: float, b: float) -> 'Color':
        """Builds a color, clamping each channel to 0..255 and truncating."""
        if any(math.isnan(c) for c in (r, g, b)):
            raise TypeMismatch("color channel is not a number (NaN)")
        return cls(*(int(min(max(c, 0.0), 255.0)) for c in (r, g, b)))

    def channels(self) -> Tuple[int, int, int]:
        return (self.r, self.g, self.b)

    def add(self, other: 'Color') -> 'Color':
        return Color(*(min(a + b, 255) for a, b in zip(self.channels(), other.channels())))

    def sub(self, other: 'Color') -> 'Color':
        return Color(*(max(a - b, 0) for a, b in zip(self.channels(), other.channels())))

    def scale(self, factor: float) -> 'Color':
        return Color.saturated(*(c * factor for c in self.channels()))

    def blend(self, other: 'Color') -> 'Color':
        # Nearest-integer average; halves round up.
        return Color(*((a + b + 1) // 2 for a, b in zip(self.channels(), other.channels())))

    def mix(self, other: 'Color', ratio: float) -> 'Color':
        ratio = min(max(ratio, 0.0), 1.0)
        inv = 1.0 - ratio
        return Color.saturated(*(a * inv + b * ratio for a, b in zip(self.channels(), other.channels())))


class Map(collections.abc.Sequence):
    """An ordered sequence of (key, value) pairs.

    This is not a hash table: lookup is a linear scan using value equality,
    duplicate keys are allowed and the first matching pair wins. Like every
    triglot value it is immutable; `extend` returns a new Map.
    """
    def __init__(self, pairs=()):
        self._pairs: Tuple[Tuple[Any, Any], ...] = tuple((k, v) for k, v in pairs)

    def __getitem__(self, index):
        return self._pairs[index]

    def __len__(self) -> int:
        return len(self._pairs)

    def __iter__(self) -> Iterator[Tuple[Any, Any]]:
        return iter(self._pairs)

    @property
    def pairs(self) -> Tuple[Tuple[Any, Any], ...]:
        return self._pairs

    def keys(self) -> Tuple[Any, ...]:
        return tuple(k for k, _ in self._pairs)

    def extend(self, pairs) -> 'Map':
        return Map(self._pairs + tuple(pairs))

    def __eq__(self, other):
        if not isinstance(other, Map):
            return NotImplemented
        return self._pairs == other._pairs

    def __hash__(self):
        return hash(self._pairs)

    def __repr__(self) -> str:
        return f"Map({list(self._pairs)!r})"


class Pending:
    """The state of a future that has not settled yet."""
    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "Pending"


PENDING = Pending()


@dataclass(frozen=True)
class Resolved:
    value: Any


@dataclass(frozen=True)
class Rejected:
    message: str


class Future:
    """A write-once holder for a FutureState.

    Futures are driven synchronously by the evaluator; there is no executor
    behind them. A future moves from Pending to Resolved or Rejected at most
    once.
    """
    def __init__(self, state: Any = PENDING):
        self._state = state

    @property
    def state(self):
        return self._state

    @property
    def is_pending(self) -> bool:
        return self._state is PENDING

    def settle(self, state) -> None:
        if not isinstance(state, (Resolved, Rejected)):
            raise TypeError(f"a future can only settle to Resolved or Rejected, not {state!r}")
        if not self.is_pending:
            raise ValueError(f"future already settled as {self._state!r}")
        self._state = state

    def resolve(self, value: Any) -> None:
        self.settle(Resolved(value))

    def reject(self, message: str) -> None:
        self.settle(Rejected(message))

    def __repr__(self) -> str:
        return f"Future({self._state!r})"


class Continuation:
    """A deferred computation: an expression closed over the scope it was captured in."""
    def __init__(self, expr: Any, scope: 'Scope'):
        self.expr = expr
        self.scope = scope

    def __repr__(self) -> str:
        return f"Continuation({self.expr!r})"


def to_value(obj: Any) -> Any:
    """Normalizes plain Python data into triglot values.

    Ints become Numbers (floats), lists become Arrays and dicts become Maps,
    recursively. Values that are already triglot values pass through.
    """
    match obj:
        case bool() | float() | str() | None:
            return obj
        case int():
            return float(obj)
        case list() | tuple():
            return tuple(to_value(x) for x in obj)
        case dict():
            return Map((to_value(k), to_value(v)) for k, v in obj.items())
        case Map():
            return Map((to_value(k), to_value(v)) for k, v in obj)
        case Color() | Future() | Continuation():
            return obj
    raise TypeMismatch(f"{type(obj).__name__} is not a triglot value")


# =================================================================
# Environment
# =================================================================

class Scope:
    """A lexical environment: name bindings plus an optional parent scope.

    Loop bodies and blocks each get a child scope. A child's bindings shadow
    its parent's and vanish with it; `assign` rebinds whichever scope in the
    chain already owns the name.
    """
    def __init__(self, parent: Optional['Scope'] = None):
        self.bindings: Dict[str, Any] = {}
        self.parent = parent

    def __setitem__(self, key: str, value: Any):
        if not isinstance(key, str):
            raise TypeError(f"Scope key must be a str, not {type(key)}")
        self.bindings[key] = value

    def __getitem__(self, key: str) -> Any:
        owner = self.find_owner(key)
        if owner is None:
            raise KeyError(f"'{key}'")
        return owner.bindings[key]

    def __contains__(self, key: Any) -> bool:
        return isinstance(key, str) and self.find_owner(key) is not None

    def find_owner(self, key: str) -> Optional['Scope']:
        """Finds the Scope in the lookup chain (self -> parent ...) that owns key."""
        scope = self
        while scope is not None:
            if key in scope.bindings:
                return scope
            scope = scope.parent
        return None

    def lookup(self, name: str) -> Any:
        owner = self.find_owner(name)
        if owner is None:
            raise UnboundVariable(name)
        return owner.bindings[name]

    def assign(self, name: str, value: Any) -> Any:
        owner = self.find_owner(name) or self
        owner[name] = value
        return value

    def child(self) -> 'Scope':
        return Scope(parent=self)

    def keys(self) -> collections.abc.KeysView:
        """Returns a view of keys in the current scope only."""
        return self.bindings.keys()

    def __repr__(self) -> str:
        keys = ', '.join(self.bindings.keys())
        parent_id = f", parent=#{id(self.parent)}" if self.parent else ""
        return f"<Scope bindings=[{keys}]{parent_id}>"


# =================================================================
# Expression tree
# =================================================================

class Node:
    """Base class for every expression-tree node."""
    pass


@dataclass
class Literal(Node):
    value: Any

    def __post_init__(self):
        self.value = to_value(self.value)


@dataclass
class ColorLiteral(Node):
    r: Node
    g: Node
    b: Node


@dataclass
class ArrayLiteral(Node):
    items: Tuple[Node, ...] = ()


@dataclass
class MapLiteral(Node):
    pairs: Tuple[Tuple[Node, Node], ...] = ()


@dataclass
class BinaryOp(Node):
    """`op` is one of + - * / < > == blend."""
    op: str
    left: Node
    right: Node


@dataclass
class Scale(Node):
    target: Node
    factor: Node


@dataclass
class Mix(Node):
    left: Node
    right: Node
    ratio: Node


@dataclass
class VarRef(Node):
    name: str


@dataclass
class Assign(Node):
    name: str
    value: Node


@dataclass
class Block(Node):
    body: Tuple[Node, ...] = ()


@dataclass
class If(Node):
    condition: Node
    then: Node
    otherwise: Optional[Node] = None


@dataclass
class ForLoop(Node):
    var: str
    source: Node
    body: Node


@dataclass
class WhileLoop(Node):
    condition: Node
    body: Node


@dataclass
class Resume(Node):
    pass


@dataclass
class Break(Node):
    pass


@dataclass
class Continue(Node):
    target: Node


@dataclass
class Capture(Node):
    body: Node


@dataclass
class Compose(Node):
    first: Node
    second: Node


@dataclass
class Choice(Node):
    first: Node
    second: Node


@dataclass
class Async(Node):
    body: Node


@dataclass
class Await(Node):
    target: Node


@dataclass
class Defer(Node):
    body: Node


@dataclass
class Settle(Node):
    """Evaluates `body` and settles `future` with the outcome. Queued by Defer."""
    future: Future
    body: Node


@dataclass
class Index(Node):
    target: Node
    key: Node


@dataclass
class Command(Node):
    text: Node


@dataclass
class Emit(Node):
    value: Node


@dataclass
class Generate(Node):
    path: Node
    mode: Node = field(default_factory=lambda: Literal("proxy"))

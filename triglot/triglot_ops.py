"""
Operations on triglot values: arithmetic, color math, comparison,
truthiness and indexing.

Every operation dispatches exhaustively over the closed value variants and
raises TypeMismatch for pairings it does not define.
"""
import math
import sys
from typing import Any

from triglot.triglot_datatypes import (
    Color, Map, Future, Continuation,
    TypeMismatch, DivisionByZero, IndexOutOfBounds, KeyNotFound,
)


def type_name(value: Any) -> str:
    """Names the variant of a value."""
    match value:
        case bool():
            return "Boolean"
        case float():
            return "Number"
        case str():
            return "Text"
        case None:
            return "Unit"
        case Color():
            return "Color"
        case tuple():
            return "Array"
        case Map():
            return "Map"
        case Future():
            return "Future"
        case Continuation():
            return "Continuation"
    raise TypeMismatch(f"{type(value).__name__} is not a triglot value")


def _mismatch(verb: str, a: Any, b: Any) -> TypeMismatch:
    return TypeMismatch(f"cannot {verb} {type_name(a)} and {type_name(b)}")


def add(a: Any, b: Any) -> Any:
    match (a, b):
        case (float(), float()):
            return a + b
        case (tuple(), tuple()):
            return a + b
        case (str(), str()):
            return a + b
        case (Color(), Color()):
            return a.add(b)
    raise _mismatch("add", a, b)


def sub(a: Any, b: Any) -> Any:
    match (a, b):
        case (float(), float()):
            return a - b
        case (Color(), Color()):
            return a.sub(b)
    raise _mismatch("subtract", a, b)


def _numbers(verb: str, a: Any, b: Any) -> None:
    if type(a) is not float or type(b) is not float:
        raise _mismatch(verb, a, b)


def mul(a: Any, b: Any) -> float:
    _numbers("multiply", a, b)
    return a * b


def div(a: Any, b: Any) -> float:
    _numbers("divide", a, b)
    if b == 0.0:
        raise DivisionByZero()
    return a / b


def blend(a: Any, b: Any) -> Color:
    if not isinstance(a, Color) or not isinstance(b, Color):
        raise _mismatch("blend", a, b)
    return a.blend(b)


def scale(color: Any, factor: Any) -> Color:
    if not isinstance(color, Color) or type(factor) is not float:
        raise _mismatch("scale", color, factor)
    if not math.isfinite(factor):
        raise TypeMismatch(f"scale factor must be finite, got {factor}")
    return color.scale(factor)


def mix(a: Any, b: Any, ratio: Any) -> Color:
    if not isinstance(a, Color) or not isinstance(b, Color):
        raise _mismatch("mix", a, b)
    if type(ratio) is not float:
        raise TypeMismatch(f"mix ratio must be a Number, got {type_name(ratio)}")
    if not math.isfinite(ratio):
        raise TypeMismatch(f"mix ratio must be finite, got {ratio}")
    return a.mix(b, ratio)


def _ordered(verb: str, a: Any, b: Any) -> None:
    if type(a) is float and type(b) is float:
        return
    if type(a) is str and type(b) is str:
        return
    raise _mismatch(verb, a, b)


def less_than(a: Any, b: Any) -> bool:
    _ordered("compare", a, b)
    return a < b


def greater_than(a: Any, b: Any) -> bool:
    _ordered("compare", a, b)
    return a > b


def equals(a: Any, b: Any) -> bool:
    """Value equality. Never raises; different variants are simply unequal."""
    if type_name(a) != type_name(b):
        return False
    match a:
        case float():
            return abs(a - b) < sys.float_info.epsilon
        case bool() | str() | None | Color():
            return a == b
        case tuple():
            return len(a) == len(b) and all(equals(x, y) for x, y in zip(a, b))
        case Map():
            return len(a) == len(b) and all(
                equals(ka, kb) and equals(va, vb) for (ka, va), (kb, vb) in zip(a, b)
            )
        case _:
            # Future, Continuation
            return a is b


def is_truthy(value: Any) -> bool:
    match value:
        case bool():
            return value
        case float():
            return value != 0.0
        case None:
            return False
        case str() | tuple() | Map():
            return len(value) > 0
        case Color() | Future() | Continuation():
            return True
    raise TypeMismatch(f"{type(value).__name__} is not a triglot value")


def index(target: Any, key: Any) -> Any:
    match target:
        case tuple():
            if type(key) is not float:
                raise TypeMismatch(f"array index must be a Number, got {type_name(key)}")
            if not math.isfinite(key):
                raise TypeMismatch(f"array index must be finite, got {key}")
            i = int(key)
            if i < 0 or i >= len(target):
                raise IndexOutOfBounds(i, len(target))
            return target[i]
        case Map():
            for k, v in target:
                if equals(k, key):
                    return v
            raise KeyNotFound(key)
    raise TypeMismatch(f"cannot index {type_name(target)}")

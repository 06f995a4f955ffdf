import pytest
from triglot import triglot_ops as ops
from triglot.triglot_datatypes import (
    Color, Map, Future, Continuation, Resolved, Scope, Literal,
    TypeMismatch, DivisionByZero, IndexOutOfBounds, KeyNotFound,
)

RED = Color(255, 0, 0)
GREEN = Color(0, 255, 0)


@pytest.mark.parametrize("value, name", [
    (1.0, "Number"),
    ("t", "Text"),
    (False, "Boolean"),
    (None, "Unit"),
    (RED, "Color"),
    ((), "Array"),
    (Map(), "Map"),
    (Future(), "Future"),
    (Continuation(Literal(1), Scope()), "Continuation"),
])
def test_type_name_covers_every_variant(value, name):
    assert ops.type_name(value) == name


# --- add / sub / mul / div ---

def test_add_numbers_text_arrays():
    assert ops.add(3.0, 4.0) == 7.0
    assert ops.add("ab", "cd") == "abcd"
    assert ops.add((1.0, 2.0), (3.0,)) == (1.0, 2.0, 3.0)

def test_add_arrays_keeps_order_and_length():
    a, b = (1.0, 1.0), (2.0, 1.0, 3.0)
    result = ops.add(a, b)
    assert len(result) == len(a) + len(b)
    assert result == a + b

def test_add_colors():
    assert ops.add(RED, GREEN) == Color(255, 255, 0)

@pytest.mark.parametrize("a, b", [
    (1.0, "1"),
    (True, True),
    (None, None),
    (RED, 1.0),
    ((1.0,), Map()),
])
def test_add_mismatch(a, b):
    with pytest.raises(TypeMismatch):
        ops.add(a, b)

def test_sub():
    assert ops.sub(10.0, 4.0) == 6.0
    assert ops.sub(GREEN, Color(0, 150, 0)) == Color(0, 105, 0)
    with pytest.raises(TypeMismatch):
        ops.sub("a", "b")

def test_mul_div_numbers_only():
    assert ops.mul(3.0, 4.0) == 12.0
    assert ops.div(9.0, 2.0) == 4.5
    with pytest.raises(TypeMismatch):
        ops.mul(RED, 2.0)
    with pytest.raises(TypeMismatch):
        ops.div(True, 1.0)

def test_div_by_zero_raises():
    with pytest.raises(DivisionByZero):
        ops.div(1.0, 0.0)

# --- Color ops ---

def test_blend_and_scale():
    assert ops.blend(RED, GREEN) == Color(128, 128, 0)
    assert ops.scale(RED, 1.0) == RED
    assert ops.scale(Color(10, 20, 30), 0.5) == Color(5, 10, 15)
    with pytest.raises(TypeMismatch):
        ops.blend(RED, 1.0)
    with pytest.raises(TypeMismatch):
        ops.scale(1.0, RED)

def test_mix_requires_number_ratio():
    assert ops.mix(RED, GREEN, 0.0) == RED
    with pytest.raises(TypeMismatch):
        ops.mix(RED, GREEN, "half")

# --- Comparisons ---

def test_ordering_numbers_and_text():
    assert ops.less_than(1.0, 2.0) is True
    assert ops.greater_than(1.0, 2.0) is False
    assert ops.less_than("apple", "banana") is True

@pytest.mark.parametrize("a, b", [(1.0, "1"), (True, False), (None, None), (RED, GREEN)])
def test_ordering_mismatch(a, b):
    with pytest.raises(TypeMismatch):
        ops.less_than(a, b)

def test_equals_across_variants_is_false():
    assert ops.equals(1.0, "1") is False
    assert ops.equals(None, False) is False
    assert ops.equals(True, 1.0) is False

def test_equals_structural():
    assert ops.equals(0.1 + 0.2, 0.3)
    assert ops.equals(None, None)
    assert ops.equals(RED, Color(255, 0, 0))
    assert ops.equals((1.0, ("a",)), (1.0, ("a",)))
    assert not ops.equals((1.0,), (1.0, 2.0))
    assert ops.equals(Map([("k", 1.0)]), Map([("k", 1.0)]))
    assert not ops.equals(Map([("k", 1.0)]), Map([("k", 2.0)]))

def test_equals_futures_by_identity():
    f = Future(Resolved(1.0))
    assert ops.equals(f, f)
    assert not ops.equals(f, Future(Resolved(1.0)))

# --- Truthiness ---

@pytest.mark.parametrize("value, expected", [
    (True, True), (False, False),
    (0.0, False), (-2.0, True),
    (None, False),
    ("", False), ("x", True),
    ((), False), ((0.0,), True),
    (Map(), False), (Map([(1.0, 1.0)]), True),
    (Color(0, 0, 0), True),
    (Future(), True),
    (Continuation(Literal(1), Scope()), True),
])
def test_is_truthy(value, expected):
    assert ops.is_truthy(value) is expected

# --- Indexing ---

def test_index_array():
    arr = (10.0, 20.0, 30.0)
    assert ops.index(arr, 0.0) == 10.0
    assert ops.index(arr, 2.0) == 30.0
    assert ops.index(arr, 1.9) == 20.0

@pytest.mark.parametrize("i", [-1.0, 3.0])
def test_index_array_out_of_bounds(i):
    with pytest.raises(IndexOutOfBounds):
        ops.index((1.0, 2.0, 3.0), i)

def test_index_array_requires_finite_number():
    with pytest.raises(TypeMismatch):
        ops.index((1.0,), "0")
    with pytest.raises(TypeMismatch):
        ops.index((1.0,), float("nan"))

def test_index_map_first_match_wins():
    m = Map([("x", 100.0), ("y", 200.0), ("x", 300.0)])
    assert ops.index(m, "x") == 100.0
    assert ops.index(m, "y") == 200.0

def test_index_map_missing_key():
    with pytest.raises(KeyNotFound):
        ops.index(Map([("x", 100.0)]), "z")

def test_index_unsupported_target():
    with pytest.raises(TypeMismatch):
        ops.index("text", 0.0)

def test_scale_and_mix_reject_non_finite_numbers():
    with pytest.raises(TypeMismatch, match="finite"):
        ops.scale(Color(0, 1, 0), float("inf"))
    with pytest.raises(TypeMismatch, match="finite"):
        ops.mix(RED, GREEN, float("nan"))

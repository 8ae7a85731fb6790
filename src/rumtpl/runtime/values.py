"""
Runtime values for the template renderer.

Every piece of data a template touches is a Value: a closed tagged union
over Integer, Float, String, Bool, List, Hash, Tuple and Nil. Values are
immutable; methods that "change" a value return a new one.
"""

from dataclasses import dataclass
from typing import Any, Dict, Iterable, Mapping
from enum import Enum

from ..errors import InvalidArgument, TypeMismatch


# Integers are signed 64-bit
I64_MIN = -2 ** 63
I64_MAX = 2 ** 63 - 1


class ValueKind(Enum):
    """The closed set of runtime variants."""
    INTEGER = "Integer"
    FLOAT = "Float"
    STRING = "String"
    BOOL = "Bool"
    LIST = "List"
    HASH = "Hash"
    TUPLE = "Tuple"
    NIL = "Nil"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class Value:
    """
    A runtime value tagged with its variant.

    `data` holds the Python payload: int, float, str, bool, a tuple of Values
    (List and Tuple), a dict of str -> Value (Hash) or None (Nil).
    """
    kind: ValueKind
    data: Any

    def __repr__(self) -> str:
        return f"Value({self.kind}, {self.data!r})"

    @property
    def type_name(self) -> str:
        return self.kind.value


# Convenience constructors

def int_val(n: int) -> Value:
    """Create an integer value, rejecting results outside the 64-bit range."""
    n = int(n)
    if not I64_MIN <= n <= I64_MAX:
        raise InvalidArgument.create(f"integer overflow: {n} does not fit in 64 bits")
    return Value(ValueKind.INTEGER, n)


def float_val(x: float) -> Value:
    """Create a float value."""
    return Value(ValueKind.FLOAT, float(x))


def bool_val(b: bool) -> Value:
    """Create a boolean value."""
    return Value(ValueKind.BOOL, bool(b))


def string_val(s: str) -> Value:
    """Create a string value."""
    return Value(ValueKind.STRING, str(s))


def list_val(items: Iterable[Value]) -> Value:
    """Create a list value from Values."""
    return Value(ValueKind.LIST, tuple(items))


def tuple_val(items: Iterable[Value]) -> Value:
    """Create a fixed-length tuple value from Values."""
    return Value(ValueKind.TUPLE, tuple(items))


def hash_val(items: Mapping[str, Value]) -> Value:
    """Create a hash value. Iteration follows the mapping's order."""
    return Value(ValueKind.HASH, dict(items))


NIL = Value(ValueKind.NIL, None)


# Host data conversion

def wrap_value(data: Any) -> Value:
    """
    Convert host Python data into a Value.

    bool is checked before int since bool is an int subclass in Python.
    """
    if isinstance(data, Value):
        return data
    if data is None:
        return NIL
    if isinstance(data, bool):
        return bool_val(data)
    if isinstance(data, int):
        if not I64_MIN <= data <= I64_MAX:
            raise TypeMismatch.create(f"integer {data} does not fit in 64 bits")
        return int_val(data)
    if isinstance(data, float):
        return float_val(data)
    if isinstance(data, str):
        return string_val(data)
    if isinstance(data, list):
        return list_val(wrap_value(item) for item in data)
    if isinstance(data, tuple):
        return tuple_val(wrap_value(item) for item in data)
    if isinstance(data, Mapping):
        items: Dict[str, Value] = {}
        for key, item in data.items():
            if not isinstance(key, str):
                raise TypeMismatch.create(
                    f"hash keys must be strings, got {type(key).__name__}"
                )
            items[key] = wrap_value(item)
        return hash_val(items)
    raise TypeMismatch.create(f"cannot use {type(data).__name__} as a template value")


def unwrap_value(value: Value) -> Any:
    """Convert a Value back into plain Python data."""
    if value.kind == ValueKind.LIST:
        return [unwrap_value(v) for v in value.data]
    if value.kind == ValueKind.TUPLE:
        return tuple(unwrap_value(v) for v in value.data)
    if value.kind == ValueKind.HASH:
        return {k: unwrap_value(v) for k, v in value.data.items()}
    return value.data


# Equality and text conversion

NUMERIC = (ValueKind.INTEGER, ValueKind.FLOAT)


def values_equal(left: Value, right: Value) -> bool:
    """
    Template equality.

    Integer and Float compare numerically (the integer promoted to float).
    Containers compare element-wise. Any other cross-variant pair is false.
    """
    if left.kind in NUMERIC and right.kind in NUMERIC:
        if left.kind == right.kind:
            return left.data == right.data
        return float(left.data) == float(right.data)
    if left.kind != right.kind:
        return False
    if left.kind in (ValueKind.LIST, ValueKind.TUPLE):
        if len(left.data) != len(right.data):
            return False
        return all(values_equal(a, b) for a, b in zip(left.data, right.data))
    if left.kind == ValueKind.HASH:
        if left.data.keys() != right.data.keys():
            return False
        return all(values_equal(left.data[k], right.data[k]) for k in left.data)
    return left.data == right.data


def to_text(value: Value) -> str:
    """
    Canonical textual form used for output tags.

    Containers and Nil have no textual form and raise TypeMismatch.
    """
    if value.kind == ValueKind.STRING:
        return value.data
    if value.kind == ValueKind.INTEGER:
        return str(value.data)
    if value.kind == ValueKind.FLOAT:
        return repr(value.data)
    if value.kind == ValueKind.BOOL:
        return "true" if value.data else "false"
    raise TypeMismatch.create(
        f"cannot render {value.kind} as text",
        hints=["call a method that produces a String, Integer, Float or Bool"],
    )

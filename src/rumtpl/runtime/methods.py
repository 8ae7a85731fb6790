"""
Per-variant method tables for the template renderer.

Maps (variant, method name) to an implementation. Aliases such as
to_s/to_string or rev/reverse register the very same BuiltinMethod object.
"""

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Callable, Dict, List, Optional, Sequence, Tuple
import math

from .values import (
    Value, ValueKind, int_val, float_val, bool_val, string_val,
    list_val, tuple_val, to_text,
)
from ..errors import (
    UnknownMethod, ArityMismatch, TypeMismatch, IndexOutOfRange, InvalidArgument,
)


@dataclass(frozen=True)
class BuiltinMethod:
    """
    A method callable on one variant, with its fixed argument count.
    """
    name: str
    arity: int
    implementation: Callable[..., Value]
    doc: str = ""


def round_half_away(x: float) -> int:
    """Round to the nearest integer, ties away from zero (2.5 -> 3, -2.5 -> -3)."""
    if math.isnan(x) or math.isinf(x):
        raise InvalidArgument.create(f"cannot round {x!r} to an integer")
    if x.is_integer():
        # Every float at or beyond 2**52 is integral
        return int(x)
    return int(Decimal(x).quantize(Decimal(1), rounding=ROUND_HALF_UP))


def _expect_string(method: str, arg: Value) -> str:
    if arg.kind != ValueKind.STRING:
        raise TypeMismatch.create(f"{method} expects a String argument, got {arg.kind}")
    return arg.data


class MethodRegistry:
    """
    Registry of all built-in methods, keyed by variant and name.
    """

    def __init__(self):
        self._methods: Dict[Tuple[ValueKind, str], BuiltinMethod] = {}
        self._register_all()

    def get_method(self, kind: ValueKind, method_name: str) -> Optional[BuiltinMethod]:
        """Look up a method by variant and method name."""
        return self._methods.get((kind, method_name))

    def register_method(self, kind: ValueKind, method: BuiltinMethod,
                        aliases: Sequence[str] = ()) -> None:
        """Register a method for a variant, plus any alias names."""
        self._methods[(kind, method.name)] = method
        for alias in aliases:
            self._methods[(kind, alias)] = method

    def method_names(self, kind: ValueKind) -> List[str]:
        """All names (aliases included) callable on a variant, sorted."""
        return sorted(name for k, name in self._methods if k == kind)

    def _register_all(self) -> None:
        self._register_integer_methods()
        self._register_float_methods()
        self._register_string_methods()
        self._register_bool_methods()
        self._register_list_methods()
        self._register_hash_methods()
        self._register_tuple_methods()

    def _add(self, kind: ValueKind, names: Sequence[str], arity: int,
             implementation: Callable[..., Value], doc: str = "") -> None:
        method = BuiltinMethod(names[0], arity, implementation, doc)
        self.register_method(kind, method, aliases=names[1:])

    # --- Integer ---

    def _register_integer_methods(self) -> None:
        INT = ValueKind.INTEGER

        def _times(n: Value) -> Value:
            if n.data < 0:
                raise InvalidArgument.create(
                    f"times needs a non-negative integer, got {n.data}"
                )
            # Inclusive: 3.times is [0, 1, 2, 3]
            return list_val(int_val(i) for i in range(n.data + 1))

        self._add(INT, ["abs"], 0, lambda n: int_val(abs(n.data)),
                  "absolute value")
        self._add(INT, ["to_s", "to_string"], 0, lambda n: string_val(str(n.data)),
                  "decimal text")
        self._add(INT, ["to_f", "to_float"], 0, lambda n: float_val(float(n.data)),
                  "widen to Float")
        self._add(INT, ["to_i", "to_integer"], 0, lambda n: n,
                  "identity")
        self._add(INT, ["times"], 0, _times,
                  "list of integers from 0 up to and including n")
        self._add(INT, ["clamp_zero"], 0, lambda n: int_val(max(n.data, 0)),
                  "n, or 0 when negative")
        self._add(INT, ["clamp_one"], 0, lambda n: int_val(max(n.data, 1)),
                  "n, or 1 when below 1")

    # --- Float ---

    def _register_float_methods(self) -> None:
        FLOAT = ValueKind.FLOAT

        def _sqrt(x: Value) -> Value:
            if x.data < 0:
                raise InvalidArgument.create(f"sqrt of negative number {x.data!r}")
            return float_val(math.sqrt(x.data))

        def _floor(x: Value) -> Value:
            if not math.isfinite(x.data):
                return x
            return float_val(math.floor(x.data))

        def _ceil(x: Value) -> Value:
            if not math.isfinite(x.data):
                return x
            return float_val(math.ceil(x.data))

        self._add(FLOAT, ["abs"], 0, lambda x: float_val(abs(x.data)),
                  "absolute value")
        self._add(FLOAT, ["to_s", "to_string"], 0, lambda x: string_val(to_text(x)),
                  "shortest round-tripping decimal text")
        self._add(FLOAT, ["to_i", "to_integer"], 0, lambda x: int_val(round_half_away(x.data)),
                  "nearest integer, ties away from zero")
        self._add(FLOAT, ["to_f", "to_float"], 0, lambda x: x,
                  "identity")
        self._add(FLOAT, ["round"], 0, lambda x: float_val(round_half_away(x.data)),
                  "nearest whole number, ties away from zero")
        self._add(FLOAT, ["floor"], 0, _floor, "round toward negative infinity")
        self._add(FLOAT, ["ceil"], 0, _ceil, "round toward positive infinity")
        self._add(FLOAT, ["sqrt"], 0, _sqrt, "square root")

    # --- String ---

    def _register_string_methods(self) -> None:
        STRING = ValueKind.STRING

        def _capitalize(s: Value) -> Value:
            # First code point only, the rest is left as-is
            return string_val(s.data[:1].upper() + s.data[1:])

        def _replace(s: Value, old: Value, new: Value) -> Value:
            return string_val(s.data.replace(_expect_string("replace", old),
                                             _expect_string("replace", new)))

        def _starts_with(s: Value, prefix: Value) -> Value:
            return bool_val(s.data.startswith(_expect_string("starts_with", prefix)))

        def _ends_with(s: Value, suffix: Value) -> Value:
            return bool_val(s.data.endswith(_expect_string("ends_with", suffix)))

        self._add(STRING, ["to_s", "to_string"], 0, lambda s: s, "identity")
        self._add(STRING, ["upcase", "to_uppercase"], 0, lambda s: string_val(s.data.upper()),
                  "upper-case every character")
        self._add(STRING, ["downcase", "to_lowercase"], 0, lambda s: string_val(s.data.lower()),
                  "lower-case every character")
        self._add(STRING, ["trim"], 0, lambda s: string_val(s.data.strip()),
                  "strip leading and trailing whitespace")
        self._add(STRING, ["capitalize"], 0, _capitalize,
                  "upper-case the first character")
        self._add(STRING, ["len"], 0, lambda s: int_val(len(s.data)),
                  "number of characters")
        self._add(STRING, ["empty"], 0, lambda s: bool_val(len(s.data) == 0),
                  "true when the string has no characters")
        self._add(STRING, ["reverse", "rev"], 0, lambda s: string_val(s.data[::-1]),
                  "characters in reverse order")
        self._add(STRING, ["replace"], 2, _replace, "replace every occurrence")
        self._add(STRING, ["starts_with"], 1, _starts_with, "prefix test")
        self._add(STRING, ["ends_with"], 1, _ends_with, "suffix test")

    # --- Bool ---

    def _register_bool_methods(self) -> None:
        self._add(ValueKind.BOOL, ["to_s", "to_string"], 0, lambda b: string_val(to_text(b)),
                  "true or false")

    # --- List ---

    def _register_list_methods(self) -> None:
        LIST = ValueKind.LIST

        def _enumerate(lst: Value) -> Value:
            return list_val(tuple_val((int_val(i), item)) for i, item in enumerate(lst.data))

        def _first(lst: Value) -> Value:
            if not lst.data:
                raise IndexOutOfRange.create("first called on an empty List")
            return lst.data[0]

        def _last(lst: Value) -> Value:
            if not lst.data:
                raise IndexOutOfRange.create("last called on an empty List")
            return lst.data[-1]

        def _join(lst: Value, separator: Value) -> Value:
            sep = _expect_string("join", separator)
            return string_val(sep.join(to_text(item) for item in lst.data))

        self._add(LIST, ["len"], 0, lambda lst: int_val(len(lst.data)),
                  "number of elements")
        self._add(LIST, ["empty"], 0, lambda lst: bool_val(len(lst.data) == 0),
                  "true when the list has no elements")
        self._add(LIST, ["enumerate"], 0, _enumerate,
                  "list of (index, element) tuples")
        self._add(LIST, ["reverse", "rev"], 0, lambda lst: list_val(reversed(lst.data)),
                  "elements in reverse order")
        self._add(LIST, ["first"], 0, _first, "first element")
        self._add(LIST, ["last"], 0, _last, "last element")
        self._add(LIST, ["join"], 1, _join, "text of every element joined by a separator")

    # --- Hash ---

    def _register_hash_methods(self) -> None:
        HASH = ValueKind.HASH

        def _keys(h: Value) -> Value:
            return list_val(string_val(k) for k in h.data)

        def _values(h: Value) -> Value:
            return list_val(h.data.values())

        def _iter(h: Value) -> Value:
            return list_val(tuple_val((string_val(k), v)) for k, v in h.data.items())

        self._add(HASH, ["keys"], 0, _keys, "keys in insertion order")
        self._add(HASH, ["values"], 0, _values, "values in insertion order")
        self._add(HASH, ["iter"], 0, _iter, "list of (key, value) tuples")
        self._add(HASH, ["len"], 0, lambda h: int_val(len(h.data)),
                  "number of entries")
        self._add(HASH, ["empty"], 0, lambda h: bool_val(len(h.data) == 0),
                  "true when the hash has no entries")

    # --- Tuple ---

    def _register_tuple_methods(self) -> None:
        self._add(ValueKind.TUPLE, ["len"], 0, lambda t: int_val(len(t.data)),
                  "number of elements")


# Global singleton registry; it is never mutated after construction
_registry: Optional[MethodRegistry] = None


def get_method_registry() -> MethodRegistry:
    """Get the global method registry."""
    global _registry
    if _registry is None:
        _registry = MethodRegistry()
    return _registry


def invoke(value: Value, method_name: str, args: Sequence[Value]) -> Value:
    """
    Call a method on a value.

    Raises UnknownMethod if the variant has no such method and ArityMismatch
    if the argument count is wrong.
    """
    registry = get_method_registry()
    method = registry.get_method(value.kind, method_name)
    if method is None:
        raise UnknownMethod.create(f"{value.kind} has no method '{method_name}'")
    if len(args) != method.arity:
        raise ArityMismatch.create(
            f"{value.kind}.{method_name} takes {method.arity} argument(s), got {len(args)}"
        )
    return method.implementation(value, *args)


def tuple_index(value: Value, index: int) -> Value:
    """Positional access on a Tuple (pair.0, pair.1, ...)."""
    if value.kind != ValueKind.TUPLE:
        raise TypeMismatch.create(f"positional access .{index} needs a Tuple, got {value.kind}")
    if index >= len(value.data):
        raise IndexOutOfRange.create(
            f"tuple index {index} out of range for a Tuple of length {len(value.data)}"
        )
    return value.data[index]


def index_value(value: Value, index: Value) -> Value:
    """Bracket indexing: List/Tuple by Integer, Hash by String key."""
    if value.kind in (ValueKind.LIST, ValueKind.TUPLE):
        if index.kind != ValueKind.INTEGER:
            raise TypeMismatch.create(f"{value.kind} index must be an Integer, got {index.kind}")
        if not 0 <= index.data < len(value.data):
            raise IndexOutOfRange.create(
                f"index {index.data} out of range for a {value.kind} of length {len(value.data)}"
            )
        return value.data[index.data]
    if value.kind == ValueKind.HASH:
        if index.kind != ValueKind.STRING:
            raise TypeMismatch.create(f"Hash key must be a String, got {index.kind}")
        if index.data not in value.data:
            raise IndexOutOfRange.create(f"key '{index.data}' not found in Hash")
        return value.data[index.data]
    raise TypeMismatch.create(f"{value.kind} cannot be indexed")

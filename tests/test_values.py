"""
Tests for runtime values and the per-type method tables.
"""

import math
import pytest

from rumtpl import (
    render, UnknownMethod, ArityMismatch, TypeMismatch, IndexOutOfRange, InvalidArgument,
)
from rumtpl.runtime import (
    Value, ValueKind, NIL, I64_MIN, I64_MAX,
    int_val, float_val, bool_val, string_val, list_val, tuple_val, hash_val,
    wrap_value, unwrap_value, values_equal, to_text,
    get_method_registry, invoke, tuple_index, index_value,
)


def call(value, method, *args):
    return invoke(value, method, list(args))


# --- Value Tests ---

class TestValues:
    """Test runtime value construction and conversion."""

    def test_constructors(self):
        assert int_val(42).kind == ValueKind.INTEGER
        assert float_val(1).data == 1.0
        assert float_val(1).kind == ValueKind.FLOAT
        assert string_val("s").type_name == "String"
        assert NIL.kind == ValueKind.NIL

    def test_values_are_immutable(self):
        v = int_val(1)
        with pytest.raises(AttributeError):
            v.data = 2

    def test_wrap_scalars(self):
        assert wrap_value(True) == bool_val(True)
        assert wrap_value(3) == int_val(3)
        assert wrap_value(2.5) == float_val(2.5)
        assert wrap_value("x") == string_val("x")
        assert wrap_value(None) is NIL

    def test_wrap_bool_is_not_integer(self):
        """bool is checked before int."""
        assert wrap_value(False).kind == ValueKind.BOOL

    def test_wrap_containers(self):
        v = wrap_value({"names": ["a", "b"], "pair": (1, 2.0)})
        assert v.kind == ValueKind.HASH
        assert v.data["names"].kind == ValueKind.LIST
        assert v.data["pair"].kind == ValueKind.TUPLE

    def test_wrap_rejects_non_string_keys(self):
        with pytest.raises(TypeMismatch):
            wrap_value({1: "a"})

    def test_wrap_rejects_unknown_types(self):
        with pytest.raises(TypeMismatch):
            wrap_value(object())

    def test_wrap_passes_values_through(self):
        v = int_val(1)
        assert wrap_value(v) is v

    def test_unwrap_round_trip(self):
        data = {"a": [1, 2], "b": ("x", True), "c": None}
        assert unwrap_value(wrap_value(data)) == data

    def test_hash_preserves_insertion_order(self):
        v = wrap_value({"z": 1, "a": 2, "m": 3})
        assert list(v.data) == ["z", "a", "m"]



class TestIntegerRange:
    """Test that integers stay within the signed 64-bit range."""

    def test_bounds_are_accepted(self):
        assert int_val(I64_MAX).data == 2 ** 63 - 1
        assert int_val(I64_MIN).data == -2 ** 63
        assert wrap_value(I64_MIN) == int_val(I64_MIN)

    def test_int_val_rejects_overflow(self):
        with pytest.raises(InvalidArgument):
            int_val(I64_MAX + 1)
        with pytest.raises(InvalidArgument):
            int_val(I64_MIN - 1)

    def test_wrap_rejects_out_of_range_host_integer(self):
        """Host data outside the range is a type mismatch."""
        with pytest.raises(TypeMismatch):
            wrap_value(2 ** 63)
        with pytest.raises(TypeMismatch):
            wrap_value([1, -2 ** 63 - 1])

    def test_negating_minimum_overflows(self):
        with pytest.raises(InvalidArgument):
            render("<%= -n %>", {"n": I64_MIN})

    def test_abs_of_minimum_overflows(self):
        with pytest.raises(InvalidArgument):
            call(int_val(I64_MIN), "abs")

    def test_maximum_converts_to_float(self):
        assert call(int_val(I64_MAX), "to_f") == float_val(2.0 ** 63)

    def test_float_back_to_integer_overflows(self):
        """2.0 ** 63 rounds to one past the maximum."""
        with pytest.raises(InvalidArgument):
            call(float_val(2.0 ** 63), "to_i")

    def test_maximum_compares_with_float(self):
        assert render("<% if n == 1.5 %>eq<% else %>ne<% end %>", {"n": I64_MAX}) == "ne"
        assert render("<% if n != 1.5 %>ne<% end %>", {"n": I64_MAX}) == "ne"

    def test_out_of_range_context_value_fails_render(self):
        with pytest.raises(TypeMismatch):
            render("<%= n %>", {"n": 10 ** 30})

class TestEquality:
    """Test template equality semantics."""

    def test_same_variant(self):
        assert values_equal(int_val(3), int_val(3))
        assert not values_equal(string_val("a"), string_val("b"))

    def test_integer_float_promotion(self):
        assert values_equal(int_val(25), float_val(25.0))
        assert not values_equal(int_val(25), float_val(25.4))

    def test_cross_variant_is_false(self):
        assert not values_equal(int_val(1), string_val("1"))
        assert not values_equal(NIL, bool_val(False))

    def test_bool_is_not_integer(self):
        assert not values_equal(bool_val(True), int_val(1))

    def test_containers(self):
        assert values_equal(wrap_value([1, [2]]), wrap_value([1, [2.0]]))
        assert not values_equal(wrap_value([1]), wrap_value((1,)))
        assert values_equal(wrap_value({"a": 1}), wrap_value({"a": 1}))
        assert not values_equal(wrap_value({"a": 1}), wrap_value({"b": 1}))

    def test_nil_equals_nil(self):
        assert values_equal(NIL, NIL)


class TestToText:
    """Test the canonical textual form."""

    def test_scalars(self):
        assert to_text(int_val(-7)) == "-7"
        assert to_text(float_val(25.0)) == "25.0"
        assert to_text(float_val(0.1)) == "0.1"
        assert to_text(bool_val(True)) == "true"
        assert to_text(string_val("<b>")) == "<b>"

    @pytest.mark.parametrize("value", [
        list_val([]), hash_val({}), tuple_val([int_val(1)]), NIL,
    ])
    def test_containers_and_nil_have_no_text(self, value):
        with pytest.raises(TypeMismatch):
            to_text(value)


class TestIntegerMethods:
    """Test Integer methods."""

    @pytest.mark.parametrize("n", [-12, -1, 0, 1, 99])
    def test_abs_properties(self, n):
        result = call(int_val(n), "abs").data
        assert result >= 0
        assert result == n or result == -n

    def test_conversions(self):
        assert call(int_val(5), "to_s") == string_val("5")
        assert call(int_val(5), "to_f") == float_val(5.0)
        assert call(int_val(5), "to_i") == int_val(5)

    def test_times_is_inclusive(self):
        assert call(int_val(3), "times") == list_val([int_val(i) for i in range(4)])
        assert call(int_val(0), "times") == list_val([int_val(0)])

    def test_times_negative(self):
        with pytest.raises(InvalidArgument):
            call(int_val(-1), "times")

    def test_clamps(self):
        assert call(int_val(-3), "clamp_zero") == int_val(0)
        assert call(int_val(4), "clamp_zero") == int_val(4)
        assert call(int_val(0), "clamp_one") == int_val(1)
        assert call(int_val(7), "clamp_one") == int_val(7)


class TestFloatMethods:
    """Test Float methods."""

    def test_abs_stays_float(self):
        assert call(float_val(-2.5), "abs") == float_val(2.5)

    @pytest.mark.parametrize("x,expected", [
        (25.4, 25), (25.5, 26), (-2.5, -3), (2.4999, 2), (-0.4, 0),
    ])
    def test_to_i_rounds_half_away_from_zero(self, x, expected):
        assert call(float_val(x), "to_i") == int_val(expected)

    def test_to_s(self):
        assert call(float_val(25.0), "to_string") == string_val("25.0")

    def test_round_floor_ceil_stay_float(self):
        assert call(float_val(2.5), "round") == float_val(3.0)
        assert call(float_val(2.7), "floor") == float_val(2.0)
        assert call(float_val(2.1), "ceil") == float_val(3.0)
        assert call(float_val(2.1), "ceil").kind == ValueKind.FLOAT

    def test_sqrt(self):
        assert call(float_val(16.0), "sqrt") == float_val(4.0)
        with pytest.raises(InvalidArgument):
            call(float_val(-1.0), "sqrt")

    def test_to_i_of_nan(self):
        with pytest.raises(InvalidArgument):
            call(float_val(math.nan), "to_i")


class TestStringMethods:
    """Test String methods."""

    def test_case(self):
        assert call(string_val("MiXed"), "upcase") == string_val("MIXED")
        assert call(string_val("MiXed"), "to_lowercase") == string_val("mixed")

    def test_trim(self):
        assert call(string_val("  messy string  "), "trim") == string_val("messy string")
        assert call(string_val("\n\tx\n"), "trim") == string_val("x")

    def test_capitalize_only_touches_first(self):
        assert call(string_val("hello World"), "capitalize") == string_val("Hello World")
        assert call(string_val(""), "capitalize") == string_val("")

    def test_len_and_empty(self):
        assert call(string_val("héllo"), "len") == int_val(5)
        assert call(string_val(""), "empty") == bool_val(True)

    @pytest.mark.parametrize("s", ["", "a", "abc", "héllo wörld"])
    def test_reverse_is_involution(self, s):
        once = call(string_val(s), "reverse")
        assert call(once, "rev") == string_val(s)

    def test_replace_and_affixes(self):
        s = string_val("a-b-c")
        assert call(s, "replace", string_val("-"), string_val("+")) == string_val("a+b+c")
        assert call(s, "starts_with", string_val("a-")) == bool_val(True)
        assert call(s, "ends_with", string_val("b")) == bool_val(False)

    def test_argument_must_be_string(self):
        with pytest.raises(TypeMismatch):
            call(string_val("abc"), "starts_with", int_val(1))


class TestBoolMethods:
    """Test Bool methods."""

    def test_to_s(self):
        assert call(bool_val(False), "to_s") == string_val("false")


class TestListMethods:
    """Test List methods."""

    def test_len_and_empty(self):
        assert call(wrap_value([1, 2]), "len") == int_val(2)
        assert call(wrap_value([]), "empty") == bool_val(True)

    def test_enumerate(self):
        a, b = string_val("a"), string_val("b")
        result = call(list_val([a, b]), "enumerate")
        assert result == list_val([
            tuple_val([int_val(0), a]),
            tuple_val([int_val(1), b]),
        ])

    @pytest.mark.parametrize("items", [[], [1], [1, "two", 3.0]])
    def test_reverse_is_involution(self, items):
        lst = wrap_value(items)
        assert call(call(lst, "reverse"), "rev") == lst

    def test_reverse_returns_new_list(self):
        lst = wrap_value([1, 2, 3])
        assert call(lst, "rev") == wrap_value([3, 2, 1])
        assert lst == wrap_value([1, 2, 3])

    def test_first_last(self):
        lst = wrap_value([1, 2, 3])
        assert call(lst, "first") == int_val(1)
        assert call(lst, "last") == int_val(3)
        with pytest.raises(IndexOutOfRange):
            call(wrap_value([]), "first")

    def test_join(self):
        lst = wrap_value(["a", 1, 2.5, True])
        assert call(lst, "join", string_val(", ")) == string_val("a, 1, 2.5, true")


class TestHashMethods:
    """Test Hash methods."""

    def test_keys_values_iter_align(self):
        h = wrap_value({"b": 1, "a": "x", "c": [1]})
        keys = call(h, "keys").data
        values = call(h, "values").data
        pairs = call(h, "iter").data
        assert [k.data for k in keys] == ["b", "a", "c"]
        for i, pair in enumerate(pairs):
            assert pair == tuple_val([keys[i], values[i]])

    def test_len_and_empty(self):
        assert call(wrap_value({"a": 1}), "len") == int_val(1)
        assert call(wrap_value({}), "empty") == bool_val(True)


class TestTupleAndIndexing:
    """Test positional and bracket access."""

    def test_tuple_index(self):
        t = wrap_value((1, "b"))
        assert tuple_index(t, 1) == string_val("b")
        with pytest.raises(IndexOutOfRange):
            tuple_index(t, 2)

    def test_tuple_index_on_list(self):
        with pytest.raises(TypeMismatch):
            tuple_index(wrap_value([1]), 0)

    def test_tuple_len(self):
        assert call(wrap_value((1, 2, 3)), "len") == int_val(3)

    def test_list_index(self):
        lst = wrap_value(["a", "b"])
        assert index_value(lst, int_val(1)) == string_val("b")
        with pytest.raises(IndexOutOfRange):
            index_value(lst, int_val(2))
        with pytest.raises(IndexOutOfRange):
            index_value(lst, int_val(-1))

    def test_hash_index(self):
        h = wrap_value({"name": "ada"})
        assert index_value(h, string_val("name")) == string_val("ada")
        with pytest.raises(IndexOutOfRange):
            index_value(h, string_val("missing"))
        with pytest.raises(TypeMismatch):
            index_value(h, int_val(0))

    def test_index_scalar(self):
        with pytest.raises(TypeMismatch):
            index_value(string_val("abc"), int_val(0))


class TestMethodDispatch:
    """Test method lookup errors and aliases."""

    def test_unknown_method(self):
        with pytest.raises(UnknownMethod):
            call(int_val(1), "upcase")

    def test_nil_has_no_methods(self):
        with pytest.raises(UnknownMethod):
            call(NIL, "to_s")

    def test_arity_mismatch(self):
        with pytest.raises(ArityMismatch):
            call(int_val(1), "abs", int_val(2))
        with pytest.raises(ArityMismatch):
            call(wrap_value([1]), "join")

    @pytest.mark.parametrize("kind,a,b", [
        (ValueKind.INTEGER, "to_s", "to_string"),
        (ValueKind.FLOAT, "to_i", "to_integer"),
        (ValueKind.STRING, "upcase", "to_uppercase"),
        (ValueKind.STRING, "reverse", "rev"),
        (ValueKind.LIST, "reverse", "rev"),
    ])
    def test_aliases_share_implementation(self, kind, a, b):
        registry = get_method_registry()
        assert registry.get_method(kind, a) is registry.get_method(kind, b)

    def test_method_names_include_aliases(self):
        names = get_method_registry().method_names(ValueKind.BOOL)
        assert names == ["to_s", "to_string"]
        assert get_method_registry().method_names(ValueKind.NIL) == []

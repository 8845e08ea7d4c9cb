import math

import pytest

from jacques.jacques_datatypes import (
    JacquesNumber, JacquesString, JacquesBoolean, JacquesArray, JacquesRecord, JacquesFunction,
    JacquesClass, JacquesInstance, ClassMember, check_access,
    binary_operation, unary_operation, is_truthy, PRIVATE, PROTECTED,
)
from jacques.jacques_errors import (
    DivisionByZero, IncompatibleOperandTypes, IndexOutOfBounds, MissingArgument,
    TypeMismatch, UndefinedProperty, VisibilityError,
)

N = JacquesNumber
S = JacquesString
B = JacquesBoolean


def arr(*xs):
    return JacquesArray(N(x) for x in xs)


# --- Number ---

@pytest.mark.parametrize("a,b", [(1, 3), (10, 7), (-2.5, 0.1), (1e10, 3e-5), (0, 9)])
def test_divide_then_multiply_is_identity_within_tolerance(a, b):
    out = N(a).divide(N(b)).multiply(N(b))
    assert out.value == pytest.approx(a)


def test_divide_by_zero():
    with pytest.raises(DivisionByZero):
        N(1).divide(N(0))


def test_modulo_follows_dividend_sign():
    assert N(7).modulo(N(3)).value == 1
    assert N(-7).modulo(N(3)).value == -1
    with pytest.raises(DivisionByZero) as exc:
        N(5).modulo(N(0))
    assert exc.value.message == "Modulo by zero"


def test_number_comparisons_and_logic():
    assert N(1).less_than(N(2)).value is True
    assert N(2).greater_equal(N(2)).value is True
    assert N(0).binary_not().value is True
    assert N(3).binary_and(N(0)).value is False


def test_number_plus_string_concatenates():
    assert N(1).add(S("a")).value == "1a"


def test_number_operand_must_be_number():
    with pytest.raises(IncompatibleOperandTypes):
        N(1).subtract(S("a"))


# --- String / Boolean ---

def test_string_coercions():
    assert S("42").to_number().value == 42
    assert S("  3.5kg").to_number().value == 3.5
    with pytest.raises(TypeMismatch):
        S("abc").to_number()
    assert S("false").to_boolean().value is False
    assert S("true").to_boolean().value is True
    assert S("anything").to_boolean().value is True
    assert S("").to_boolean().value is False


def test_string_length_and_indexing():
    assert S("hello").length().value == 5
    assert S("hello").char_at(N(1)).value == "e"
    with pytest.raises(IndexOutOfBounds):
        S("hi").char_at(N(5))


def test_boolean_ops():
    assert B(True).binary_and(B(False)).value is False
    assert B(True).binary_or(B(False)).value is True
    assert B(True).to_number().value == 1
    with pytest.raises(IncompatibleOperandTypes):
        B(True).binary_and(N(1))


# --- Array ---

@pytest.mark.parametrize("xs", [(), (1,), (1, 2, 3)])
def test_array_add_then_remove_round_trip(xs):
    a = arr(*xs)
    grown = a.add(N(99))
    back = grown.remove(a.length())
    assert back.equals(a)
    assert a.length().value == len(xs)
    assert grown.length().value == len(xs) + 1


def test_array_get_and_remove_out_of_range():
    a = arr(1, 2)
    assert a.get(N(5)).value == 0
    assert a.remove(N(9)).equals(a)
    with pytest.raises(IndexOutOfBounds):
        a.at_index(N(2))


def test_array_with_index_appends_at_length():
    a = arr(1, 2)
    assert a.with_index(N(2), N(3)).equals(arr(1, 2, 3))
    assert a.with_index(N(0), N(9)).equals(arr(9, 2))
    with pytest.raises(IndexOutOfBounds):
        a.with_index(N(4), N(0))


def test_array_higher_order_methods():
    double = JacquesFunction("double", ["x"], lambda args: N(args[0].value * 2))
    is_even = JacquesFunction("even", ["x"], lambda args: B(args[0].value % 2 == 0))
    total = JacquesFunction("sum", ["a", "b"], lambda args: N(args[0].value + args[1].value))
    a = arr(1, 2, 3, 4)
    assert a.map(double).equals(arr(2, 4, 6, 8))
    assert a.filter(is_even).equals(arr(2, 4))
    assert a.reduce(N(0), total).value == 10
    assert a.contains(N(3)).value is True


def test_array_for_each_passes_index():
    seen = []
    fn = JacquesFunction("f", ["e", "i"], lambda args: seen.append((args[0].value, args[1].value)))
    arr(5, 6).for_each(fn)
    assert seen == [(5, 0), (6, 1)]


def test_array_index_must_be_whole():
    with pytest.raises(TypeMismatch):
        arr(1).get(N(0.5))


# --- Record ---

def test_record_is_immutable_by_replacement():
    r = JacquesRecord({"a": N(1)})
    r2 = r.set(S("b"), N(2))
    assert r.size().value == 1
    assert r2.size().value == 2
    assert r2.remove(S("a")).equals(JacquesRecord({"b": N(2)}))


def test_record_lookup_and_get():
    r = JacquesRecord({"name": S("x")})
    assert r.lookup("name").value == "x"
    assert r.get(S("missing")).value == 0
    with pytest.raises(UndefinedProperty):
        r.lookup("missing")


def test_record_merge_keys_values():
    r = JacquesRecord({"a": N(1)}).merge(JacquesRecord({"a": N(5), "b": N(2)}))
    assert [k.value for k in r.keys().elements] == ["a", "b"]
    assert [v.value for v in r.values().elements] == [5, 2]
    assert r.contains_key(S("b")).value is True
    assert r.contains_value(N(5)).value is True


# --- Functions ---

def test_native_arity_is_enforced():
    member = S("ab").get_member("Add")
    with pytest.raises(MissingArgument):
        member.call([])
    # extra arguments are dropped
    assert member.call([S("c"), S("ignored")]).value == "abc"


def test_function_bind_apply_compose():
    add = JacquesFunction("add", ["a", "b"], lambda args: N(args[0].value + args[1].value))
    inc = add.bind_arguments(N(1))
    assert inc.name == "add_bound"
    assert inc.params == ("b",)
    assert inc.call([N(4)]).value == 5
    assert add.apply(JacquesArray([N(2), N(3)])).value == 5
    double = JacquesFunction("double", ["x"], lambda args: N(args[0].value * 2))
    composed = double.compose(inc)
    assert composed.name == "double_add_bound_composed"
    assert composed.call([N(3)]).value == 8


def test_function_equality_is_identity_of_implementation():
    impl = lambda args: None
    f = JacquesFunction("f", [], impl)
    assert f.equals(f.bound(True))
    assert not f.equals(JacquesFunction("f", [], lambda args: None))


# --- Classes ---

def test_check_access_rules():
    base = JacquesClass("Base")
    child = JacquesClass("Child", base)
    other = JacquesClass("Other")
    private = ClassMember("p", N(1), PRIVATE, owner=base)
    protected = ClassMember("q", N(1), PROTECTED, owner=base)

    check_access(private, base)
    with pytest.raises(VisibilityError):
        check_access(private, child)
    check_access(protected, child)
    with pytest.raises(VisibilityError):
        check_access(protected, other)
    with pytest.raises(VisibilityError):
        check_access(protected, None)


def test_class_call_seeds_root_first():
    base = JacquesClass("Base")
    base.add_property(ClassMember("x", N(1)))
    base.add_property(ClassMember("y", N(2)))
    child = JacquesClass("Child", base)
    child.add_property(ClassMember("y", N(20)))
    inst = child.call([])
    assert isinstance(inst, JacquesInstance)
    assert inst.type_tag == "Child"
    assert inst.properties["x"].value == 1
    assert inst.properties["y"].value == 20


# --- Operators ---

def test_binary_operation_dispatch():
    assert binary_operation("+", N(1), N(2)).value == 3
    assert binary_operation("+", S("a"), N(1)).value == "a1"
    assert binary_operation("+", B(True), S("!")).value == "true!"
    assert binary_operation("==", N(1), S("1")).value is False
    assert binary_operation("!=", N(1), S("1")).value is True
    assert binary_operation("&&", B(True), B(True)).value is True
    with pytest.raises(IncompatibleOperandTypes):
        binary_operation("+", B(True), N(1))
    with pytest.raises(IncompatibleOperandTypes):
        binary_operation("<", N(1), S("a"))


def test_structural_equality():
    assert binary_operation("==", arr(1, 2), arr(1, 2)).value is True
    assert binary_operation("==", JacquesRecord({"a": N(1)}), JacquesRecord({"a": N(1)})).value is True


def test_unary_operation():
    assert unary_operation("-", N(2)).value == -2
    assert unary_operation("!", B(False)).value is True
    with pytest.raises(IncompatibleOperandTypes):
        unary_operation("-", S("x"))


@pytest.mark.parametrize("value,expected", [
    (N(0), False), (N(-1), True), (S(""), False), (S("0"), True),
    (B(False), False), (JacquesArray(), False), (arr(0), True),
    (JacquesRecord(), False), (None, False),
])
def test_truthiness(value, expected):
    assert is_truthy(value) is expected


def test_nan_and_infinity_print():
    assert N(math.inf).to_string() == "Infinity"
    assert N(math.nan).to_string() == "NaN"

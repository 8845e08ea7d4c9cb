import pytest
from jacques.jacques_runtime import ScriptRunner
from jacques.jacques_serialize import to_builtin


def run_jacques(src: str):
    runner = ScriptRunner()
    return runner.handle_script(src)


def assert_ok(res, expected=None):
    assert res.status == 'success', f"expected success, got {res.status}: {res.error_message}"
    if expected is not None:
        assert to_builtin(res.value) == expected


def assert_error(res, contains):
    assert res.status == 'error', f"expected error, got value {res.value!r}"
    assert contains in (res.error_message or ''), res.error_message


def stdout_lines(res):
    return [e['message'] for e in res.side_effects if e['topics'] == ['stdout']]


# --- Arrays ---

def test_filter_scenario():
    assert_ok(run_jacques("arr := [1,2,3]; arr.Filter(e => e % 2 == 0)"), [2])


def test_array_add_does_not_mutate():
    assert_ok(run_jacques("arr := [1, 2, 3]; arr2 := arr.Add(4); [arr.Length, arr2.Length]"), [3, 4])


def test_array_add_remove_round_trip():
    src = "arr := [1, 2, 3]; back := arr.Add(9).Remove(arr.Length); [back.Equals(arr), back == arr, arr.Length]"
    assert_ok(run_jacques(src), [True, True, 3])


def test_array_map_reduce_contains():
    assert_ok(run_jacques("[1, 2, 3].Map(x => x * 10)"), [10, 20, 30])
    assert_ok(run_jacques("[1, 2, 3, 4].Reduce(0, (acc, x) => acc + x)"), 10)
    assert_ok(run_jacques("[1, 2, 3].Contains(2)"), True)


def test_array_for_each_passes_element_and_index():
    res = run_jacques('["a", "b"].ForEach((e, i) => Println(i, e))')
    assert_ok(res)
    assert stdout_lines(res) == ["0 a", "1 b"]


def test_array_get_vs_index():
    assert_ok(run_jacques("arr := [1]; [arr.Get(0), arr.Get(5), arr[0]]"), [1, 0, 1])
    res = run_jacques("arr := [1]; arr[5]")
    assert_error(res, "IndexOutOfBounds")
    assert "Index 5 out of bounds" in res.error_message


def test_array_remove_out_of_range_is_unchanged():
    assert_ok(run_jacques("[1, 2].Remove(7)"), [1, 2])


def test_nested_arrays_and_tostring():
    assert_ok(run_jacques('[[1, 2], ["x"]].ToString()'), '[[1, 2], ["x"]]')


def test_array_callback_must_be_function():
    assert_error(run_jacques("[1].Map(5)"), "NotCallable")


def test_string_members():
    assert_ok(run_jacques('s := "hello"; [s.Length, s[1], "42".ToNumber() + 1, "true".ToBoolean()]'), [5, "e", 43, True])
    assert_error(run_jacques('"abc".ToNumber()'), "TypeMismatch")


# --- Records ---

PERSON = 'r := { name: "John", age: 30 };'


def test_record_tostring_and_tojson():
    assert_ok(run_jacques(PERSON + "r.ToString()"), '{ name: "John", age: 30 }')
    assert_ok(run_jacques(PERSON + "r.ToJSON()"), '{ "name": "John", "age": 30 }')


def test_record_toyaml():
    assert_ok(run_jacques('r := { a: 1, b: "x", c: [true] }; r.ToYAML()'), "a: 1\nb: x\nc:\n- true\n")


def test_record_access_forms():
    assert_ok(run_jacques(PERSON + 'r.name'), "John")
    assert_ok(run_jacques(PERSON + 'r["age"]'), 30)
    assert_ok(run_jacques(PERSON + 'r.Get("missing")'), 0)
    assert_ok(run_jacques(PERSON + 'r["missing"]'), 0)
    assert_error(run_jacques(PERSON + 'r.missing'), "UndefinedProperty")


def test_record_functional_updates():
    src = PERSON + """
    older := r.Set("age", 31);
    more := r.Add("city", "Paris");
    less := r.Remove("age");
    [r.age, older.age, more.Size, less.Size, r.Size]
    """
    assert_ok(run_jacques(src), [30, 31, 3, 1, 2])


def test_record_queries():
    src = PERSON + '[r.ContainsKey("name"), r.ContainsKey("x"), r.ContainsValue(30), r.Keys(), r.Values()]'
    assert_ok(run_jacques(src), [True, False, True, ["name", "age"], ["John", 30]])


def test_record_merge_and_equality():
    src = 'a := { x: 1, y: 2 }; b := { y: 20, z: 3 }; m := a.Merge(b); [m, m == { x: 1, y: 20, z: 3 }]'
    assert_ok(run_jacques(src), [{"x": 1, "y": 20, "z": 3}, True])


def test_record_for_each_passes_key_and_value():
    res = run_jacques(PERSON + "r.ForEach((k, v) => Println(k, v))")
    assert_ok(res)
    assert stdout_lines(res) == ["name John", "age 30"]


def test_record_set_requires_string_key():
    assert_error(run_jacques(PERSON + "r.Set(true, 1)"), "TypeMismatch")


def test_record_string_keys_in_literal():
    assert_ok(run_jacques('r := { "full name": "Ann" }; r["full name"]'), "Ann")

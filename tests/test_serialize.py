import pytest
import yaml

from jacques.jacques_serialize import serialize, deserialize, to_builtin, from_builtin
from jacques.jacques_datatypes import (
    JacquesNumber, JacquesString, JacquesBoolean, JacquesArray, JacquesRecord, JacquesFunction,
)
from jacques.jacques_errors import TypeMismatch


def test_json_roundtrip():
    value = {"a": 1, "b": [1, 2, "x"], "c": {"d": True}}
    s = serialize(from_builtin(value), fmt="json")
    assert deserialize(s, fmt="json") == value


def test_yaml_roundtrip():
    value = {"a": 1, "b": ["x", "y"], "c": {"d": 2.5}}
    s = serialize(from_builtin(value), fmt="yaml")
    assert deserialize(s, fmt="yaml") == value


def test_yaml_keeps_insertion_order():
    rec = JacquesRecord({"z": JacquesNumber(1), "a": JacquesNumber(2)})
    assert serialize(rec, fmt="yaml") == "z: 1\na: 2\n"


def test_to_builtin_integral_numbers_become_ints():
    assert to_builtin(JacquesNumber(3)) == 3
    assert isinstance(to_builtin(JacquesNumber(3)), int)
    assert to_builtin(JacquesNumber(2.5)) == 2.5


def test_from_builtin_kinds():
    out = from_builtin({"n": 1, "s": "x", "b": False, "xs": [1]})
    assert isinstance(out, JacquesRecord)
    assert isinstance(out.properties["n"], JacquesNumber)
    assert isinstance(out.properties["s"], JacquesString)
    assert isinstance(out.properties["b"], JacquesBoolean)
    assert isinstance(out.properties["xs"], JacquesArray)


def test_null_has_no_representation():
    with pytest.raises(TypeMismatch):
        from_builtin({"x": None})


def test_strict_serialization_rejects_functions():
    fn = JacquesFunction("f", [], lambda args: None)
    with pytest.raises(TypeMismatch):
        serialize(JacquesRecord({"f": fn}), fmt="json")
    # non-strict conversion passes it through untouched
    assert to_builtin(fn) is fn


def test_decoder_errors_propagate():
    with pytest.raises(ValueError):
        deserialize("{not json", fmt="json")
    with pytest.raises(yaml.YAMLError):
        deserialize("a: [1, 2", fmt="yaml")


def test_unknown_format():
    with pytest.raises(ValueError):
        deserialize("x", fmt="toml")
    with pytest.raises(ValueError):
        serialize(JacquesNumber(1), fmt="toml")

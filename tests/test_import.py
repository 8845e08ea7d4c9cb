import json

import pytest
from jacques.jacques_runtime import ScriptRunner
from jacques.jacques_serialize import to_builtin


def run_in(tmp_path, src: str):
    runner = ScriptRunner(source_dir=tmp_path.as_posix())
    return runner, runner.handle_script(src)


def assert_ok(res, expected=None):
    assert res.status == 'success', f"\n{res.format_error()}\nside_effects={res.side_effects!r}"
    if expected is not None:
        assert to_builtin(res.value) == expected


def assert_error(res, contains):
    assert res.status == 'error', f"expected error, got value {res.value!r}"
    assert contains in (res.error_message or ''), res.error_message


@pytest.fixture
def math_module(tmp_path):
    (tmp_path / "math.jq").write_text(
        "export function add(a, b) => a + b\n"
        "export PI := 3\n"
        "export class Vec\n"
        "  constructor(@x) end\n"
        "end\n"
        "export zero: Number\n"
        "secret := 1\n",
        encoding="utf-8",
    )
    return tmp_path


def test_import_exported_names(math_module):
    _, res = run_in(math_module, 'import add, PI, Vec, zero from "math.jq"\n[add(PI, 1), Vec(7).x, zero]')
    assert_ok(res, [4, 7, 0])


def test_suffix_is_optional(math_module):
    _, res = run_in(math_module, 'import add from "math"\nadd(1, 1)')
    assert_ok(res, 2)


def test_absolute_path_import(math_module):
    path = (math_module / "math.jq").as_posix()
    res = ScriptRunner().handle_script(f'import PI from "{path}"\nPI')
    assert_ok(res, 3)


def test_missing_export(math_module):
    _, res = run_in(math_module, 'import secret from "math.jq"')
    assert_error(res, "MissingExport")
    assert "does not export 'secret'" in res.error_message


def test_imported_bindings_are_constant(math_module):
    _, res = run_in(math_module, 'import PI from "math.jq"\nPI = 4')
    assert_error(res, "ConstantReassignment")


def test_relative_imports_resolve_from_module_dir(tmp_path):
    lib = tmp_path / "lib"
    lib.mkdir()
    (lib / "inner.jq").write_text("export base := 10\n", encoding="utf-8")
    (lib / "outer.jq").write_text(
        'import base from "inner.jq"\nexport function scaled(n) => n * base\n', encoding="utf-8"
    )
    _, res = run_in(tmp_path, 'import scaled from "lib/outer.jq"\nscaled(2)')
    assert_ok(res, 20)


def test_modules_are_cached_per_runner(tmp_path):
    (tmp_path / "m.jq").write_text('Println("loading")\nexport v := 1\n', encoding="utf-8")
    runner, res = run_in(tmp_path, 'import v from "m.jq"\nimport v from "m.jq"\nv')
    assert_ok(res, 1)
    out = [e['message'] for e in res.side_effects if e['topics'] == ['stdout']]
    assert out == ["loading"]
    assert len(runner.module_cache) == 1


def test_module_runs_in_its_own_environment(tmp_path):
    (tmp_path / "m.jq").write_text("hidden := 5\nexport shown := hidden + 1\n", encoding="utf-8")
    _, res = run_in(tmp_path, 'import shown from "m.jq"\nhidden')
    assert_error(res, "UndefinedVariable")


def test_circular_import_fails_fast(tmp_path):
    (tmp_path / "a.jq").write_text('import b from "b.jq"\nexport a := 1\n', encoding="utf-8")
    (tmp_path / "b.jq").write_text('import a from "a.jq"\nexport b := 2\n', encoding="utf-8")
    _, res = run_in(tmp_path, 'import a from "a.jq"')
    assert_error(res, "CircularImport")
    assert "a.jq -> " in res.error_message


def test_json_data_module(tmp_path):
    (tmp_path / "config.json").write_text(
        json.dumps({"name": "app", "port": 8080, "tags": ["a", "b"], "db": {"host": "x"}}),
        encoding="utf-8",
    )
    _, res = run_in(tmp_path, 'import name, port, tags, db from "config.json"\n[name, port, tags.Length, db.host]')
    assert_ok(res, ["app", 8080, 2, "x"])


def test_yaml_data_module(tmp_path):
    (tmp_path / "settings.yaml").write_text("debug: true\nlevel: 3\nratio: 0.5\n", encoding="utf-8")
    _, res = run_in(tmp_path, 'import debug, level, ratio from "settings.yaml"\n[debug, level, ratio]')
    assert_ok(res, [True, 3, 0.5])


def test_data_module_with_null_fails(tmp_path):
    (tmp_path / "bad.json").write_text('{"x": null}', encoding="utf-8")
    _, res = run_in(tmp_path, 'import x from "bad.json"')
    assert_error(res, "ModuleError")
    assert "null" in res.error_message


def test_data_module_must_be_mapping(tmp_path):
    (tmp_path / "list.yaml").write_text("- 1\n- 2\n", encoding="utf-8")
    _, res = run_in(tmp_path, 'import x from "list.yaml"')
    assert_error(res, "must contain a mapping")


def test_undecodable_data_module(tmp_path):
    (tmp_path / "broken.json").write_text("{oops", encoding="utf-8")
    _, res = run_in(tmp_path, 'import x from "broken.json"')
    assert_error(res, "Cannot decode json module")


def test_missing_module_file(tmp_path):
    _, res = run_in(tmp_path, 'import x from "nope.jq"')
    assert_error(res, "ModuleError")
    assert "Cannot read module" in res.error_message


def test_failure_inside_module_is_wrapped(tmp_path):
    (tmp_path / "boom.jq").write_text("export x := 1 / 0\n", encoding="utf-8")
    _, res = run_in(tmp_path, 'import x from "boom.jq"')
    assert_error(res, "ModuleError")
    assert "DivisionByZero" in res.error_message


def test_failure_inside_module_keeps_cause(tmp_path):
    from jacques.jacques_errors import ModuleError, DivisionByZero
    (tmp_path / "boom.jq").write_text("export x := 1 / 0\n", encoding="utf-8")
    runner = ScriptRunner(source_dir=tmp_path.as_posix())
    with pytest.raises(ModuleError) as exc:
        runner.run('import x from "boom.jq"')
    assert isinstance(exc.value.__cause__, DivisionByZero)

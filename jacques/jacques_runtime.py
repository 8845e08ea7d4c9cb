# jacques_runtime.py

import inspect
import os
import sys
from dataclasses import dataclass, field
from typing import Any, Dict, List, Literal, Optional, TextIO

from jacques.jacques_tokens import Token, tokenize
from jacques.jacques_parser import parse
from jacques.jacques_ast import Program
from jacques.jacques_interpreter import Evaluator
from jacques.jacques_environment import Environment
from jacques.jacques_datatypes import (
    JacquesValue, JacquesNumber, JacquesString, JacquesBoolean, JacquesArray, JacquesRecord,
    JacquesFunction, is_truthy, _expect,
)
from jacques.jacques_errors import JacquesError, CircularImport, ModuleError, TypeMismatch
from jacques.jacques_file import read_module, resolve_module_path
from jacques.jacques_serialize import from_builtin

# Deep script recursion needs more Python frames than the interpreter default.
RECURSION_LIMIT = 20000

# ===================================================================
# 1. Built-ins
# ===================================================================


def jacques_builtin(name: str):
    """Marks a StdLib method as the global built-in `name`."""
    def decorator(func):
        func._jacques_builtin = name
        return func
    return decorator


class StdLib:
    """The fixed table of global built-ins, consulted after user bindings."""

    def __init__(self, runner: 'ScriptRunner'):
        self.runner = runner

    @jacques_builtin("Println")
    def _println(self, *values):
        self.runner.emit("stdout", " ".join(v.to_string() for v in values))
        return None

    @jacques_builtin("Number")
    def _number(self, value=None):
        match value:
            case None:
                return JacquesNumber(0)
            case JacquesNumber():
                return JacquesNumber(value.value)
            case JacquesString() | JacquesBoolean():
                return value.to_number()
            case _:
                raise TypeMismatch(f"Cannot convert {value.type_tag} to Number")

    @jacques_builtin("String")
    def _string(self, value=None):
        if value is None:
            return JacquesString("")
        return JacquesString(value.to_string())

    @jacques_builtin("Boolean")
    def _boolean(self, value=None):
        if value is None:
            return JacquesBoolean(False)
        if isinstance(value, JacquesString):
            return value.to_boolean()
        return JacquesBoolean(is_truthy(value))

    @jacques_builtin("Array")
    def _array(self, *values):
        return JacquesArray(values)

    @jacques_builtin("Map")
    def _map(self, source=None):
        if source is None:
            return JacquesRecord()
        return JacquesRecord(_expect(source, JacquesRecord, "Map").properties)

    @jacques_builtin("Record")
    def _record(self, source=None):
        return self._map(source)

    def bindings(self) -> Environment:
        env = Environment()
        for _, member in inspect.getmembers(self):
            name = getattr(member, "_jacques_builtin", None)
            if name is not None:
                env.define(name, JacquesFunction.from_native(name, member).bound(True), True)
        return env


# ===================================================================
# 2. Script Execution
# ===================================================================


@dataclass
class ExecutionResult:
    """The structured result of a script execution."""
    status: Literal['success', 'error']
    value: Any = None
    error_message: Optional[str] = None
    error_token: Optional[Dict] = None
    side_effects: List[Dict] = field(default_factory=list)

    def format_error(self) -> str:
        """Formats an error message with line and column if available."""
        if self.status != 'error':
            return ""
        msg = str(self.error_message or "Unknown error")
        if self.error_token and self.error_token.get('line') is not None:
            line = self.error_token['line']
            col = self.error_token.get('col')
            if not msg.startswith("Error on line "):
                col_info = f", col {col}" if col is not None else ""
                return f"Error on line {line}{col_info}: {msg}"
        return msg


@dataclass
class DebugResult:
    """Everything a test harness may want to inspect about one run."""
    tokens: List[Token]
    ast: Program
    value: Optional[JacquesValue]
    env: Dict[str, JacquesValue]


def _env_int(name: str) -> Optional[int]:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return None
    try:
        return int(raw)
    except ValueError as e:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from e


class ScriptRunner:
    """Tokenizes, parses and executes Jacques code against a persistent root environment."""

    def __init__(self, source_dir: Optional[str] = None, stdout: Optional[TextIO] = None,
                 max_loop_iters: Optional[int] = None, *,
                 module_cache: Optional[Dict[str, Dict[str, JacquesValue]]] = None,
                 import_chain: Optional[List[str]] = None):
        self.source_dir = source_dir  # directory of the current source file, if known
        self.stdout = stdout
        if max_loop_iters is None:
            max_loop_iters = _env_int("JACQUES_MAX_LOOP_ITERS")
        self.max_loop_iters = max_loop_iters
        self.module_cache = module_cache if module_cache is not None else {}
        self.import_chain = list(import_chain or [])

        self.evaluator = Evaluator(max_loop_iters=max_loop_iters)  # Each runner has its own evaluator/side_effects
        self.evaluator.builtins = StdLib(self).bindings()
        self.evaluator.module_loader = self._load_module
        self.root_env = Environment()

    def emit(self, topic: str, message: str):
        self.evaluator.side_effects.append({'topics': [topic], 'message': message})
        if topic == 'stdout' and self.stdout is not None:
            self.stdout.write(message + "\n")
            self.stdout.flush()

    # --- entry points ---

    def run(self, source: str) -> Optional[JacquesValue]:
        """Runs `source`, returning the program's value; failures raise JacquesError."""
        return self.run_debug(source).value

    def run_debug(self, source: str) -> DebugResult:
        """Like `run`, but also returns the tokens, the AST and the top-level bindings."""
        if sys.getrecursionlimit() < RECURSION_LIMIT:
            sys.setrecursionlimit(RECURSION_LIMIT)
        self.evaluator.call_stack.clear()
        tokens = tokenize(source)
        program = parse(tokens)
        self.evaluator._dbg("parsed", len(program.body), "statements")
        value = self.evaluator.evaluate(program, self.root_env)
        return DebugResult(tokens, program, value, self.root_env.snapshot())

    def handle_script(self, source_code: str) -> ExecutionResult:
        """Runs a script and reports the outcome instead of raising."""
        self.evaluator.side_effects.clear()
        try:
            value = self.run(source_code)
        except (JacquesError, RecursionError) as e:
            err_msg, err_token = self._format_runtime_error(e, source_code)
            self.emit('stderr', err_msg)
            return ExecutionResult(
                status='error',
                error_message=err_msg,
                error_token=err_token,
                side_effects=self.evaluator.side_effects,
            )
        return ExecutionResult(status='success', value=value, side_effects=self.evaluator.side_effects)

    # --- modules ---

    def _load_module(self, locator: str) -> Dict[str, JacquesValue]:
        path = resolve_module_path(locator, self.source_dir)
        if path in self.import_chain:
            raise CircularImport(self.import_chain[self.import_chain.index(path):] + [path])
        cached = self.module_cache.get(path)
        if cached is not None:
            return cached

        module = read_module(path)
        self.evaluator._dbg("load module", path, "data" if module.is_data else "source")
        if module.is_data:
            try:
                exports = {str(k): from_builtin(v) for k, v in module.data.items()}
            except TypeMismatch as e:
                raise ModuleError(f"Cannot load data module '{locator}': {e.message}") from e
        else:
            child = ScriptRunner(
                source_dir=os.path.dirname(path),
                stdout=self.stdout,
                max_loop_iters=self.max_loop_iters,
                module_cache=self.module_cache,
                import_chain=self.import_chain + [path],
            )
            try:
                child.run(module.text)
            except ModuleError:
                raise
            except JacquesError as e:
                raise ModuleError(f"Error in module '{locator}': {e}") from e
            finally:
                self.evaluator.side_effects.extend(child.evaluator.side_effects)
            exports = dict(child.evaluator.exports)
        self.module_cache[path] = exports
        return exports

    # --- error formatting ---

    def _format_runtime_error(self, e, source: str) -> tuple[str, Optional[dict]]:
        match e:
            case JacquesError():
                msg = f"{e.kind}: {e.message}"
                line, col = e.line, e.col
            case RecursionError():
                msg = "RecursionError: maximum call depth exceeded"
                node = self.evaluator.current_node
                line, col = (node.line, node.col) if node is not None else (None, None)

        token = None
        if line is not None:
            token = {'line': line, 'col': col}
            msg = f"{msg}\n(line {line}, col {col})"
            context = self._source_context(source, line, col)
            if context:
                msg = f"{msg}\n{context}"

        st = self._format_stacktrace(getattr(e, 'stacktrace', None))
        if st:
            msg += "\n" + st
        return msg, token

    def _source_context(self, source: str, line: int, col: Optional[int], radius: int = 2) -> str:
        lines = source.splitlines()
        if not line or line < 1 or line > len(lines):
            return ""
        start = max(1, line - radius)
        end = min(len(lines), line + radius)
        width = len(str(end))
        out = []
        for i in range(start, end + 1):
            prefix = ">" if i == line else " "
            out.append(f"{prefix} {str(i).rjust(width)} | {lines[i - 1]}")
            if i == line and col is not None:
                out.append(f"  {' ' * width} | {' ' * max(col - 1, 0)}^")
        return "\n".join(out)

    def _format_stacktrace(self, frames: Optional[List[dict]]) -> str:
        if not frames:
            return ""
        from jacques.jacques_printer import Printer
        printer = Printer()
        parts = []
        for frame in frames:
            args = " ".join(printer.pformat(a, 1) for a in frame.get('args') or [])
            parts.append(f"({frame.get('name') or '<call>'}{' ' + args if args else ''})")
        return "Jacques stacktrace: " + " ".join(parts)


# ===================================================================
# 3. Convenience
# ===================================================================


def run(source: str, *, source_dir: Optional[str] = None) -> Optional[JacquesValue]:
    """Runs `source` in a fresh runner, printing to stdout."""
    return ScriptRunner(source_dir=source_dir, stdout=sys.stdout).run(source)


def run_debug(source: str, *, source_dir: Optional[str] = None) -> DebugResult:
    """Runs `source` in a fresh runner and returns tokens, AST, value and top-level bindings."""
    return ScriptRunner(source_dir=source_dir, stdout=sys.stdout).run_debug(source)

"""
Typed failures raised by the Jacques lexer, parser, evaluator and module loader.

Every failure aborts the current run and propagates to the host caller. The
runtime's job is only to produce a precise, typed, position-annotated message;
presentation is left to `ScriptRunner.handle_script`.
"""
from typing import Any, List, Optional


class JacquesError(Exception):
    """Base class for every failure a Jacques program can produce."""
    kind = "JacquesError"

    def __init__(self, message: str, line: Optional[int] = None, col: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.line = line
        self.col = col
        # Snapshot of the evaluator call stack at the point of failure.
        self.stacktrace: Optional[List[dict]] = None

    def attach_position(self, line: Optional[int], col: Optional[int]) -> 'JacquesError':
        """Record a source position unless a more precise one is already set."""
        if self.line is None and line is not None:
            self.line = line
            self.col = col
        return self

    def __str__(self) -> str:
        if self.line is not None:
            return f"{self.kind}: {self.message} (line {self.line}, col {self.col})"
        return f"{self.kind}: {self.message}"


class JacquesSyntaxError(JacquesError):
    kind = "SyntaxError"


class UndefinedVariable(JacquesError):
    kind = "UndefinedVariable"

    def __init__(self, name: str, line: Optional[int] = None, col: Optional[int] = None):
        super().__init__(f"Undefined variable: {name}", line, col)
        self.name = name


class ConstantReassignment(JacquesError):
    kind = "ConstantReassignment"

    def __init__(self, name: str, line: Optional[int] = None, col: Optional[int] = None):
        super().__init__(f"Cannot reassign constant: {name}", line, col)
        self.name = name


class TypeMismatch(JacquesError):
    kind = "TypeMismatch"


class IncompatibleOperandTypes(JacquesError):
    kind = "IncompatibleOperandTypes"

    def __init__(self, operator: str, left: str, right: Optional[str] = None):
        if right is None:
            msg = f"Operator '{operator}' cannot be applied to {left}"
        else:
            msg = f"Operator '{operator}' cannot be applied to {left} and {right}"
        super().__init__(msg)
        self.operator = operator


class NotCallable(JacquesError):
    kind = "NotCallable"


class DivisionByZero(JacquesError):
    kind = "DivisionByZero"

    def __init__(self, message: str = "Division by zero"):
        super().__init__(message)


class MissingExport(JacquesError):
    kind = "MissingExport"

    def __init__(self, name: str, module: str):
        super().__init__(f"Module '{module}' does not export '{name}'")
        self.name = name
        self.module = module


class UndefinedProperty(JacquesError):
    kind = "UndefinedProperty"

    def __init__(self, name: str, owner: str):
        super().__init__(f"Property '{name}' not found on {owner}")
        self.name = name


class IndexOutOfBounds(JacquesError):
    kind = "IndexOutOfBounds"


class VisibilityError(JacquesError):
    kind = "VisibilityError"


class MissingArgument(JacquesError):
    kind = "MissingArgument"


class LoopLimitExceeded(JacquesError):
    kind = "LoopLimitExceeded"


class ModuleError(JacquesError):
    kind = "ModuleError"


class CircularImport(ModuleError):
    kind = "CircularImport"

    def __init__(self, chain: List[Any]):
        super().__init__("Circular import: " + " -> ".join(str(p) for p in chain))
        self.chain = list(chain)


__all__ = [
    "JacquesError",
    "JacquesSyntaxError",
    "UndefinedVariable",
    "ConstantReassignment",
    "TypeMismatch",
    "IncompatibleOperandTypes",
    "NotCallable",
    "DivisionByZero",
    "MissingExport",
    "UndefinedProperty",
    "IndexOutOfBounds",
    "VisibilityError",
    "MissingArgument",
    "LoopLimitExceeded",
    "ModuleError",
    "CircularImport",
]

"""
AST node definitions for Jacques.

Nodes are frozen dataclasses: once the parser builds a tree it is never
modified, and no node refers back to its parent. Child sequences are tuples.
Every node records the line/col of the token that started it.
"""
from dataclasses import dataclass, field
from typing import Any, Optional, Tuple

PUBLIC = "public"
PRIVATE = "private"
PROTECTED = "protected"


@dataclass(frozen=True)
class Node:
    line: int = field(default=0, kw_only=True, compare=False)
    col: int = field(default=0, kw_only=True, compare=False)


# =================================================================
# Program and blocks
# =================================================================

@dataclass(frozen=True)
class Program(Node):
    body: Tuple[Node, ...]


@dataclass(frozen=True)
class Block(Node):
    """A `{ ... }` statement block used as a lambda body."""
    body: Tuple[Node, ...]


# =================================================================
# Literals and names
# =================================================================

@dataclass(frozen=True)
class NumberLiteral(Node):
    value: float


@dataclass(frozen=True)
class StringLiteral(Node):
    value: str


@dataclass(frozen=True)
class BooleanLiteral(Node):
    value: bool


@dataclass(frozen=True)
class Identifier(Node):
    """A name reference. `@name` is kept verbatim and resolves against `self`."""
    name: str

    @property
    def is_shorthand(self) -> bool:
        return self.name.startswith("@")


@dataclass(frozen=True)
class ArrayLiteral(Node):
    elements: Tuple[Node, ...]


@dataclass(frozen=True)
class RecordLiteral(Node):
    entries: Tuple[Tuple[str, Node], ...]


# =================================================================
# Expressions
# =================================================================

@dataclass(frozen=True)
class BinaryExpression(Node):
    operator: str
    left: Node
    right: Node


@dataclass(frozen=True)
class UnaryExpression(Node):
    operator: str
    operand: Node


@dataclass(frozen=True)
class UpdateExpression(Node):
    """Postfix `name++`."""
    operator: str
    target: Identifier


@dataclass(frozen=True)
class MemberExpression(Node):
    """`object.name` when not computed (property is a str), `object[expr]` otherwise."""
    object: Node
    property: Any
    computed: bool = False


@dataclass(frozen=True)
class CallExpression(Node):
    callee: Node
    arguments: Tuple[Node, ...]


@dataclass(frozen=True)
class Assignment(Node):
    target: Node
    value: Node
    is_constant: bool = False
    type_annotation: Optional[str] = None


@dataclass(frozen=True)
class TypeDeclaration(Node):
    """`name: Type` with no initializer; binds the type's default value."""
    name: str
    type_name: str


# =================================================================
# Functions
# =================================================================

@dataclass(frozen=True)
class Parameter(Node):
    name: str
    type_annotation: Optional[str] = None
    default: Optional[Node] = None
    is_shorthand: bool = False


@dataclass(frozen=True)
class FunctionDeclaration(Node):
    """A `function` declaration or expression; `name` is None when anonymous."""
    name: Optional[str]
    params: Tuple[Parameter, ...]
    body: Tuple[Node, ...]
    is_expression: bool = False


@dataclass(frozen=True)
class Lambda(Node):
    """`(params) => body`; body is an expression node or a `Block`."""
    params: Tuple[Parameter, ...]
    body: Node


@dataclass(frozen=True)
class ReturnStatement(Node):
    argument: Optional[Node] = None


# =================================================================
# Control flow
# =================================================================

@dataclass(frozen=True)
class IfStatement(Node):
    test: Node
    consequent: Tuple[Node, ...]
    alternate: Optional[Tuple[Node, ...]] = None


@dataclass(frozen=True)
class WhileStatement(Node):
    condition: Node
    body: Tuple[Node, ...]


# =================================================================
# Classes
# =================================================================

@dataclass(frozen=True)
class ClassProperty(Node):
    name: str
    value: Optional[Node] = None
    type_annotation: Optional[str] = None
    visibility: str = PUBLIC
    is_static: bool = False
    is_constant: bool = False


@dataclass(frozen=True)
class ClassMethod(Node):
    name: str
    function: FunctionDeclaration
    visibility: str = PUBLIC
    is_static: bool = False


@dataclass(frozen=True)
class ClassAccessor(Node):
    """`property Name get() ... set(v) ... end`."""
    name: str
    getter: Optional[FunctionDeclaration] = None
    setter: Optional[FunctionDeclaration] = None


@dataclass(frozen=True)
class ClassDeclaration(Node):
    name: str
    superclass: Optional[str]
    members: Tuple[Node, ...]
    constructor: Optional[FunctionDeclaration] = None


# =================================================================
# Modules
# =================================================================

@dataclass(frozen=True)
class ImportDeclaration(Node):
    names: Tuple[str, ...]
    source: str


@dataclass(frozen=True)
class ExportDeclaration(Node):
    declaration: Node

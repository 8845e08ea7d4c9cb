"""
The core Jacques interpreter: the Evaluator walks an AST against an
Environment chain.

`evaluate(node, env)` returns a JacquesValue, a `ReturnSignal`, or None
(statements that produce nothing). A ReturnSignal unwinds statement blocks
and loops and is unwrapped at function, lambda and method boundaries.
"""
import os
import sys
from typing import Any, Callable, Dict, List, Optional

from jacques.jacques_ast import (
    Node, Program, Block, NumberLiteral, StringLiteral, BooleanLiteral, Identifier,
    ArrayLiteral, RecordLiteral, BinaryExpression, UnaryExpression, UpdateExpression,
    MemberExpression, CallExpression, Assignment, TypeDeclaration,
    FunctionDeclaration, Lambda, ReturnStatement, IfStatement, WhileStatement,
    ClassProperty, ClassMethod, ClassAccessor, ClassDeclaration,
    ImportDeclaration, ExportDeclaration,
)
from jacques.jacques_datatypes import (
    JacquesValue, JacquesNumber, JacquesString, JacquesBoolean, JacquesArray, JacquesRecord,
    JacquesFunction, JacquesClass, JacquesInstance, ClassMember, Accessor, Method,
    binary_operation, unary_operation, is_truthy,
)
from jacques.jacques_environment import Environment
from jacques.jacques_errors import (
    JacquesError, UndefinedVariable, ConstantReassignment, TypeMismatch, IncompatibleOperandTypes,
    NotCallable, MissingExport, MissingArgument, LoopLimitExceeded,
)

# Lexical marker for "code of this class is running"; not a valid identifier.
CLASS_CONTEXT = "<class>"

TYPE_DEFAULTS: Dict[str, Callable[[], JacquesValue]] = {
    "Number": lambda: JacquesNumber(0),
    "String": lambda: JacquesString(""),
    "Boolean": lambda: JacquesBoolean(True),
    "Array": lambda: JacquesArray(),
    "Record": lambda: JacquesRecord(),
}

BUILTIN_TYPES = {"Number", "String", "Boolean", "Array", "Record", "Function", "Class"}


class ReturnSignal:
    """Carries a `return` value out of nested blocks."""
    __slots__ = ("value",)

    def __init__(self, value: Optional[JacquesValue]):
        self.value = value

    def __repr__(self) -> str:
        return f"<ReturnSignal {self.value!r}>"


class Evaluator:
    """The Jacques execution engine."""

    def __init__(self, builtins: Optional[Environment] = None, max_loop_iters: Optional[int] = None):
        self.builtins = builtins if builtins is not None else Environment()
        self.max_loop_iters = max_loop_iters
        self.side_effects: List[Dict] = []
        self.call_stack: List[Dict] = []
        self.current_node: Optional[Node] = None
        # Names registered by `export` statements, in declaration order.
        self.exports: Dict[str, JacquesValue] = {}
        # Set by the runner: locator -> export table of the loaded module.
        self.module_loader: Optional[Callable[[str], Dict[str, JacquesValue]]] = None

    # ── Call stack and tracing ───────────────────────────────

    def _push_frame(self, name, func, args, call_site_node):
        self.call_stack.append({
            'name': name,
            'func': func,
            'args': args,
            'call_site': (call_site_node.line, call_site_node.col) if call_site_node is not None else None,
        })

    def _pop_frame(self):
        if self.call_stack:
            self.call_stack.pop()

    def _dbg(self, *parts):
        if os.environ.get("JACQUES_DEBUG"):
            print("[DBG]", *parts, file=sys.stderr)

    # ── Dispatch ─────────────────────────────────────────────

    def evaluate(self, node: Node, env: Environment) -> Any:
        """Evaluates `node`, tagging any failure with the innermost node position."""
        self.current_node = node
        try:
            return self._eval(node, env)
        except JacquesError as e:
            e.attach_position(node.line, node.col)
            raise

    def _eval(self, node: Node, env: Environment) -> Any:
        match node:
            case Program():
                return self._eval_program(node, env)
            case NumberLiteral():
                return JacquesNumber(node.value)
            case StringLiteral():
                return JacquesString(node.value)
            case BooleanLiteral():
                return JacquesBoolean(node.value)
            case Identifier():
                return self._lookup(node.name, env)
            case ArrayLiteral():
                return JacquesArray([self._value(e, env) for e in node.elements])
            case RecordLiteral():
                return JacquesRecord({key: self._value(expr, env) for key, expr in node.entries})
            case BinaryExpression():
                left = self._value(node.left, env)
                right = self._value(node.right, env)
                return binary_operation(node.operator, left, right)
            case UnaryExpression():
                return unary_operation(node.operator, self._value(node.operand, env))
            case UpdateExpression():
                return self._eval_update(node, env)
            case MemberExpression():
                return self._eval_member(node, env)
            case CallExpression():
                callee = self._value(node.callee, env)
                args = [self._value(a, env) for a in node.arguments]
                return self.call(callee, args, node)
            case Assignment():
                return self._eval_assignment(node, env)
            case TypeDeclaration():
                value = self._default_for_type(node.type_name)
                env.define(node.name, value.bound(False), False)
                return value
            case FunctionDeclaration():
                fn = self._make_function(node, env)
                if node.name and not node.is_expression:
                    env.define(node.name, fn.bound(False), False)
                return fn
            case Lambda():
                return self._make_lambda(node, env)
            case Block():
                return self._eval_block(node.body, env)
            case ReturnStatement():
                value = self.evaluate(node.argument, env) if node.argument is not None else None
                return ReturnSignal(value)
            case IfStatement():
                if is_truthy(self._value(node.test, env)):
                    return self._eval_block(node.consequent, env)
                if node.alternate is not None:
                    return self._eval_block(node.alternate, env)
                return None
            case WhileStatement():
                return self._eval_while(node, env)
            case ClassDeclaration():
                return self._make_class(node, env)
            case ImportDeclaration():
                return self._eval_import(node, env)
            case ExportDeclaration():
                return self._eval_export(node, env)
            case _:
                raise JacquesError(f"Cannot evaluate node of type {type(node).__name__}")

    def _value(self, node: Node, env: Environment) -> JacquesValue:
        """Evaluates an expression that must produce a value."""
        result = self.evaluate(node, env)
        if not isinstance(result, JacquesValue):
            raise TypeMismatch("Expression did not produce a value")
        return result

    def _eval_program(self, node: Program, env: Environment) -> Optional[JacquesValue]:
        result = None
        for stmt in node.body:
            result = self.evaluate(stmt, env)
            if isinstance(result, ReturnSignal):
                return result.value
        return result

    def _eval_block(self, body, env: Environment) -> Any:
        result = None
        for stmt in body:
            result = self.evaluate(stmt, env)
            if isinstance(result, ReturnSignal):
                return result
        return result

    def _eval_while(self, node: WhileStatement, env: Environment) -> Any:
        iterations = 0
        while is_truthy(self._value(node.condition, env)):
            iterations += 1
            if self.max_loop_iters is not None and iterations > self.max_loop_iters:
                raise LoopLimitExceeded(f"while loop exceeded {self.max_loop_iters} iterations")
            result = self._eval_block(node.body, env)
            if isinstance(result, ReturnSignal):
                return result
        return None

    # ── Names ────────────────────────────────────────────────

    def _lookup(self, name: str, env: Environment) -> JacquesValue:
        if name.startswith("@"):
            return self._receiver(env, name).lookup(name[1:], self._class_context(env))
        owner = env.find_owner(name)
        if owner is not None:
            return owner.bindings[name].value
        owner = self.builtins.find_owner(name)
        if owner is not None:
            return owner.bindings[name].value
        raise UndefinedVariable(name)

    def _receiver(self, env: Environment, shorthand: str) -> JacquesValue:
        owner = env.find_owner("self")
        if owner is None:
            raise UndefinedVariable(f"self (needed by '{shorthand}')")
        return owner.bindings["self"].value

    def _class_context(self, env: Environment) -> Optional[JacquesClass]:
        owner = env.find_owner(CLASS_CONTEXT)
        return owner.bindings[CLASS_CONTEXT].value if owner is not None else None

    # ── Assignment ───────────────────────────────────────────

    def _eval_assignment(self, node: Assignment, env: Environment) -> JacquesValue:
        value = self._value(node.value, env)
        if node.type_annotation:
            self._check_type(value, node.type_annotation, env, f"'{getattr(node.target, 'name', '?')}'")
        target = node.target
        match target:
            case Identifier() if target.is_shorthand:
                self._receiver(env, target.name).assign(target.name[1:], value, self._class_context(env))
            case Identifier():
                self._assign_name(target.name, value, node, env)
            case MemberExpression():
                self._assign_member(target, value, env)
            case _:
                raise TypeMismatch("Invalid assignment target")
        return value

    def _assign_name(self, name: str, value: JacquesValue, node: Assignment, env: Environment):
        owner = env.find_owner(name)
        if owner is None:
            env.define(name, value.bound(node.is_constant), node.is_constant)
            return
        binding = owner.bindings[name]
        if binding.is_constant:
            raise ConstantReassignment(name)
        self._check_reassignment(name, binding.value, value, node.value)
        env.assign(name, value.bound(False))

    def _check_reassignment(self, name: str, old: JacquesValue, new: JacquesValue, value_node: Node):
        """A rebinding must keep the type tag, except for Result, functions and concatenated strings."""
        if name == "Result" or isinstance(new, JacquesFunction):
            return
        if isinstance(new, JacquesString) and isinstance(value_node, BinaryExpression):
            return
        if old.type_tag != new.type_tag:
            raise TypeMismatch(f"Cannot assign {new.type_tag} to '{name}' of type {old.type_tag}")

    def _assign_member(self, target: MemberExpression, value: JacquesValue, env: Environment):
        obj = self._value(target.object, env)
        key = self._value(target.property, env) if target.computed else JacquesString(target.property)
        context = self._class_context(env)
        match obj:
            case JacquesInstance() | JacquesClass():
                obj.assign(self._member_name(key), value, context)
            case JacquesRecord():
                self._write_back(target.object, obj.set(key, value), env)
            case JacquesArray() if target.computed:
                self._write_back(target.object, obj.with_index(key, value), env)
            case _:
                raise TypeMismatch(f"Cannot assign property '{self._member_name(key)}' on {obj.type_tag}")

    def _write_back(self, node: Node, value: JacquesValue, env: Environment):
        """Stores a functionally updated record/array back into the slot it was read from."""
        match node:
            case Identifier() if node.is_shorthand:
                self._receiver(env, node.name).assign(node.name[1:], value, self._class_context(env))
            case Identifier():
                owner = env.find_owner(node.name)
                if owner is None:
                    raise UndefinedVariable(node.name)
                if owner.bindings[node.name].is_constant:
                    raise ConstantReassignment(node.name)
                owner.bindings[node.name].value = value
            case MemberExpression():
                self._assign_member(node, value, env)
            case _:
                raise TypeMismatch("Cannot assign into a temporary value")

    def _member_name(self, key: JacquesValue) -> str:
        if isinstance(key, JacquesString):
            return key.value
        return key.to_string()

    def _eval_update(self, node: UpdateExpression, env: Environment) -> JacquesValue:
        name = node.target.name
        current = self._lookup(name, env)
        if not isinstance(current, JacquesNumber):
            raise IncompatibleOperandTypes(node.operator, current.type_tag)
        updated = JacquesNumber(current.value + 1)
        if name.startswith("@"):
            self._receiver(env, name).assign(name[1:], updated, self._class_context(env))
            return current
        owner = env.find_owner(name)
        if owner is None:
            raise UndefinedVariable(name)
        if owner.bindings[name].is_constant:
            raise ConstantReassignment(name)
        owner.bindings[name].value = updated
        return current

    # ── Types ────────────────────────────────────────────────

    def _default_for_type(self, type_name: str) -> JacquesValue:
        factory = TYPE_DEFAULTS.get(type_name)
        if factory is None:
            raise TypeMismatch(f"Unknown type: {type_name}")
        return factory()

    def _check_type(self, value: JacquesValue, type_name: str, env: Environment, what: str):
        if type_name == "Any":
            return
        if type_name in BUILTIN_TYPES:
            if value.type_tag != type_name:
                raise TypeMismatch(f"Expected {type_name} for {what}, got {value.type_tag}")
            return
        owner = env.find_owner(type_name)
        cls = owner.bindings[type_name].value if owner is not None else None
        if not isinstance(cls, JacquesClass):
            raise TypeMismatch(f"Unknown type: {type_name}")
        if not (isinstance(value, JacquesInstance) and value.cls.is_subclass_of(cls)):
            raise TypeMismatch(f"Expected {type_name} for {what}, got {value.type_tag}")

    # ── Members ──────────────────────────────────────────────

    def _eval_member(self, node: MemberExpression, env: Environment) -> JacquesValue:
        obj = self._value(node.object, env)
        if not node.computed:
            return obj.lookup(node.property, self._class_context(env))
        key = self._value(node.property, env)
        match obj:
            case JacquesArray():
                return obj.at_index(key)
            case JacquesString():
                return obj.char_at(key)
            case JacquesRecord():
                return obj.get(key)
            case JacquesInstance() | JacquesClass():
                return obj.lookup(self._member_name(key), self._class_context(env))
            case _:
                raise TypeMismatch(f"Cannot index into {obj.type_tag}")

    # ── Calls ────────────────────────────────────────────────

    def call(self, callee: Any, args: List[JacquesValue], node: Optional[Node] = None) -> Any:
        """Invokes a Function or Class value with already-evaluated arguments."""
        if not isinstance(callee, (JacquesFunction, JacquesClass)):
            what = callee.type_tag if isinstance(callee, JacquesValue) else "no value"
            if isinstance(node, CallExpression) and isinstance(node.callee, Identifier):
                raise NotCallable(f"'{node.callee.name}' is a {what}, not a function")
            raise NotCallable(f"{what} is not callable")
        self._dbg("call", callee.name, "argc", len(args))
        self._push_frame(callee.name, callee, args, node)
        try:
            return callee.call(args)
        except JacquesError as e:
            if e.stacktrace is None:
                e.stacktrace = [dict(frame) for frame in self.call_stack]
            raise
        finally:
            self._pop_frame()

    def _bind_arguments(self, name: str, params, args: List[JacquesValue], call_env: Environment,
                        closure: Environment, receiver: Any = None, context: Optional[JacquesClass] = None):
        for i, param in enumerate(params):
            if i < len(args):
                value = args[i]
            elif param.default is not None:
                value = self._value(param.default, closure)
            else:
                raise MissingArgument(f"Missing argument '{param.name}' in call to {name}")
            if param.type_annotation:
                self._check_type(value, param.type_annotation, closure, f"parameter '{param.name}' of {name}")
            call_env.define(param.name, value.bound(False), False)
            if param.is_shorthand:
                if not isinstance(receiver, JacquesInstance):
                    raise TypeMismatch(f"Shorthand parameter '@{param.name}' needs an instance")
                receiver.assign(param.name, value, context)

    def _run_body(self, body, call_env: Environment) -> Optional[JacquesValue]:
        """Runs a function body; without an explicit return the value of `Result` is returned."""
        call_env.define("Result", JacquesNumber(0), False)
        result = self._eval_block(body, call_env)
        if isinstance(result, ReturnSignal):
            return result.value
        return call_env.bindings["Result"].value

    def _make_function(self, node: FunctionDeclaration, closure: Environment) -> JacquesFunction:
        name = node.name or "anonymous"
        fn: Optional[JacquesFunction] = None

        def impl(args):
            call_env = Environment(parent=closure)
            if node.name:
                call_env.define(node.name, fn, False)
            self._bind_arguments(name, node.params, args, call_env, closure)
            return self._run_body(node.body, call_env)

        fn = JacquesFunction(name, [p.name for p in node.params], impl, node=node, closure=closure)
        return fn

    def _make_lambda(self, node: Lambda, closure: Environment) -> JacquesFunction:
        def impl(args):
            call_env = Environment(parent=closure)
            self._bind_arguments("lambda", node.params, args, call_env, closure)
            result = self.evaluate(node.body, call_env)
            if isinstance(result, ReturnSignal):
                return result.value
            return result

        return JacquesFunction("lambda", [p.name for p in node.params], impl, node=node, closure=closure)

    # ── Classes ──────────────────────────────────────────────

    def _make_method(self, decl: FunctionDeclaration, cls: JacquesClass, closure: Environment) -> Method:
        """A method runs with `self`, the lexical class context and, in subclasses, `super`."""
        def invoke(receiver, args):
            call_env = Environment(parent=closure)
            call_env.define("self", receiver, True)
            call_env.define(CLASS_CONTEXT, cls, True)
            if cls.superclass is not None and isinstance(receiver, JacquesInstance):
                call_env.define("super", self._super_constructor(cls.superclass, receiver), True)
            qualified = f"{cls.name}.{decl.name}"
            self._dbg("method", qualified, "argc", len(args))
            self._bind_arguments(qualified, decl.params, args, call_env, closure, receiver, cls)
            return self._run_body(decl.body, call_env)

        return Method(decl.name, [p.name for p in decl.params], invoke)

    def _super_constructor(self, superclass: JacquesClass, receiver: JacquesInstance) -> JacquesFunction:
        ctor = superclass.find_constructor()

        def impl(args):
            if ctor is not None:
                ctor.invoke(receiver, args)
            return None

        return JacquesFunction("super", ctor.params if ctor is not None else (), impl)

    def _make_class(self, node: ClassDeclaration, env: Environment) -> JacquesClass:
        superclass = None
        if node.superclass is not None:
            superclass = self._lookup(node.superclass, env)
            if not isinstance(superclass, JacquesClass):
                raise TypeMismatch(f"Cannot extend '{node.superclass}': it is a {superclass.type_tag}, not a class")
        cls = JacquesClass(node.name, superclass)
        env.define(node.name, cls, False)
        for member in node.members:
            match member:
                case ClassProperty():
                    cls.add_property(ClassMember(
                        member.name, self._property_initial_value(member, env),
                        member.visibility, member.is_static, member.is_constant,
                    ))
                case ClassMethod():
                    cls.add_method(ClassMember(
                        member.name, self._make_method(member.function, cls, env),
                        member.visibility, member.is_static,
                    ))
                case ClassAccessor():
                    cls.accessors[member.name] = Accessor(
                        member.name,
                        self._make_method(member.getter, cls, env) if member.getter else None,
                        self._make_method(member.setter, cls, env) if member.setter else None,
                    )
        if node.constructor is not None:
            cls.constructor = self._make_method(node.constructor, cls, env)
        self._dbg("class", node.name, "extends", node.superclass, "members", len(node.members))
        return cls

    def _property_initial_value(self, member: ClassProperty, env: Environment) -> JacquesValue:
        if member.value is not None:
            value = self._value(member.value, env)
            if member.type_annotation:
                self._check_type(value, member.type_annotation, env, f"property '{member.name}'")
            return value
        if member.type_annotation:
            return self._default_for_type(member.type_annotation)
        return JacquesNumber(0)

    # ── Modules ──────────────────────────────────────────────

    def _eval_import(self, node: ImportDeclaration, env: Environment) -> None:
        if self.module_loader is None:
            raise JacquesError("Imports are not available in this context")
        exports = self.module_loader(node.source)
        for name in node.names:
            if name not in exports:
                raise MissingExport(name, node.source)
            env.define(name, exports[name].bound(True), True)
        self._dbg("import", node.source, list(node.names))
        return None

    def _eval_export(self, node: ExportDeclaration, env: Environment) -> JacquesValue:
        decl = node.declaration
        self.evaluate(decl, env)
        match decl:
            case Assignment():
                name = decl.target.name
            case _:
                name = decl.name
        value = env.get(name)
        self.exports[name] = value
        return value

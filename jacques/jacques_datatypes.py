"""
Defines the runtime value kinds of the Jacques language.

Every value carries a `constant` flag (set where it is bound) and a
`type_tag` used for reassignment type-checking. Number, String, Boolean,
Array and Record are immutable: operations that "modify" them return a
new value. Instances are the exception; their property map is updated in
place.

Methods visible to scripts are marked with `@jacques_method` or
`@jacques_property`, mirroring how host APIs are exposed to the runtime.
"""
import copy
import inspect
import math
import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Optional

from jacques.jacques_errors import (
    ConstantReassignment, DivisionByZero, IncompatibleOperandTypes, IndexOutOfBounds,
    MissingArgument, NotCallable, TypeMismatch, UndefinedProperty, VisibilityError,
)

PUBLIC = "public"
PRIVATE = "private"
PROTECTED = "protected"

_NUMERIC_PREFIX = re.compile(r"\s*[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?")


def jacques_method(name: str):
    """Exposes a Python method to scripts under `name`."""
    def decorator(func):
        func._jacques_api = ("method", name)
        return func
    return decorator


def jacques_property(name: str):
    """Exposes a zero-argument Python method to scripts as a read-only property."""
    def decorator(func):
        func._jacques_api = ("property", name)
        return func
    return decorator


# =================================================================
# Native call helpers
# =================================================================

_SIGNATURES: Dict[Any, tuple] = {}


def _native_signature(func) -> tuple:
    """(param names, required count, accepts *args) for a native callable, skipping `self`."""
    key = getattr(func, "__func__", func)
    cached = _SIGNATURES.get(key)
    if cached is not None:
        return cached
    names = []
    required = 0
    variadic = False
    for param in inspect.signature(func).parameters.values():
        if param.name == "self":
            continue
        if param.kind == param.VAR_POSITIONAL:
            variadic = True
            continue
        names.append(param.name)
        if param.default is param.empty:
            required += 1
    _SIGNATURES[key] = (tuple(names), required, variadic)
    return _SIGNATURES[key]


def call_native(name: str, func: Callable, args: List['JacquesValue']):
    """Calls a Python callable with script arguments, enforcing its arity."""
    names, required, variadic = _native_signature(func)
    if len(args) < required:
        raise MissingArgument(f"{name} expects at least {required} argument(s), got {len(args)}")
    if not variadic:
        args = args[:len(names)]
    return func(*args)


def _expect(value: Any, kind: type, what: str):
    if not isinstance(value, kind):
        got = value.type_tag if isinstance(value, JacquesValue) else "no value"
        raise TypeMismatch(f"{what} expects a {kind.type_tag}, got {got}")
    return value


def _expect_callable(value: Any, what: str):
    if not isinstance(value, (JacquesFunction, JacquesClass)):
        got = value.type_tag if isinstance(value, JacquesValue) else "no value"
        raise NotCallable(f"{what} expects a Function, got {got}")
    return value


def _callback_result(value: Any, what: str) -> 'JacquesValue':
    if value is None:
        raise TypeMismatch(f"{what} callback must return a value")
    return value


def _key_text(key: Any, what: str) -> str:
    match key:
        case JacquesString():
            return key.value
        case JacquesNumber():
            return key.to_string()
        case _:
            raise TypeMismatch(f"{what} expects a String key, got {getattr(key, 'type_tag', 'no value')}")


def _index(value: Any, what: str) -> int:
    _expect(value, JacquesNumber, what)
    if not value.value.is_integer():
        raise TypeMismatch(f"{what} expects a whole number, got {value.to_string()}")
    return int(value.value)


# =================================================================
# Base value
# =================================================================

class JacquesValue:
    """Base class for every runtime value."""
    type_tag = "Value"
    constant = False
    _members: Dict[str, tuple] = {}

    def __init_subclass__(cls, **kwargs):
        super().__init_subclass__(**kwargs)
        members = {}
        for klass in reversed(cls.__mro__):
            for attr in vars(klass).values():
                api = getattr(attr, "_jacques_api", None)
                if api is not None:
                    members[api[1]] = (api[0], attr)
        cls._members = members

    def bound(self, constant: bool) -> 'JacquesValue':
        """Returns the value as stored by a binding with the given constant flag."""
        clone = copy.copy(self)
        clone.constant = constant
        return clone

    def get_member(self, name: str) -> Optional['JacquesValue']:
        entry = self._members.get(name)
        if entry is None:
            return None
        kind, func = entry
        if kind == "property":
            return func(self)
        names, _, _ = _native_signature(func)
        method = func.__get__(self)
        return JacquesFunction(name, names, lambda args: call_native(name, method, args))

    def lookup(self, name: str, context: Optional['JacquesClass'] = None) -> 'JacquesValue':
        """Resolves `value.name` from script code."""
        member = self.get_member(name)
        if member is None:
            raise UndefinedProperty(name, self.type_tag)
        return member

    def to_string(self) -> str:
        from jacques.jacques_printer import Printer
        return Printer().pformat(self)

    def equals(self, other: Any) -> bool:
        return self is other

    @jacques_method("ToString")
    def to_string_value(self):
        return JacquesString(self.to_string())

    @jacques_method("Equals")
    def equals_value(self, other):
        return JacquesBoolean(self.equals(other))

    @jacques_method("NotEquals")
    def not_equals_value(self, other):
        return JacquesBoolean(not self.equals(other))

    def __repr__(self) -> str:
        return f"<{self.type_tag} {self.to_string()}>"


# =================================================================
# Primitive kinds
# =================================================================

class JacquesNumber(JacquesValue):
    type_tag = "Number"

    def __init__(self, value: float):
        self.value = float(value)

    def equals(self, other: Any) -> bool:
        return isinstance(other, JacquesNumber) and self.value == other.value

    def _operand(self, other: Any, operator: str) -> float:
        if not isinstance(other, JacquesNumber):
            raise IncompatibleOperandTypes(operator, self.type_tag, getattr(other, "type_tag", "no value"))
        return other.value

    @jacques_method("Add")
    def add(self, other):
        if isinstance(other, JacquesString):
            return JacquesString(self.to_string() + other.value)
        return JacquesNumber(self.value + self._operand(other, "+"))

    @jacques_method("Subtract")
    def subtract(self, other):
        return JacquesNumber(self.value - self._operand(other, "-"))

    @jacques_method("Multiply")
    def multiply(self, other):
        return JacquesNumber(self.value * self._operand(other, "*"))

    @jacques_method("Divide")
    def divide(self, other):
        divisor = self._operand(other, "/")
        if divisor == 0:
            raise DivisionByZero()
        return JacquesNumber(self.value / divisor)

    @jacques_method("Modulo")
    def modulo(self, other):
        divisor = self._operand(other, "%")
        if divisor == 0:
            raise DivisionByZero("Modulo by zero")
        return JacquesNumber(math.fmod(self.value, divisor))

    @jacques_method("LessThan")
    def less_than(self, other):
        return JacquesBoolean(self.value < self._operand(other, "<"))

    @jacques_method("GreaterThan")
    def greater_than(self, other):
        return JacquesBoolean(self.value > self._operand(other, ">"))

    @jacques_method("LessThanOrEqual")
    def less_equal(self, other):
        return JacquesBoolean(self.value <= self._operand(other, "<="))

    @jacques_method("GreaterThanOrEqual")
    def greater_equal(self, other):
        return JacquesBoolean(self.value >= self._operand(other, ">="))

    @jacques_method("BinaryAnd")
    def binary_and(self, other):
        return JacquesBoolean(bool(self.value) and bool(self._operand(other, "&&")))

    @jacques_method("BinaryOr")
    def binary_or(self, other):
        return JacquesBoolean(bool(self.value) or bool(self._operand(other, "||")))

    @jacques_method("BinaryNot")
    def binary_not(self):
        return JacquesBoolean(self.value == 0)

    def negate(self):
        return JacquesNumber(-self.value)

    @jacques_method("ToBoolean")
    def to_boolean(self):
        return JacquesBoolean(self.value != 0)


class JacquesString(JacquesValue):
    type_tag = "String"

    def __init__(self, value: str):
        self.value = value

    def equals(self, other: Any) -> bool:
        return isinstance(other, JacquesString) and self.value == other.value

    @jacques_method("Add")
    def add(self, other):
        return JacquesString(self.value + _expect(other, JacquesValue, "Add").to_string())

    @jacques_method("ToNumber")
    def to_number(self):
        m = _NUMERIC_PREFIX.match(self.value)
        if m is None:
            raise TypeMismatch(f"Cannot convert \"{self.value}\" to Number")
        return JacquesNumber(float(m.group(0)))

    @jacques_method("ToBoolean")
    def to_boolean(self):
        if self.value == "true":
            return JacquesBoolean(True)
        if self.value == "false":
            return JacquesBoolean(False)
        return JacquesBoolean(bool(self.value))

    @jacques_property("Length")
    def length(self):
        return JacquesNumber(len(self.value))

    def char_at(self, index: Any) -> 'JacquesString':
        i = _index(index, "String index")
        if not 0 <= i < len(self.value):
            raise IndexOutOfBounds(f"Index {i} out of bounds for String of length {len(self.value)}")
        return JacquesString(self.value[i])


class JacquesBoolean(JacquesValue):
    type_tag = "Boolean"

    def __init__(self, value: bool):
        self.value = bool(value)

    def equals(self, other: Any) -> bool:
        return isinstance(other, JacquesBoolean) and self.value == other.value

    def _operand(self, other: Any, operator: str) -> bool:
        if not isinstance(other, JacquesBoolean):
            raise IncompatibleOperandTypes(operator, self.type_tag, getattr(other, "type_tag", "no value"))
        return other.value

    @jacques_method("BinaryAnd")
    def binary_and(self, other):
        return JacquesBoolean(self.value and self._operand(other, "&&"))

    @jacques_method("BinaryOr")
    def binary_or(self, other):
        return JacquesBoolean(self.value or self._operand(other, "||"))

    @jacques_method("BinaryNot")
    def binary_not(self):
        return JacquesBoolean(not self.value)

    @jacques_method("ToNumber")
    def to_number(self):
        return JacquesNumber(1 if self.value else 0)


# =================================================================
# Collections
# =================================================================

class JacquesArray(JacquesValue):
    type_tag = "Array"

    def __init__(self, elements: Iterable[JacquesValue] = ()):
        self.elements = tuple(elements)

    def equals(self, other: Any) -> bool:
        return (
            isinstance(other, JacquesArray)
            and len(self.elements) == len(other.elements)
            and all(a.equals(b) for a, b in zip(self.elements, other.elements))
        )

    @jacques_method("Add")
    def add(self, value):
        return JacquesArray(self.elements + (_expect(value, JacquesValue, "Array.Add"),))

    @jacques_method("Remove")
    def remove(self, index):
        i = _index(index, "Array.Remove")
        if not 0 <= i < len(self.elements):
            return JacquesArray(self.elements)
        return JacquesArray(self.elements[:i] + self.elements[i + 1:])

    @jacques_method("Get")
    def get(self, index):
        i = _index(index, "Array.Get")
        if not 0 <= i < len(self.elements):
            return JacquesNumber(0)
        return self.elements[i]

    @jacques_property("Length")
    def length(self):
        return JacquesNumber(len(self.elements))

    @jacques_method("ForEach")
    def for_each(self, fn):
        _expect_callable(fn, "Array.ForEach")
        for i, element in enumerate(self.elements):
            fn.call([element, JacquesNumber(i)])
        return None

    @jacques_method("Map")
    def map(self, fn):
        _expect_callable(fn, "Array.Map")
        return JacquesArray(_callback_result(fn.call([e]), "Array.Map") for e in self.elements)

    @jacques_method("Filter")
    def filter(self, fn):
        _expect_callable(fn, "Array.Filter")
        return JacquesArray(e for e in self.elements if is_truthy(fn.call([e])))

    @jacques_method("Reduce")
    def reduce(self, initial, fn):
        _expect_callable(fn, "Array.Reduce")
        acc = initial
        for element in self.elements:
            acc = _callback_result(fn.call([acc, element]), "Array.Reduce")
        return acc

    @jacques_method("Contains")
    def contains(self, value):
        return JacquesBoolean(any(e.equals(value) for e in self.elements))

    def at_index(self, index: Any) -> JacquesValue:
        i = _index(index, "Array index")
        if not 0 <= i < len(self.elements):
            raise IndexOutOfBounds(f"Index {i} out of bounds for Array of length {len(self.elements)}")
        return self.elements[i]

    def with_index(self, index: Any, value: JacquesValue) -> 'JacquesArray':
        """A copy with `index` replaced; writing one past the end appends."""
        i = _index(index, "Array index")
        if i == len(self.elements):
            return JacquesArray(self.elements + (value,))
        if not 0 <= i < len(self.elements):
            raise IndexOutOfBounds(f"Index {i} out of bounds for Array of length {len(self.elements)}")
        return JacquesArray(self.elements[:i] + (value,) + self.elements[i + 1:])


class JacquesRecord(JacquesValue):
    type_tag = "Record"

    def __init__(self, properties: Optional[Dict[str, JacquesValue]] = None):
        self.properties: Dict[str, JacquesValue] = dict(properties or {})

    def equals(self, other: Any) -> bool:
        if not isinstance(other, JacquesRecord) or self.properties.keys() != other.properties.keys():
            return False
        return all(v.equals(other.properties[k]) for k, v in self.properties.items())

    def lookup(self, name: str, context: Optional['JacquesClass'] = None) -> JacquesValue:
        if name in self.properties:
            return self.properties[name]
        return super().lookup(name, context)

    @jacques_method("Add")
    def add(self, key, value):
        return self.set(key, value)

    @jacques_method("Set")
    def set(self, key, value):
        updated = dict(self.properties)
        updated[_key_text(key, "Record.Set")] = _expect(value, JacquesValue, "Record.Set")
        return JacquesRecord(updated)

    @jacques_method("Remove")
    def remove(self, key):
        name = _key_text(key, "Record.Remove")
        return JacquesRecord({k: v for k, v in self.properties.items() if k != name})

    @jacques_method("Get")
    def get(self, key):
        return self.properties.get(_key_text(key, "Record.Get"), JacquesNumber(0))

    @jacques_method("ContainsKey")
    def contains_key(self, key):
        return JacquesBoolean(_key_text(key, "Record.ContainsKey") in self.properties)

    @jacques_method("ContainsValue")
    def contains_value(self, value):
        return JacquesBoolean(any(v.equals(value) for v in self.properties.values()))

    @jacques_property("Size")
    def size(self):
        return JacquesNumber(len(self.properties))

    @jacques_method("Merge")
    def merge(self, other):
        _expect(other, JacquesRecord, "Record.Merge")
        merged = dict(self.properties)
        merged.update(other.properties)
        return JacquesRecord(merged)

    @jacques_method("ForEach")
    def for_each(self, fn):
        _expect_callable(fn, "Record.ForEach")
        for key, value in self.properties.items():
            fn.call([JacquesString(key), value])
        return None

    @jacques_method("Keys")
    def keys(self):
        return JacquesArray(JacquesString(k) for k in self.properties)

    @jacques_method("Values")
    def values(self):
        return JacquesArray(self.properties.values())

    @jacques_method("ToJSON")
    def to_json(self):
        from jacques.jacques_printer import Printer
        return JacquesString(Printer().to_json(self))

    @jacques_method("ToYAML")
    def to_yaml(self):
        from jacques.jacques_serialize import serialize
        return JacquesString(serialize(self, fmt="yaml"))


# =================================================================
# Functions
# =================================================================

class JacquesFunction(JacquesValue):
    """A callable value.

    `impl` receives the argument list and returns a value (or None). Script
    functions build `impl` as a closure over their body and defining
    Environment; natives wrap a Python callable.
    """
    type_tag = "Function"

    def __init__(self, name: str, params: Iterable[str], impl: Callable[[List[JacquesValue]], Any],
                 node: Any = None, closure: Any = None):
        self.name = name
        self.params = tuple(params)
        self.impl = impl
        self.node = node
        self.closure = closure

    @classmethod
    def from_native(cls, name: str, func: Callable) -> 'JacquesFunction':
        names, _, _ = _native_signature(func)
        return cls(name, names, lambda args: call_native(name, func, args))

    def call(self, args: List[JacquesValue]) -> Any:
        return self.impl(list(args))

    def equals(self, other: Any) -> bool:
        return isinstance(other, JacquesFunction) and self.impl is other.impl

    @jacques_method("Bind")
    def bind_arguments(self, *args):
        bound = list(args)
        return JacquesFunction(f"{self.name}_bound", self.params[len(bound):],
                               lambda rest: self.call(bound + list(rest)))

    @jacques_method("Apply")
    def apply(self, arguments):
        _expect(arguments, JacquesArray, "Function.Apply")
        return self.call(list(arguments.elements))

    @jacques_method("Compose")
    def compose(self, other):
        _expect_callable(other, "Function.Compose")
        return JacquesFunction(
            f"{self.name}_{other.name}_composed",
            getattr(other, "params", ()),
            lambda args: self.call([_callback_result(other.call(args), "Function.Compose")]),
        )

    @jacques_property("Name")
    def name_value(self):
        return JacquesString(self.name)

    @jacques_property("Params")
    def params_value(self):
        return JacquesArray(JacquesString(p) for p in self.params)


class Method:
    """An unbound class method; `invoke(receiver, args)` runs it against a receiver."""

    def __init__(self, name: str, params: Iterable[str], invoke: Callable[[Any, List[JacquesValue]], Any]):
        self.name = name
        self.params = tuple(params)
        self.invoke = invoke

    def bind(self, receiver: Any) -> JacquesFunction:
        return JacquesFunction(self.name, self.params, lambda args: self.invoke(receiver, list(args)))


# =================================================================
# Classes and instances
# =================================================================

@dataclass
class ClassMember:
    """A property (value is a JacquesValue) or method (value is a Method) of a class."""
    name: str
    value: Any
    visibility: str = PUBLIC
    is_static: bool = False
    is_constant: bool = False
    owner: Optional['JacquesClass'] = None


@dataclass
class Accessor:
    name: str
    getter: Optional[Method] = None
    setter: Optional[Method] = None


def check_access(member: ClassMember, context: Optional['JacquesClass']):
    """Raises VisibilityError unless `context` (the class whose code is running) may see `member`."""
    if member.visibility == PUBLIC:
        return
    owner = member.owner
    if member.visibility == PRIVATE and context is owner:
        return
    if member.visibility == PROTECTED and context is not None and context.is_subclass_of(owner):
        return
    raise VisibilityError(f"Cannot access {member.visibility} member '{member.name}' of class {owner.name}")


class JacquesClass(JacquesValue):
    """A class descriptor. Calling it constructs a `JacquesInstance`."""
    type_tag = "Class"

    def __init__(self, name: str, superclass: Optional['JacquesClass'] = None):
        self.name = name
        self.superclass = superclass
        self.properties: Dict[str, ClassMember] = {}
        self.methods: Dict[str, ClassMember] = {}
        self.accessors: Dict[str, Accessor] = {}
        self.constructor: Optional[Method] = None

    def bound(self, constant: bool) -> 'JacquesClass':
        self.constant = constant
        return self

    def add_property(self, member: ClassMember):
        member.owner = self
        self.properties[member.name] = member

    def add_method(self, member: ClassMember):
        member.owner = self
        self.methods[member.name] = member

    def chain(self) -> List['JacquesClass']:
        """This class followed by its superclasses, nearest first."""
        out = []
        cls = self
        while cls is not None:
            out.append(cls)
            cls = cls.superclass
        return out

    def is_subclass_of(self, other: Optional['JacquesClass']) -> bool:
        return other is not None and other in self.chain()

    def find_property(self, name: str) -> Optional[ClassMember]:
        for cls in self.chain():
            if name in cls.properties:
                return cls.properties[name]
        return None

    def find_method(self, name: str) -> Optional[ClassMember]:
        for cls in self.chain():
            if name in cls.methods:
                return cls.methods[name]
        return None

    def find_accessor(self, name: str) -> Optional[Accessor]:
        for cls in self.chain():
            if name in cls.accessors:
                return cls.accessors[name]
        return None

    def find_constructor(self) -> Optional[Method]:
        for cls in self.chain():
            if cls.constructor is not None:
                return cls.constructor
        return None

    def call(self, args: List[JacquesValue]) -> 'JacquesInstance':
        """Seeds a new instance from the class chain (root first), then runs the constructor."""
        instance = JacquesInstance(self)
        for cls in reversed(self.chain()):
            for name, member in cls.properties.items():
                if member.is_static:
                    continue
                # Instances are the one mutable kind, so each object gets its own copy.
                instance.properties[name] = _seed_copy(member.value, {})
                if member.is_constant:
                    instance.constants.add(name)
                else:
                    instance.constants.discard(name)
        self.bind_methods(instance)
        ctor = self.find_constructor()
        if ctor is not None:
            ctor.invoke(instance, list(args))
        return instance

    def bind_methods(self, instance: 'JacquesInstance'):
        for cls in reversed(self.chain()):
            for name, member in cls.methods.items():
                if not member.is_static:
                    instance.methods[name] = member.value.bind(instance)

    def lookup(self, name: str, context: Optional['JacquesClass'] = None) -> JacquesValue:
        """Static member access: `ClassName.member`."""
        prop = self.find_property(name)
        if prop is not None and prop.is_static:
            check_access(prop, context)
            return prop.value
        method = self.find_method(name)
        if method is not None and method.is_static:
            check_access(method, context)
            return method.value.bind(self)
        member = self.get_member(name)
        if member is not None:
            return member
        if prop is not None or method is not None:
            raise UndefinedProperty(name, f"class {self.name} (it is not static)")
        raise UndefinedProperty(name, f"class {self.name}")

    def assign(self, name: str, value: JacquesValue, context: Optional['JacquesClass'] = None) -> JacquesValue:
        prop = self.find_property(name)
        if prop is None or not prop.is_static:
            raise UndefinedProperty(name, f"class {self.name} (no such static property)")
        check_access(prop, context)
        if prop.is_constant:
            raise ConstantReassignment(f"{self.name}.{name}")
        prop.value = value
        return value

    @jacques_property("Name")
    def name_value(self):
        return JacquesString(self.name)


class JacquesInstance(JacquesValue):
    """An object built by calling a class; its properties are mutable in place."""

    def __init__(self, cls: JacquesClass):
        self.cls = cls
        self.properties: Dict[str, JacquesValue] = {}
        self.methods: Dict[str, JacquesFunction] = {}
        self.constants: set = set()

    @property
    def type_tag(self) -> str:
        return self.cls.name

    def bound(self, constant: bool) -> 'JacquesInstance':
        self.constant = constant
        return self

    def lookup(self, name: str, context: Optional[JacquesClass] = None) -> JacquesValue:
        accessor = self.cls.find_accessor(name)
        if accessor is not None and accessor.getter is not None:
            return _callback_result(accessor.getter.invoke(self, []), f"getter '{name}'")
        if name in self.properties:
            member = self.cls.find_property(name)
            if member is not None:
                check_access(member, context)
            return self.properties[name]
        if name in self.methods:
            check_access(self.cls.find_method(name), context)
            return self.methods[name]
        member = self.get_member(name)
        if member is not None:
            return member
        raise UndefinedProperty(name, f"instance of {self.cls.name}")

    def assign(self, name: str, value: JacquesValue, context: Optional[JacquesClass] = None) -> JacquesValue:
        accessor = self.cls.find_accessor(name)
        if accessor is not None:
            if accessor.setter is None:
                raise ConstantReassignment(f"{self.cls.name}.{name} (read-only property)")
            accessor.setter.invoke(self, [value])
            return value
        member = self.cls.find_property(name)
        if member is not None:
            check_access(member, context)
        if name in self.constants:
            raise ConstantReassignment(f"{self.cls.name}.{name}")
        if name in self.methods:
            raise TypeMismatch(f"Cannot assign to method '{name}' of {self.cls.name}")
        self.properties[name] = value
        return value

    def public_properties(self) -> Dict[str, JacquesValue]:
        out = {}
        for name, value in self.properties.items():
            member = self.cls.find_property(name)
            if member is None or member.visibility == PUBLIC:
                out[name] = value
        return out

    def clone(self, memo: Dict[int, 'JacquesInstance']) -> 'JacquesInstance':
        """A copy with its own property map; `memo` keeps shared and cyclic references intact."""
        twin = memo.get(id(self))
        if twin is not None:
            return twin
        twin = JacquesInstance(self.cls)
        memo[id(self)] = twin
        twin.constants = set(self.constants)
        twin.properties = {k: _seed_copy(v, memo) for k, v in self.properties.items()}
        self.cls.bind_methods(twin)
        return twin


def _seed_copy(value: Any, memo: Dict[int, JacquesInstance]) -> Any:
    """Copies any instances reachable from a property default."""
    match value:
        case JacquesInstance():
            return value.clone(memo)
        case JacquesArray():
            return JacquesArray(_seed_copy(e, memo) for e in value.elements)
        case JacquesRecord():
            return JacquesRecord({k: _seed_copy(v, memo) for k, v in value.properties.items()})
        case _:
            return value


# =================================================================
# Operators and truthiness
# =================================================================

_NUMBER_OPS = {
    "+": JacquesNumber.add,
    "-": JacquesNumber.subtract,
    "*": JacquesNumber.multiply,
    "/": JacquesNumber.divide,
    "%": JacquesNumber.modulo,
    "<": JacquesNumber.less_than,
    ">": JacquesNumber.greater_than,
    "<=": JacquesNumber.less_equal,
    ">=": JacquesNumber.greater_equal,
    "&&": JacquesNumber.binary_and,
    "||": JacquesNumber.binary_or,
}

_BOOLEAN_OPS = {
    "&&": JacquesBoolean.binary_and,
    "||": JacquesBoolean.binary_or,
}


def binary_operation(operator: str, left: JacquesValue, right: JacquesValue) -> JacquesValue:
    if operator == "==":
        return JacquesBoolean(left.equals(right))
    if operator == "!=":
        return JacquesBoolean(not left.equals(right))
    if operator == "+" and (isinstance(left, JacquesString) or isinstance(right, JacquesString)):
        return JacquesString(left.to_string() + right.to_string())
    match (left, right):
        case (JacquesNumber(), JacquesNumber()) if operator in _NUMBER_OPS:
            return _NUMBER_OPS[operator](left, right)
        case (JacquesBoolean(), JacquesBoolean()) if operator in _BOOLEAN_OPS:
            return _BOOLEAN_OPS[operator](left, right)
        case _:
            raise IncompatibleOperandTypes(operator, left.type_tag, right.type_tag)


def unary_operation(operator: str, operand: JacquesValue) -> JacquesValue:
    match (operator, operand):
        case ("!", JacquesBoolean() | JacquesNumber()):
            return operand.binary_not()
        case ("-", JacquesNumber()):
            return operand.negate()
        case _:
            raise IncompatibleOperandTypes(operator, operand.type_tag)


def is_truthy(value: Any) -> bool:
    match value:
        case JacquesBoolean():
            return value.value
        case JacquesNumber():
            return value.value != 0
        case JacquesString():
            return value.value != ""
        case JacquesArray():
            return len(value.elements) > 0
        case JacquesRecord():
            return len(value.properties) > 0
        case _:
            return False

"""
Lexical scopes for Jacques.

An Environment maps names to `Binding`s and points at its enclosing scope.
Closures keep their defining Environment alive simply by holding a
reference to it; Python's garbage collector does the rest.
"""
from dataclasses import dataclass
from typing import Any, Dict, Optional

from jacques.jacques_errors import ConstantReassignment, UndefinedVariable


@dataclass
class Binding:
    value: Any
    is_constant: bool = False


class Environment:
    """One scope in the scope chain."""

    def __init__(self, parent: Optional['Environment'] = None):
        self.bindings: Dict[str, Binding] = {}
        self.parent = parent

    def child(self) -> 'Environment':
        return Environment(parent=self)

    def find_owner(self, name: str) -> Optional['Environment']:
        """Finds the nearest scope (self, then parents) that binds `name`."""
        env = self
        while env is not None:
            if name in env.bindings:
                return env
            env = env.parent
        return None

    def define(self, name: str, value: Any, is_constant: bool = False) -> Any:
        """Creates or overwrites a binding in this scope only."""
        self.bindings[name] = Binding(value, is_constant)
        return value

    def get(self, name: str) -> Any:
        return self.get_binding(name).value

    def get_binding(self, name: str) -> Binding:
        owner = self.find_owner(name)
        if owner is None:
            raise UndefinedVariable(name)
        return owner.bindings[name]

    def assign(self, name: str, value: Any) -> Any:
        """Updates the nearest existing binding, or defines a mutable one here."""
        owner = self.find_owner(name)
        if owner is None:
            return self.define(name, value, False)
        binding = owner.bindings[name]
        if binding.is_constant:
            raise ConstantReassignment(name)
        binding.value = value
        return value

    def has(self, name: str) -> bool:
        return self.find_owner(name) is not None

    def snapshot(self) -> Dict[str, Any]:
        """Flattens the chain into name -> value, inner scopes shadowing outer ones."""
        chain = []
        env = self
        while env is not None:
            chain.append(env)
            env = env.parent
        out: Dict[str, Any] = {}
        for scope in reversed(chain):
            for name, binding in scope.bindings.items():
                out[name] = binding.value
        return out

    def __contains__(self, name: str) -> bool:
        return self.has(name)

    def __repr__(self) -> str:
        names = ', '.join(self.bindings.keys())
        parent_id = f", parent=#{id(self.parent)}" if self.parent else ""
        return f"<Environment bindings=[{names}]{parent_id}>"

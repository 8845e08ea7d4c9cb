"""
Formats Jacques values as text: `pformat` gives the `ToString` rendering,
`to_json` the `ToJSON` rendering.
"""
import json
import math

from jacques.jacques_datatypes import (
    JacquesNumber, JacquesString, JacquesBoolean, JacquesArray, JacquesRecord,
    JacquesFunction, JacquesClass, JacquesInstance,
)
from jacques.jacques_errors import TypeMismatch


def format_number(value: float) -> str:
    """Integral values print without a fractional part; others use the shortest round-trip form."""
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "Infinity" if value > 0 else "-Infinity"
    if value.is_integer() and abs(value) < 1e21:
        return str(int(value))
    return repr(value)


class Printer:
    """Formats Jacques values into readable strings.

    At level 0 a String prints bare; nested inside an Array or Record it is
    quoted so the container reads back unambiguously.
    """

    def __init__(self):
        self._handlers = self._create_handlers()

    def pformat(self, obj, level=0):
        """Public entry point to format a value."""
        handler = self._handlers.get(type(obj))
        if handler is None:
            if isinstance(obj, JacquesInstance):
                handler = self._pformat_instance
            elif obj is None:
                return "null"
            else:
                return repr(obj)
        return handler(obj, level)

    def _create_handlers(self):
        return {
            JacquesNumber: self._pformat_number,
            JacquesString: self._pformat_string,
            JacquesBoolean: self._pformat_boolean,
            JacquesArray: self._pformat_array,
            JacquesRecord: self._pformat_record,
            JacquesFunction: self._pformat_function,
            JacquesClass: self._pformat_class,
            JacquesInstance: self._pformat_instance,
        }

    def _pformat_number(self, obj, level):
        return format_number(obj.value)

    def _pformat_string(self, obj, level):
        if level == 0:
            return obj.value
        return json.dumps(obj.value, ensure_ascii=False)

    def _pformat_boolean(self, obj, level):
        return "true" if obj.value else "false"

    def _pformat_array(self, obj, level):
        return "[" + ", ".join(self.pformat(e, level + 1) for e in obj.elements) + "]"

    def _pformat_mapping(self, mapping, level):
        if not mapping:
            return "{}"
        items = ", ".join(f"{k}: {self.pformat(v, level + 1)}" for k, v in mapping.items())
        return "{ " + items + " }"

    def _pformat_record(self, obj, level):
        return self._pformat_mapping(obj.properties, level)

    def _pformat_function(self, obj, level):
        return f"function {obj.name}({', '.join(obj.params)})"

    def _pformat_class(self, obj, level):
        return f"class {obj.name}"

    def _pformat_instance(self, obj, level):
        custom = obj.methods.get("ToString")
        if custom is not None:
            result = custom.call([])
            if not isinstance(result, JacquesString):
                raise TypeMismatch(f"{obj.cls.name}.ToString must return a String")
            return result.value
        return f"{obj.cls.name} {self._pformat_mapping(obj.public_properties(), level)}"

    # --- JSON ---

    def to_json(self, obj) -> str:
        match obj:
            case JacquesNumber():
                return format_number(obj.value)
            case JacquesString():
                return json.dumps(obj.value, ensure_ascii=False)
            case JacquesBoolean():
                return "true" if obj.value else "false"
            case JacquesArray():
                return "[" + ", ".join(self.to_json(e) for e in obj.elements) + "]"
            case JacquesRecord():
                return self._json_mapping(obj.properties)
            case JacquesInstance():
                return self._json_mapping(obj.public_properties())
            case _:
                kind = getattr(obj, "type_tag", type(obj).__name__)
                raise TypeMismatch(f"Cannot convert {kind} to JSON")

    def _json_mapping(self, mapping) -> str:
        if not mapping:
            return "{}"
        items = ", ".join(f"{json.dumps(k, ensure_ascii=False)}: {self.to_json(v)}" for k, v in mapping.items())
        return "{ " + items + " }"

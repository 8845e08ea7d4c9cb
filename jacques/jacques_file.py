from __future__ import annotations

import json
import os
from dataclasses import dataclass
from typing import Any, Optional

import yaml

from jacques.jacques_errors import ModuleError
from jacques.jacques_serialize import deserialize

MODULE_SUFFIX = ".jq"
DATA_FORMATS = {".json": "json", ".yaml": "yaml", ".yml": "yaml"}


@dataclass
class ModuleSource:
    """A loaded module file: program text for `.jq` files, decoded data otherwise."""
    path: str
    text: Optional[str] = None
    data: Optional[dict] = None

    @property
    def is_data(self) -> bool:
        return self.data is not None


def resolve_module_path(locator: str, base_dir: Optional[str]) -> str:
    """Resolve an import path against the importing script's directory (or CWD)."""
    if locator.startswith("~"):
        path = os.path.expanduser(locator)
    elif os.path.isabs(locator):
        path = locator
    else:
        path = os.path.join(base_dir or os.getcwd(), locator)
    path = os.path.normpath(path)
    if not os.path.splitext(path)[1] and not os.path.isfile(path):
        path += MODULE_SUFFIX
    return path


def read_module(path: str) -> ModuleSource:
    """Read a module file as UTF-8; data files are decoded by extension."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            text = f.read()
    except OSError as e:
        raise ModuleError(f"Cannot read module '{path}': {e.strerror or e}") from e

    fmt = DATA_FORMATS.get(os.path.splitext(path)[1].lower())
    if fmt is None:
        return ModuleSource(path, text=text)
    try:
        data: Any = deserialize(text, fmt=fmt)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise ModuleError(f"Cannot decode {fmt} module '{path}': {e}") from e
    if not isinstance(data, dict):
        raise ModuleError(f"Data module '{path}' must contain a mapping at the top level")
    return ModuleSource(path, data=data)

from jacques.jacques_runtime import ScriptRunner, ExecutionResult, DebugResult, run, run_debug
from jacques.jacques_errors import *  # noqa: F401,F403
from jacques.jacques_errors import __all__ as _error_names

__all__ = ["ScriptRunner", "ExecutionResult", "DebugResult", "run", "run_debug", *_error_names]

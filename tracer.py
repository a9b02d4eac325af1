"""
Lightweight call tracing for the protocol layer.

Functions decorated with @trace record their entry and exit into a nested log
that mirrors the call stack of the thread that made the call. The log is kept
in memory and can be fetched or reset over the socket for diagnostics.
"""
import functools
import os
import re
import threading
from collections import deque

from config import TRACE_LOG_LIMIT


def _sanitize_repr(value) -> str:
    """Returns repr(value) without memory addresses so traces compare stably."""
    return re.sub(r"\s+at\s+0x[0-9a-fA-F]+", "", repr(value))


class Tracer:
    """
    Collects nested call entries.

    Each thread has its own call stack, so interleaved connections do not
    nest into each other's entries. Top-level entries are shared and bounded.
    """

    def __init__(self, limit: int = TRACE_LOG_LIMIT):
        self.limit = limit
        self._lock = threading.Lock()
        self._local = threading.local()
        self.reset()

    def reset(self) -> None:
        with self._lock:
            self.trace_log = deque(maxlen=self.limit)
        self._local = threading.local()

    @property
    def call_stack(self) -> list:
        if not hasattr(self._local, "stack"):
            self._local.stack = []
        return self._local.stack

    def start_trace(self, module: str, func_name: str) -> None:
        entry = {"function": f"{module}.{func_name}", "nested_calls": []}
        stack = self.call_stack
        if stack:
            stack[-1]["nested_calls"].append(entry)
        else:
            with self._lock:
                self.trace_log.append(entry)
        stack.append(entry)

    def end_trace(self, return_value, is_exception: bool = False) -> None:
        stack = self.call_stack
        if not stack:
            return
        entry = stack.pop()
        if not entry["nested_calls"]:
            del entry["nested_calls"]
        if is_exception:
            entry["exception"] = _sanitize_repr(return_value)
        elif return_value is not None:
            if not (isinstance(return_value, (list, dict, tuple, str)) and not return_value):
                entry["return_value"] = _sanitize_repr(return_value)

    def get_trace(self) -> list:
        """Returns a copy of the top-level trace entries."""
        with self._lock:
            return list(self.trace_log)


# Global instance of the tracer
global_tracer = Tracer()


def trace(func):
    """
    Records each call of func in global_tracer, nested under the caller's entry.
    """
    module_name = os.path.splitext(os.path.basename(func.__code__.co_filename))[0]

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        global_tracer.start_trace(module_name, func.__qualname__)
        try:
            result = func(*args, **kwargs)
        except Exception as e:
            global_tracer.end_trace(e, is_exception=True)
            raise
        global_tracer.end_trace(result)
        return result

    return wrapper

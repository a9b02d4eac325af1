"""
The execution engine behind each session.

Each PythonInterpreter keeps its own persistent namespace, so names defined in
one message are visible in the next, just like the interactive prompt. Output
written by the submitted code goes to the stream the interpreter was created
with instead of the server's own stdout and stderr.
"""
import codeop
import threading
import traceback
from contextlib import redirect_stderr, redirect_stdout
from typing import Optional, TextIO

# sys.stdout/sys.stderr are process-wide, so only one session may run code at a time.
_EXECUTION_LOCK = threading.RLock()


class ExecutionError(Exception):
    """Raised when submitted source fails to compile or raises while running."""


def _describe(exc: BaseException) -> str:
    return traceback.format_exception_only(type(exc), exc)[-1].strip()


class PythonInterpreter:
    """
    Compiles and runs source fragments in a persistent namespace.

    Compilation goes through codeop.CommandCompiler, which both detects
    incomplete input and remembers any `from __future__` imports for the
    rest of the session.
    """

    def __init__(self, stream: TextIO):
        self.stream: Optional[TextIO] = stream
        self.namespace: dict = {"__name__": "__console__", "__doc__": None}
        self.compile = codeop.CommandCompiler()

    @property
    def closed(self) -> bool:
        return self.stream is None

    # Not traced: fault messages quote the submitted source.
    def parse_or_execute(self, source: str, multiline: bool = False) -> bool:
        """
        Compiles source and runs it if it is complete.

        Args:
            source: The source text to run.
            multiline: True when source is a self-contained block of several
                lines. It is compiled as a module body rather than as a single
                interactive statement, so expression values are not echoed.

        Returns:
            True if more input is needed before source can run, otherwise False.

        Raises:
            ExecutionError: If source has a syntax error or raises while running.
        """
        if self.closed:
            raise RuntimeError("Interpreter has been closed.")
        symbol = "single"
        if multiline:
            symbol = "exec"
            if not source.endswith("\n"):
                source += "\n"
        try:
            code = self.compile(source, "<input>", symbol)
        except (OverflowError, SyntaxError, ValueError) as e:
            raise ExecutionError(_describe(e)) from e
        if code is None:
            return True
        self._run(code)
        return False

    def _run(self, code) -> None:
        with _EXECUTION_LOCK, redirect_stdout(self.stream), redirect_stderr(self.stream):
            try:
                exec(code, self.namespace)
            except SystemExit as e:
                # Submitted code must not be able to stop the server.
                raise ExecutionError(f"SystemExit: {e.code}") from e
            except Exception as e:
                raise ExecutionError(_describe(e)) from e

    def close(self) -> None:
        """Drops the namespace and detaches the output stream."""
        self.namespace.clear()
        self.stream = None

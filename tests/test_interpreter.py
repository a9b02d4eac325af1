import io
import sys

import pytest

from interpreter import ExecutionError, PythonInterpreter


@pytest.fixture
def stream():
    return io.StringIO()


@pytest.fixture
def interpreter(stream):
    return PythonInterpreter(stream)


def test_expression_value_is_echoed(interpreter, stream):
    more = interpreter.parse_or_execute("\n1+1")

    assert more is False
    assert stream.getvalue() == "2\n"


def test_incomplete_statement_needs_more_input(interpreter, stream):
    assert interpreter.parse_or_execute("\nif True:") is True
    assert interpreter.parse_or_execute("\nif True:\n    print('yes')") is True
    assert stream.getvalue() == ""


def test_compound_statement_runs_after_blank_line(interpreter, stream):
    more = interpreter.parse_or_execute("\nif True:\n    print('yes')\n")

    assert more is False
    assert stream.getvalue() == "yes\n"


def test_names_persist_between_calls(interpreter, stream):
    interpreter.parse_or_execute("\nx = 5")
    interpreter.parse_or_execute("\nx * 2")

    assert stream.getvalue() == "10\n"


def test_multiline_block_runs_as_module(interpreter, stream):
    more = interpreter.parse_or_execute("for i in range(2):\n    print(i)", multiline=True)

    assert more is False
    assert stream.getvalue() == "0\n1\n"


def test_multiline_block_does_not_echo_expressions(interpreter, stream):
    interpreter.parse_or_execute("a = 1\na", multiline=True)

    assert stream.getvalue() == ""
    assert interpreter.namespace["a"] == 1


def test_stderr_is_captured(interpreter, stream):
    interpreter.parse_or_execute("import sys\nsys.stderr.write('err\\n')", multiline=True)

    assert stream.getvalue() == "err\n"


def test_runtime_error_raises_execution_error(interpreter):
    with pytest.raises(ExecutionError) as excinfo:
        interpreter.parse_or_execute("\n1/0")

    assert "ZeroDivisionError" in str(excinfo.value)
    assert isinstance(excinfo.value.__cause__, ZeroDivisionError)


def test_syntax_error_raises_execution_error(interpreter):
    with pytest.raises(ExecutionError) as excinfo:
        interpreter.parse_or_execute("\nx = = 1")

    assert "SyntaxError" in str(excinfo.value)


def test_system_exit_is_contained(interpreter):
    with pytest.raises(ExecutionError) as excinfo:
        interpreter.parse_or_execute("\nraise SystemExit(3)")

    assert str(excinfo.value) == "SystemExit: 3"


def test_output_before_error_is_kept(interpreter, stream):
    with pytest.raises(ExecutionError):
        interpreter.parse_or_execute("print('before')\nraise ValueError('boom')", multiline=True)

    assert stream.getvalue() == "before\n"


def test_process_streams_are_restored(interpreter):
    original_stdout, original_stderr = sys.stdout, sys.stderr

    interpreter.parse_or_execute("\nprint('x')")
    with pytest.raises(ExecutionError):
        interpreter.parse_or_execute("\n1/0")

    assert sys.stdout is original_stdout
    assert sys.stderr is original_stderr


def test_interpreters_do_not_share_namespaces(stream):
    first = PythonInterpreter(stream)
    second = PythonInterpreter(io.StringIO())
    first.parse_or_execute("\ny = 1")

    with pytest.raises(ExecutionError):
        second.parse_or_execute("\ny")


def test_closed_interpreter_refuses_work(interpreter):
    interpreter.parse_or_execute("\nz = 1")
    interpreter.close()

    assert interpreter.closed
    assert interpreter.namespace == {}
    with pytest.raises(RuntimeError):
        interpreter.parse_or_execute("\nz")

from unittest.mock import MagicMock

import pytest

from data_models import Label, StatusCode
from output_sink import LineBufferedSink


@pytest.fixture
def send():
    return MagicMock()


@pytest.fixture
def sink(send):
    return LineBufferedSink("conn-1", send)


def sent_results(send):
    return [c.args[1].result for c in send.call_args_list]


def test_complete_line_is_sent_with_newline(sink, send):
    sink.write("hello\n")

    send.assert_called_once()
    connection, message = send.call_args.args
    assert connection == "conn-1"
    assert message.type == Label.INTERACTIVE
    assert message.status.code == StatusCode.SUCCESS
    assert message.status.text == "Sending result"
    assert message.result == "hello\n"
    assert message.prompt is None
    assert sink.output_buffer == ""


def test_partial_line_is_held_until_newline(sink, send):
    sink.write("abc")
    assert send.call_count == 0
    assert sink.output_buffer == "abc"

    sink.write("def\n")

    assert sent_results(send) == ["abcdef\n"]
    assert sink.output_buffer == ""


def test_each_line_of_a_chunk_is_sent_separately(sink, send):
    sink.write("one\ntwo\nthr")

    assert sent_results(send) == ["one\n", "two\n"]
    assert sink.output_buffer == "thr"


def test_print_goes_through_sink(sink, send):
    print("value", 42, file=sink)

    assert sent_results(send) == ["value 42\n"]


def test_write_returns_length(sink):
    assert sink.write("xyz") == 3


def test_closed_sink_drops_writes(sink, send):
    sink.write("pending")
    sink.close()

    assert sink.write("late\n") == 0
    assert send.call_count == 0
    assert sink.output_buffer == ""
    assert not sink.writable()

import pytest

import tracer
from tracer import Tracer, trace


@pytest.fixture
def fresh_tracer(mocker):
    instance = Tracer(limit=3)
    mocker.patch("tracer.global_tracer", instance)
    return instance


@trace
def inner(value):
    return value * 2


@trace
def outer(value):
    return inner(value) + 1


@trace
def failing():
    raise ValueError("boom")


def test_nested_calls_are_recorded(fresh_tracer):
    assert outer(2) == 5

    log = fresh_tracer.get_trace()
    assert len(log) == 1
    assert log[0]["function"] == "test_tracer.outer"
    assert log[0]["return_value"] == "5"
    assert log[0]["nested_calls"] == [{"function": "test_tracer.inner", "return_value": "4"}]


def test_exception_is_recorded_and_reraised(fresh_tracer):
    with pytest.raises(ValueError):
        failing()

    assert fresh_tracer.get_trace()[0]["exception"] == "ValueError('boom')"


def test_log_is_bounded(fresh_tracer):
    for i in range(5):
        inner(i)

    log = fresh_tracer.get_trace()
    assert [entry["return_value"] for entry in log] == ["4", "6", "8"]


def test_reset_clears_log(fresh_tracer):
    inner(1)

    fresh_tracer.reset()

    assert fresh_tracer.get_trace() == []


def test_memory_addresses_are_stripped():
    class Thing:
        pass

    assert " at 0x" not in tracer._sanitize_repr(Thing())

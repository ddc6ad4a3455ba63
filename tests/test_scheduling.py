"""
Tests for the Debouncer.
"""

from linkmap.scheduling import Debouncer


def make(clock, delay=600):
    calls = []
    return Debouncer(delay, lambda: calls.append(clock()), clock=clock), calls


def test_fires_after_quiet_period(clock):
    debouncer, calls = make(clock)
    debouncer.trigger()
    clock.advance(599)
    assert debouncer.poll() is False
    clock.advance(2)
    assert debouncer.poll() is True
    assert len(calls) == 1
    assert not debouncer.pending


def test_retrigger_restarts_window(clock):
    debouncer, calls = make(clock)
    debouncer.trigger()
    clock.advance(400)
    debouncer.trigger()
    clock.advance(400)
    assert debouncer.poll() is False
    clock.advance(201)
    assert debouncer.poll() is True
    assert len(calls) == 1


def test_cancel(clock):
    debouncer, calls = make(clock)
    debouncer.trigger()
    debouncer.cancel()
    clock.advance(1000)
    assert debouncer.poll() is False
    assert calls == []


def test_flush(clock):
    debouncer, calls = make(clock)
    assert debouncer.flush() is False
    debouncer.trigger()
    assert debouncer.flush() is True
    assert len(calls) == 1
    assert debouncer.poll() is False


def test_negative_delay_is_zero(clock):
    debouncer, calls = make(clock, delay=-50)
    debouncer.trigger()
    assert debouncer.poll() is True

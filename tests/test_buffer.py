"""Tests for console.buffer - ScrollbackBuffer."""

import threading

import pytest

from console.buffer import DEFAULT_CAPACITY, ScrollbackBuffer
from console.models import LogClass, LogLine


def _line(i: int) -> LogLine:
    return LogLine(LogClass.INFO, f"line {i}")


def test_default_capacity_is_500():
    assert ScrollbackBuffer().capacity == DEFAULT_CAPACITY == 500


def test_rejects_non_positive_capacity():
    with pytest.raises(ValueError):
        ScrollbackBuffer(0)


@pytest.mark.parametrize("capacity,appends", [(1, 5), (3, 4), (10, 37), (500, 1200)])
def test_overflow_keeps_most_recent_lines_in_order(capacity, appends):
    buffer = ScrollbackBuffer(capacity)
    for i in range(appends):
        buffer.append(_line(i))

    lines = buffer.snapshot()
    assert len(lines) == capacity
    assert [line.text for line in lines] == [f"line {i}" for i in range(appends - capacity, appends)]


def test_append_assigns_increasing_sequence_numbers():
    buffer = ScrollbackBuffer(2)
    stored = [buffer.append(_line(i)) for i in range(4)]

    assert [line.seq for line in stored] == [1, 2, 3, 4]
    assert [line.seq for line in buffer.snapshot()] == [3, 4]


def test_snapshot_is_detached_from_later_appends():
    buffer = ScrollbackBuffer(5)
    buffer.append(_line(0))
    before = buffer.snapshot()
    buffer.append(_line(1))

    assert len(before) == 1
    assert len(buffer) == 2


def test_concurrent_readers_never_see_partial_state():
    buffer = ScrollbackBuffer(50)
    stop = threading.Event()
    problems = []

    def reader():
        while not stop.is_set():
            lines = buffer.snapshot()
            if len(lines) > 50:
                problems.append(len(lines))
            seqs = [line.seq for line in lines]
            if seqs != sorted(seqs) or (seqs and seqs[-1] - seqs[0] != len(seqs) - 1):
                problems.append(seqs)

    threads = [threading.Thread(target=reader) for _ in range(3)]
    for t in threads:
        t.start()
    for i in range(5000):
        buffer.append(_line(i))
    stop.set()
    for t in threads:
        t.join()

    assert problems == []
    assert buffer.snapshot()[-1].text == "line 4999"

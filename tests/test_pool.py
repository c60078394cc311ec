"""Tests for migaudit.engine.pool and migaudit.engine.locations."""

from __future__ import annotations

import threading
import time

import pytest

from migaudit.engine.locations import LineIndex
from migaudit.engine.pool import bounded_map


class TestBoundedMap:
    """Tests for bounded_map()."""

    def test_input_order(self) -> None:
        def slow_square(n: int) -> int:
            time.sleep(0.001 * (5 - n))
            return n * n

        assert bounded_map(slow_square, range(5), concurrency=4) == [0, 1, 4, 9, 16]

    def test_empty(self) -> None:
        assert bounded_map(str, [], concurrency=2) == []

    def test_width_never_exceeded(self) -> None:
        lock = threading.Lock()
        active = 0
        peak = 0

        def work(_: int) -> None:
            nonlocal active, peak
            with lock:
                active += 1
                peak = max(peak, active)
            time.sleep(0.005)
            with lock:
                active -= 1

        bounded_map(work, range(12), concurrency=3)
        assert peak <= 3

    def test_failure_propagates(self) -> None:
        def fail_on_three(n: int) -> int:
            if n == 3:
                msg = "boom"
                raise RuntimeError(msg)
            return n

        with pytest.raises(RuntimeError, match="boom"):
            bounded_map(fail_on_three, range(6), concurrency=2)

    def test_invalid_concurrency(self) -> None:
        with pytest.raises(ValueError, match="positive integer"):
            bounded_map(str, [1], concurrency=0)


class TestLineIndex:
    """Tests for LineIndex."""

    def test_locate(self) -> None:
        lines = LineIndex("ab\ncd\n\nef")
        assert lines.locate(0) == (1, 1)
        assert lines.locate(1) == (1, 2)
        assert lines.locate(3) == (2, 1)
        assert lines.locate(6) == (3, 1)
        assert lines.locate(8) == (4, 2)

    def test_end_of_content(self) -> None:
        lines = LineIndex("ab\n")
        assert lines.locate(3) == (2, 1)
        assert lines.line_text(2) == ""

    def test_line_text(self) -> None:
        lines = LineIndex("first\r\nsecond\nthird")
        assert lines.line_text(1) == "first"
        assert lines.line_text(2) == "second"
        assert lines.line_text(3) == "third"

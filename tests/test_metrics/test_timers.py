"""
Тесты таймеров фаз итерации.
"""

import time

import pytest

from fuzzykmeans.metrics.timers import IterationTimings, Timer


class TestTimer:
    """Тесты контекстного менеджера Timer."""

    def test_measures_sleep(self):
        with Timer() as t:
            time.sleep(0.05)

        assert t.elapsed >= 0.05
        assert t.elapsed == pytest.approx(t.end - t.start)

    def test_reuse_overwrites(self):
        timer = Timer()
        with timer:
            time.sleep(0.03)
        first_end = timer.end

        with timer:
            pass

        assert timer.start >= first_end
        assert timer.elapsed < 0.03

    def test_nested(self):
        with Timer() as outer:
            with Timer() as inner:
                time.sleep(0.02)

        assert outer.elapsed >= inner.elapsed


class TestIterationTimings:

    def test_totals(self):
        timings = IterationTimings()
        timings.record(0.5, 0.1)
        timings.record(0.25, 0.2)

        assert timings.n_iterations == 2
        assert timings.assign_total == pytest.approx(0.75)
        assert timings.update_total == pytest.approx(0.3)
        assert timings.iter_total == pytest.approx(1.05)

    def test_reset(self):
        timings = IterationTimings()
        timings.record(1.0, 1.0)

        timings.reset()

        assert timings.n_iterations == 0
        assert timings.iter_total == 0.0

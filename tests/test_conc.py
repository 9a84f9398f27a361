"""Tests for settled fan-out over a thread pool."""

from __future__ import annotations

import contextvars
import threading

import pytest

from nodeform.utils.conc import map_settled

pytestmark = [pytest.mark.unit, pytest.mark.xdist_group("unit"), pytest.mark.timeout(30)]

request_id: contextvars.ContextVar[str] = contextvars.ContextVar("request_id", default="-")


class TestMapSettled:
    def test_results_in_input_order(self) -> None:
        results = map_settled(lambda x: x * 2, [3, 1, 2])
        assert [r.value for r in results] == [6, 2, 4]
        assert [r.item for r in results] == [3, 1, 2]
        assert all(r.ok for r in results)

    def test_empty(self) -> None:
        assert map_settled(lambda x: x, []) == []

    def test_failure_does_not_cancel_siblings(self) -> None:
        done: list[int] = []

        def work(x: int) -> int:
            if x == 2:
                raise ValueError("boom")
            done.append(x)
            return x

        results = map_settled(work, [1, 2, 3])

        assert sorted(done) == [1, 3]
        assert isinstance(results[1].error, ValueError)
        assert not results[1].ok
        assert results[0].ok and results[2].ok

    def test_runs_concurrently(self) -> None:
        barrier = threading.Barrier(4, timeout=5)
        results = map_settled(lambda _: barrier.wait(), range(4))
        assert all(r.ok for r in results)

    def test_concurrency_limit(self) -> None:
        active = 0
        peak = 0
        lock = threading.Lock()

        def work(_: int) -> None:
            nonlocal active, peak
            with lock:
                active += 1
                peak = max(peak, active)
            threading.Event().wait(0.01)
            with lock:
                active -= 1

        map_settled(work, range(8), concurrency=2)
        assert peak <= 2

    def test_context_propagated(self) -> None:
        token = request_id.set("provision-1")
        try:
            results = map_settled(lambda _: request_id.get(), range(3))
        finally:
            request_id.reset(token)
        assert [r.value for r in results] == ["provision-1"] * 3

    def test_base_exceptions_propagate(self) -> None:
        def work(x: int) -> int:
            if x == 1:
                raise KeyboardInterrupt
            return x

        with pytest.raises(KeyboardInterrupt):
            map_settled(work, [0, 1])

"""Tests for pagefind_docs.scheduler module."""

from __future__ import annotations

import asyncio

import pytest

from pagefind_docs.scheduler import Outcome, run_bounded


class _Gauge:
    def __init__(self):
        self.current = 0
        self.peak = 0

    def task(self, value, delay=0.01):
        async def run():
            self.current += 1
            self.peak = max(self.peak, self.current)
            try:
                await asyncio.sleep(delay)
                return value
            finally:
                self.current -= 1

        return run


class TestOutcome:
    def test_success(self):
        outcome = Outcome.success(5)
        assert outcome.ok
        assert outcome.value == 5
        assert outcome.error is None

    def test_failure(self):
        err = RuntimeError("x")
        outcome = Outcome.failure(err)
        assert not outcome.ok
        assert outcome.error is err


class TestRunBounded:
    @pytest.mark.asyncio
    async def test_respects_limit_and_runs_in_parallel(self):
        gauge = _Gauge()
        tasks = [gauge.task(i) for i in range(20)]

        outcomes = await run_bounded(tasks, 4)

        assert [o.value for o in outcomes] == list(range(20))
        assert 1 < gauge.peak <= 4

    @pytest.mark.asyncio
    async def test_preserves_input_order(self):
        gauge = _Gauge()
        # Earlier tasks take longer, so completion order is reversed.
        tasks = [gauge.task(i, delay=0.05 - i * 0.01) for i in range(5)]

        settled = []
        outcomes = await run_bounded(
            tasks, 5, on_settled=lambda index, outcome: settled.append(index)
        )

        assert [o.value for o in outcomes] == [0, 1, 2, 3, 4]
        assert settled == [4, 3, 2, 1, 0]

    @pytest.mark.asyncio
    async def test_failures_are_captured(self):
        async def boom():
            raise ValueError("bad page")

        gauge = _Gauge()
        tasks = [gauge.task("a"), boom, gauge.task("c")]

        outcomes = await run_bounded(tasks, 2)

        assert [o.ok for o in outcomes] == [True, False, True]
        assert outcomes[0].value == "a"
        assert isinstance(outcomes[1].error, ValueError)
        assert outcomes[2].value == "c"

    @pytest.mark.asyncio
    async def test_on_settled_sees_each_task_once(self):
        seen = []
        tasks = [_Gauge().task(i, delay=0) for i in range(7)]

        await run_bounded(tasks, 3, on_settled=lambda index, outcome: seen.append(index))

        assert sorted(seen) == list(range(7))

    @pytest.mark.asyncio
    async def test_empty_input(self):
        assert await run_bounded([], 3) == []

    @pytest.mark.asyncio
    async def test_limit_larger_than_tasks(self):
        outcomes = await run_bounded([_Gauge().task(1)], 50)
        assert [o.value for o in outcomes] == [1]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("limit", [0, -1])
    async def test_invalid_limit(self, limit):
        with pytest.raises(ValueError):
            await run_bounded([_Gauge().task(1)], limit)

    @pytest.mark.asyncio
    async def test_tasks_start_lazily(self):
        started = []

        def factory(i):
            async def run():
                started.append(i)
                await asyncio.sleep(0.01)
                return i

            return run

        tasks = [factory(i) for i in range(6)]
        first_wave = asyncio.ensure_future(run_bounded(tasks, 2))
        await asyncio.sleep(0)
        await asyncio.sleep(0)
        assert len(started) == 2
        await first_wave
        assert sorted(started) == list(range(6))

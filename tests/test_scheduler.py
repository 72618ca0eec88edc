import asyncio

import pytest

from paper_tracker.scheduler import Debouncer, PeriodicTask


class Counter:
    def __init__(self, fail=False):
        self.calls = 0
        self.fail = fail

    async def __call__(self):
        self.calls += 1
        await asyncio.sleep(0.01)
        if self.fail:
            raise RuntimeError("sweep failed")
        return self.calls


@pytest.mark.anyio
async def test_burst_of_calls_runs_once():
    counter = Counter()
    debounced = Debouncer(counter, wait=60)

    results = await asyncio.gather(*(debounced() for _ in range(5)))

    assert counter.calls == 1
    assert results == [1] * 5


@pytest.mark.anyio
async def test_calls_within_window_join_finished_run():
    counter = Counter()
    debounced = Debouncer(counter, wait=60)
    await debounced()
    await debounced()
    assert counter.calls == 1


@pytest.mark.anyio
async def test_calls_after_window_run_again():
    counter = Counter()
    debounced = Debouncer(counter, wait=0)
    await debounced()
    await debounced()
    assert counter.calls == 2


@pytest.mark.anyio
async def test_failures_reach_every_waiting_caller():
    debounced = Debouncer(Counter(fail=True), wait=60)
    results = await asyncio.gather(debounced(), debounced(), return_exceptions=True)
    assert all(isinstance(r, RuntimeError) for r in results)


@pytest.mark.anyio
async def test_periodic_task_keeps_running_after_failures():
    counter = Counter(fail=True)
    task = PeriodicTask(counter, interval=0.01)

    task.start()
    await asyncio.sleep(0.1)
    assert task.running
    await task.stop()

    assert counter.calls >= 2
    assert not task.running


@pytest.mark.anyio
async def test_start_twice_keeps_one_loop():
    counter = Counter()
    task = PeriodicTask(counter, interval=60)
    task.start()
    first = task._task
    task.start()
    assert task._task is first
    await task.stop()


@pytest.mark.anyio
async def test_cancel_stops_in_flight_run():
    started = asyncio.Event()
    finished = []

    async def slow():
        started.set()
        await asyncio.sleep(60)
        finished.append(True)

    debounced = Debouncer(slow, wait=60)
    waiter = asyncio.ensure_future(debounced())
    await started.wait()

    await debounced.cancel()

    assert finished == []
    assert debounced._task is None
    with pytest.raises(asyncio.CancelledError):
        await waiter

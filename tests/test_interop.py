import asyncio

import pytest

from forktask import (
    LoopTimer,
    Task,
    TaskRejected,
    TaskTimeoutError,
    delay,
    from_future,
    timeout,
)
from forktask.interop import futures
from fakes import ManualTimer, Probe, outcome


def test_from_future_resolves() -> None:
    async def five() -> int:
        return 5

    async def run():
        return await outcome(Task.from_future(five))

    assert asyncio.run(run()) == ("success", 5)


def test_from_future_rejects_with_exception() -> None:
    err = ValueError("5")

    async def fails() -> int:
        raise err

    async def run():
        return await outcome(from_future(fails))

    assert asyncio.run(run()) == ("failure", err)


def test_from_future_factory_is_lazy_and_called_per_fork() -> None:
    calls = []

    async def value() -> str:
        calls.append("called")
        return "v"

    async def run():
        task = from_future(value)
        await asyncio.sleep(0)
        assert calls == []
        await outcome(task)
        await outcome(task)

    asyncio.run(run())
    assert calls == ["called", "called"]


def test_from_future_cancel_suppresses_callbacks() -> None:
    async def slow() -> str:
        await asyncio.sleep(0.05)
        return "late"

    async def run():
        probe = Probe()
        cancel = probe.fork(from_future(slow))
        cancel()
        await asyncio.sleep(0.1)
        return probe

    probe = asyncio.run(run())
    assert probe.calls == 0


def test_to_future_resolves() -> None:
    task = (
        Task.resolved(5)
        .map(lambda x: x + 1)
        .chain(lambda x: Task.resolved(2 * x))
        .map(lambda x: x + 5)
    )

    async def run():
        return await task.to_future()

    assert asyncio.run(run()) == 17


def test_to_future_wraps_plain_failure_values() -> None:
    task = (
        Task.rejected(5)
        .map(lambda x: x + 1)
        .chain(lambda x: Task.resolved(2 * x))
        .map(lambda x: x + 5)
    )

    async def run():
        return await task.to_future()

    with pytest.raises(TaskRejected) as exc_info:
        asyncio.run(run())
    assert exc_info.value.reason == 5


def test_to_future_raises_exception_failures_directly() -> None:
    err = LookupError("missing")

    async def run():
        return await Task.rejected(err).to_future()

    with pytest.raises(LookupError) as exc_info:
        asyncio.run(run())
    assert exc_info.value is err


def test_to_future_forks_immediately() -> None:
    forked = []

    def run_task(fail, succeed):
        forked.append(True)
        succeed(None)

    async def run():
        future = Task(run_task).to_future()
        assert forked == [True]
        await future

    asyncio.run(run())


def test_cancelling_future_cancels_task() -> None:
    timer = ManualTimer()

    async def run():
        future = delay(1, timer=timer).to_future()
        future.cancel()
        await asyncio.sleep(0)

    asyncio.run(run())
    assert timer.cancelled == [0]
    assert timer.pending == 0


def test_round_trip_unwraps_rejection() -> None:
    async def run():
        return await outcome(from_future(lambda: Task.rejected(5).to_future()))

    assert asyncio.run(run()) == ("failure", 5)


def test_delay_with_loop_timer() -> None:
    async def run():
        loop = asyncio.get_running_loop()
        start = loop.time()
        result = await delay(0.05, "done", timer=LoopTimer(loop)).to_future()
        return result, loop.time() - start

    result, elapsed = asyncio.run(run())
    assert result == "done"
    assert elapsed >= 0.04


def test_delay_cancel_with_loop_timer() -> None:
    async def run():
        probe = Probe()
        cancel = probe.fork(delay(0.05))
        cancel()
        await asyncio.sleep(0.15)
        return probe

    assert asyncio.run(run()).calls == 0


def test_timeout_expires() -> None:
    timer = ManualTimer()
    probe = Probe()
    probe.fork(timeout(delay(5, "slow", timer=timer), 1, timer=timer))
    timer.advance(1)
    assert len(probe.failures) == 1
    assert isinstance(probe.failures[0], TaskTimeoutError)
    assert probe.failures[0].seconds == 1
    assert timer.pending == 0


def test_timeout_passes_through_fast_task() -> None:
    timer = ManualTimer()
    probe = Probe()
    probe.fork(timeout(delay(1, "fast", timer=timer), 5, reason="too slow", timer=timer))
    timer.advance(1)
    assert probe.successes == ["fast"]
    assert timer.pending == 0


def test_timeout_custom_reason() -> None:
    timer = ManualTimer()
    probe = Probe()
    probe.fork(timeout(delay(5, timer=timer), 1, reason="too slow", timer=timer))
    timer.advance(1)
    assert probe.failures == ["too slow"]


def test_timeout_builds_a_new_error_per_run() -> None:
    timer = ManualTimer()
    task = timeout(delay(5, timer=timer), 1, timer=timer)
    first, second = Probe(), Probe()
    first.fork(task)
    second.fork(task)
    timer.advance(1)
    assert isinstance(first.failures[0], TaskTimeoutError)
    assert isinstance(second.failures[0], TaskTimeoutError)
    assert first.failures[0] is not second.failures[0]


def test_to_future_wraps_stop_iteration() -> None:
    stop = StopIteration("done")

    async def run():
        return await Task.rejected(stop).to_future()

    with pytest.raises(TaskRejected) as exc_info:
        asyncio.run(run())
    assert exc_info.value.reason is stop


def test_from_future_holds_a_reference_while_running() -> None:
    async def slow() -> str:
        await asyncio.sleep(0.01)
        return "kept"

    async def run():
        before = len(futures._in_flight)
        task = from_future(slow)
        Probe().fork(task)
        assert len(futures._in_flight) == before + 1
        result = await outcome(task)
        await asyncio.sleep(0.02)
        return result

    assert asyncio.run(run()) == ("success", "kept")
    assert futures._in_flight == set()

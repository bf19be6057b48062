"""Unit tests for the bounded-concurrency dispatch queue."""

import asyncio

import pytest

import mcenter
from mcenter.queue import DispatchQueue


class _ConcurrencyProbe(object):
    """Tracks how many worker runs overlap."""

    def __init__(self) -> None:
        self.active = 0
        self.peak = 0
        self.done: list = []

    async def work(self, item) -> None:
        self.active += 1
        self.peak = max(self.peak, self.active)
        await asyncio.sleep(0.01)
        self.active -= 1
        self.done.append(item)


@pytest.mark.asyncio
async def test_queue_respects_concurrency_ceiling() -> None:
    """Test that a burst never runs more than `concurrency` items at once."""
    probe = _ConcurrencyProbe()
    queue = DispatchQueue(probe.work, concurrency=3)

    for i in range(20):
        queue.push(i)

    assert queue.running() == 3
    assert queue.length() == 17

    await queue.join()

    assert probe.peak == 3
    assert sorted(probe.done) == list(range(20))
    assert queue.idle()


@pytest.mark.asyncio
async def test_queue_admits_in_push_order() -> None:
    """Test that with one slot items are worked on in push order."""
    probe = _ConcurrencyProbe()
    queue = DispatchQueue(probe.work, concurrency=1)

    for i in range(5):
        queue.push(i)
    await queue.join()

    assert probe.done == [0, 1, 2, 3, 4]
    assert probe.peak == 1


@pytest.mark.asyncio
async def test_queue_keeps_going_after_worker_failure(caplog) -> None:
    """Test that a worker exception is logged and does not stall the queue."""
    processed: list[int] = []

    async def worker(item: int) -> None:
        if item == 1:
            raise ValueError("bad item")
        processed.append(item)

    queue = DispatchQueue(worker, concurrency=1)
    with caplog.at_level("ERROR", logger="mcenter.queue"):
        for i in range(3):
            queue.push(i)
        await queue.join()

    assert processed == [0, 2]
    assert "bad item" in caplog.text


@pytest.mark.asyncio
async def test_join_on_idle_queue_returns() -> None:
    """Test that joining an idle queue returns immediately."""
    queue = DispatchQueue(lambda item: asyncio.sleep(0), concurrency=2)
    await asyncio.wait_for(queue.join(), timeout=1)


def test_queue_rejects_zero_concurrency() -> None:
    """Test that the queue itself refuses a ceiling below one."""
    with pytest.raises(ValueError):
        DispatchQueue(lambda item: asyncio.sleep(0), concurrency=0)


def test_push_without_running_loop_raises() -> None:
    """Test that pushing outside an event loop fails loudly."""
    queue = DispatchQueue(lambda item: asyncio.sleep(0), concurrency=1)

    with pytest.raises(RuntimeError):
        queue.push("item")

    assert queue.length() == 0


@pytest.mark.asyncio
async def test_center_dispatch_concurrency_bound() -> None:
    """Test that no more than max_listeners publishes dispatch at once."""
    center = mcenter.MessageCenter(max_listeners=4)
    active: list[int] = [0]
    peak: list[int] = [0]
    results: list[dict] = []

    async def first(data):
        active[0] += 1
        peak[0] = max(peak[0], active[0])
        await asyncio.sleep(0.01)
        return data

    async def second(data):
        await asyncio.sleep(0.01)
        active[0] -= 1
        return data

    center.register("burst", None, ["first", "second"])
    center.subscribe("burst", "first", first)
    center.subscribe("burst", "second", second)

    for i in range(25):
        center.publish("burst", i, results.append)

    await center.join()

    assert peak[0] == 4
    assert len(results) == 25
    assert sorted(r["first"].value for r in results) == list(range(25))

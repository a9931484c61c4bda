"""Unit tests for observable streams."""

import asyncio

import pytest

from wundercast.core.streams import Stream


def test_subscribe_replays_current_value():
    """Test new subscribers receive the current value first."""
    stream = Stream("busy", True)
    received = []

    stream.subscribe(received.append)
    stream.emit(False)

    assert received == [True, False]
    assert stream.value is False


def test_subscribe_skip_current():
    """Test subscribers can opt out of the replayed value."""
    stream = Stream("busy", True)
    received = []

    stream.subscribe(received.append, skip_current=True)
    stream.emit(False)

    assert received == [False]


def test_stream_without_value():
    """Test a stream with no initial value has nothing to replay."""
    stream = Stream("positions")
    received = []

    stream.subscribe(received.append)

    assert received == []
    assert stream.has_value is False
    with pytest.raises(LookupError):
        stream.value


def test_unsubscribe():
    """Test unsubscribed listeners stop receiving values."""
    stream = Stream("result")
    received = []

    unsubscribe = stream.subscribe(received.append)
    stream.emit(1)
    unsubscribe()
    unsubscribe()
    stream.emit(2)

    assert received == [1]


def test_failing_listener_does_not_block_others():
    """Test one broken listener does not stop delivery."""
    stream = Stream("result")
    received = []

    def broken(value):
        raise RuntimeError("listener bug")

    stream.subscribe(broken)
    stream.subscribe(received.append)
    stream.emit("Paris")

    assert received == ["Paris"]


def test_non_callable_listener_rejected():
    """Test subscribe validates the listener."""
    with pytest.raises(ValueError):
        Stream("result").subscribe("not callable")


def test_skip_drops_leading_values():
    """Test skip derives a stream without the first values."""
    stream = Stream("busy", True)
    received = []

    stream.skip(1).subscribe(received.append)
    stream.emit(True)
    stream.emit(False)

    assert received == [True, False]


@pytest.mark.asyncio
async def test_async_listener_is_scheduled():
    """Test coroutine listeners run as tasks on the loop."""
    stream = Stream("result")
    received = []

    async def listener(value):
        received.append(value)

    stream.subscribe(listener)
    stream.emit("Paris")
    assert received == []

    await asyncio.sleep(0)
    assert received == ["Paris"]


@pytest.mark.asyncio
async def test_async_listener_task_is_held_until_done():
    """Test scheduled listener tasks stay referenced while they run."""
    stream = Stream("result")
    release = asyncio.Event()
    received = []

    async def listener(value):
        await release.wait()
        received.append(value)

    stream.subscribe(listener)
    stream.emit("Paris")
    await asyncio.sleep(0)

    assert len(stream._tasks) == 1

    release.set()
    await asyncio.gather(*stream._tasks)
    await asyncio.sleep(0)

    assert received == ["Paris"]
    assert stream._tasks == set()

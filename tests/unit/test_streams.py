import asyncio

import pytest

from agent_swarm.utils.streams import ResultSlot, StitchableStream


async def numbers(*values):
    for value in values:
        await asyncio.sleep(0)
        yield value


def test_sources_are_emitted_in_splice_order():
    async def scenario():
        stream = StitchableStream()
        view = stream.tee()
        stream.add_stream(numbers(1, 2))
        stream.enqueue(3)
        stream.add_stream(numbers(4, 5))
        stream.close()
        return [item async for item in view]

    assert asyncio.run(scenario()) == [1, 2, 3, 4, 5]


def test_every_view_sees_every_item():
    async def scenario():
        stream = StitchableStream()
        first, second = stream.tee(), stream.tee()
        stream.add_stream(numbers("a", "b"))
        stream.close()
        return [item async for item in first], [item async for item in second]

    assert asyncio.run(scenario()) == (["a", "b"], ["a", "b"])


def test_failing_source_raises_in_consumer():
    async def broken():
        yield 1
        raise ValueError("source broke")

    async def scenario():
        stream = StitchableStream()
        view = stream.tee()
        stream.add_stream(broken())
        received = []
        with pytest.raises(ValueError):
            async for item in view:
                received.append(item)
        return received

    assert asyncio.run(scenario()) == [1]


def test_closed_stream_rejects_new_sources():
    async def scenario():
        stream = StitchableStream()
        stream.close()
        stream.close()
        with pytest.raises(RuntimeError):
            stream.enqueue(1)

    asyncio.run(scenario())


def test_result_slot_resolves_every_waiter():
    async def scenario():
        slot = ResultSlot()
        waiters = [asyncio.ensure_future(slot.wait()) for _ in range(3)]
        await asyncio.sleep(0)
        slot.set("done")
        return await asyncio.gather(*waiters), await slot

    assert asyncio.run(scenario()) == (["done", "done", "done"], "done")


def test_result_slot_is_single_assignment():
    slot = ResultSlot()
    slot.set(1)
    with pytest.raises(RuntimeError):
        slot.set(2)
    assert slot.result() == 1


def test_result_slot_reraises_failure():
    async def scenario():
        slot = ResultSlot()
        slot.set_exception(KeyError("missing"))
        with pytest.raises(KeyError):
            await slot

    asyncio.run(scenario())

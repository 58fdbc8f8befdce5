import asyncio

import pytest

from shuttle.core.runnable import Lambda, RunnableConfig


@pytest.mark.asyncio
async def test_lambda_sync_and_async():
    upper = Lambda(lambda text: text.upper())
    assert await upper.invoke("hi") == "HI"

    async def double(x):
        return x * 2

    node = Lambda(double)
    assert node.name == "double"
    assert await node.invoke(3) == 6
    assert [chunk async for chunk in node.stream(3)] == [6]


@pytest.mark.asyncio
async def test_batch_respects_max_concurrency():
    running = 0
    peak = 0

    async def slow(x):
        nonlocal running, peak
        running += 1
        peak = max(peak, running)
        await asyncio.sleep(0.01)
        running -= 1
        return x

    results = await Lambda(slow).batch([1, 2, 3, 4], RunnableConfig(max_concurrency=2))
    assert results == [1, 2, 3, 4]
    assert peak <= 2


@pytest.mark.asyncio
async def test_emit_calls_sync_and_async_callbacks():
    seen = []

    def on_sync(event, node, payload):
        seen.append(("sync", event, node, payload))

    async def on_async(event, node, payload):
        seen.append(("async", event, node, payload))

    config = RunnableConfig(callbacks=[on_sync, on_async])
    await config.emit("node_start", "chat", 1)

    assert seen == [("sync", "node_start", "chat", 1), ("async", "node_start", "chat", 1)]

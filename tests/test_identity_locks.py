import asyncio

from relay.services.identity_locks import IdentityLocks


def test_lock_is_released_and_dropped():
    locks = IdentityLocks()

    async def run():
        async with locks.hold("U1"):
            assert len(locks) == 1
        assert len(locks) == 0

    asyncio.run(run())


def test_same_identity_runs_in_order():
    locks = IdentityLocks()
    trace = []

    async def worker(name):
        async with locks.hold("U1"):
            trace.append(f"{name}:start")
            await asyncio.sleep(0.01)
            trace.append(f"{name}:end")

    async def run():
        await asyncio.gather(worker("a"), worker("b"))

    asyncio.run(run())

    assert trace == ["a:start", "a:end", "b:start", "b:end"]
    assert len(locks) == 0


def test_lock_is_dropped_after_error():
    locks = IdentityLocks()

    async def run():
        try:
            async with locks.hold("U1"):
                raise RuntimeError("boom")
        except RuntimeError:
            pass

    asyncio.run(run())

    assert len(locks) == 0

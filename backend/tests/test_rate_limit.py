import asyncio

import pytest

from echo_server.rate_limit import IntervalGate


def test_first_request_goes_out_immediately(fake_clock):
    gate = IntervalGate(2.0, clock=fake_clock, sleep=fake_clock.sleep)
    asyncio.run(gate.wait())
    assert fake_clock.sleeps == []
    assert gate.last_request_at == 100.0


def test_back_to_back_requests_are_spaced_by_interval(fake_clock):
    gate = IntervalGate(2.0, clock=fake_clock, sleep=fake_clock.sleep)

    async def scenario():
        await gate.wait()
        first = gate.last_request_at
        fake_clock.now += 0.5
        await gate.wait()
        return first, gate.last_request_at

    first, second = asyncio.run(scenario())
    assert fake_clock.sleeps == [pytest.approx(1.5)]
    assert second - first >= 2.0


def test_no_wait_once_interval_has_passed(fake_clock):
    gate = IntervalGate(2.0, clock=fake_clock, sleep=fake_clock.sleep)

    async def scenario():
        await gate.wait()
        fake_clock.now += 5
        await gate.wait()

    asyncio.run(scenario())
    assert fake_clock.sleeps == []
    assert gate.remaining() == pytest.approx(2.0)


def test_concurrent_callers_are_serialized(fake_clock):
    gate = IntervalGate(2.0, clock=fake_clock, sleep=fake_clock.sleep)
    stamps = []

    async def call():
        await gate.wait()
        stamps.append(gate.last_request_at)

    async def scenario():
        await asyncio.gather(call(), call(), call())

    asyncio.run(scenario())
    assert stamps == [100.0, 102.0, 104.0]


def test_zero_interval_never_sleeps(fake_clock):
    gate = IntervalGate(0, clock=fake_clock, sleep=fake_clock.sleep)

    async def scenario():
        for _ in range(3):
            await gate.wait()

    asyncio.run(scenario())
    assert fake_clock.sleeps == []


def test_gate_can_be_shared_across_event_loops(fake_clock):
    """The module-level client's gate outlives any single event loop."""
    async def yielding_sleep(seconds):
        await fake_clock.sleep(seconds)
        await asyncio.sleep(0)

    gate = IntervalGate(2.0, clock=fake_clock, sleep=yielding_sleep)

    async def contended():
        await asyncio.gather(gate.wait(), gate.wait(), gate.wait())

    asyncio.run(contended())
    asyncio.run(contended())
    assert fake_clock.sleeps == [2.0] * 5
    assert gate.last_request_at == 110.0

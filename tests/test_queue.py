"""
Tests for the AI request queue
"""

import asyncio

import pytest

from src.ai.queue import AIRequestQueue, Provider, QueueStatus


class FakeTime:
    def __init__(self):
        self.now = 100.0
        self.sleeps = []
        self.on_sleep = None

    def clock(self):
        return self.now

    async def sleep(self, seconds):
        self.sleeps.append(round(seconds, 6))
        if self.on_sleep:
            self.on_sleep()
        self.now += seconds


class TestAIRequestQueue:
    """Tests for AIRequestQueue"""

    def setup_method(self):
        self.time = FakeTime()
        self.queue = AIRequestQueue(clock=self.time.clock, sleep=self.time.sleep)

    def _job(self, log, name, result=None, error=None):
        async def run():
            log.append(name)
            if error:
                raise error
            return result if result is not None else name
        return run

    def test_returns_result(self):
        async def scenario():
            return await self.queue.add_request(self._job([], "a", result=42))

        assert asyncio.run(scenario()) == 42

    def test_fifo_order_across_providers(self):
        log = []

        async def scenario():
            return await asyncio.gather(
                self.queue.add_request(self._job(log, "g1"), Provider.GROQ),
                self.queue.add_request(self._job(log, "m1"), Provider.GEMINI),
                self.queue.add_request(self._job(log, "g2"), Provider.GROQ),
                self.queue.add_request(self._job(log, "m2"), "gemini"),
            )

        results = asyncio.run(scenario())
        assert log == ["g1", "m1", "g2", "m2"]
        assert results == ["g1", "m1", "g2", "m2"]

    def test_same_provider_requests_are_spaced(self):
        async def scenario():
            await asyncio.gather(
                self.queue.add_request(self._job([], "a"), Provider.GROQ),
                self.queue.add_request(self._job([], "b"), Provider.GROQ),
                self.queue.add_request(self._job([], "c"), Provider.GROQ),
            )

        asyncio.run(scenario())
        assert self.time.sleeps == [1.0, 1.0]

    def test_providers_have_independent_delays(self):
        async def scenario():
            await asyncio.gather(
                self.queue.add_request(self._job([], "g1"), Provider.GROQ),
                self.queue.add_request(self._job([], "m1"), Provider.GEMINI),
                self.queue.add_request(self._job([], "m2"), Provider.GEMINI),
            )

        asyncio.run(scenario())
        # The first call to each provider is not delayed
        assert self.time.sleeps == [0.5]

    def test_no_wait_when_enough_time_has_passed(self):
        async def scenario():
            await self.queue.add_request(self._job([], "a"), Provider.GROQ)
            self.time.now += 5
            await self.queue.add_request(self._job([], "b"), Provider.GROQ)

        asyncio.run(scenario())
        assert self.time.sleeps == []

    def test_partial_wait_uses_remaining_delay(self):
        async def scenario():
            await self.queue.add_request(self._job([], "a"), Provider.GROQ)
            self.time.now += 0.25
            await self.queue.add_request(self._job([], "b"), Provider.GROQ)

        asyncio.run(scenario())
        assert self.time.sleeps == [0.75]

    def test_failure_does_not_stop_queue(self):
        log = []

        async def scenario():
            return await asyncio.gather(
                self.queue.add_request(self._job(log, "bad", error=ValueError("boom"))),
                self.queue.add_request(self._job(log, "good")),
                return_exceptions=True,
            )

        bad, good = asyncio.run(scenario())
        assert isinstance(bad, ValueError)
        assert good == "good"
        assert log == ["bad", "good"]

    def test_exception_propagates_to_caller(self):
        async def scenario():
            await self.queue.add_request(self._job([], "bad", error=KeyError("missing")))

        with pytest.raises(KeyError):
            asyncio.run(scenario())

    def test_status_notifications(self):
        statuses = []
        self.queue.on_status_change(statuses.append)

        async def scenario():
            await asyncio.gather(
                self.queue.add_request(self._job([], "a")),
                self.queue.add_request(self._job([], "b")),
            )

        asyncio.run(scenario())

        assert all(isinstance(s, QueueStatus) for s in statuses)
        assert [s.queue_length for s in statuses] == [1, 2, 1, 0]
        assert statuses[1].estimated_wait_time == 2000
        assert self.queue.get_status() == QueueStatus(queue_length=0, processing=False, estimated_wait_time=0)

    def test_custom_delays(self):
        queue = AIRequestQueue(groq_delay=0.2, gemini_delay=0.0, clock=self.time.clock, sleep=self.time.sleep)

        async def scenario():
            await asyncio.gather(
                queue.add_request(self._job([], "a"), Provider.GROQ),
                queue.add_request(self._job([], "b"), Provider.GROQ),
                queue.add_request(self._job([], "c"), Provider.GEMINI),
                queue.add_request(self._job([], "d"), Provider.GEMINI),
            )

        asyncio.run(scenario())
        assert self.time.sleeps == [0.2]

    def test_unknown_provider_rejected(self):
        async def scenario():
            await self.queue.add_request(self._job([], "a"), "openai")

        with pytest.raises(ValueError):
            asyncio.run(scenario())

    def test_cancelled_caller_is_skipped(self):
        log = []

        async def scenario():
            await self.queue.add_request(self._job(log, "first"), Provider.GROQ)

            second = asyncio.ensure_future(self.queue.add_request(self._job(log, "second"), Provider.GROQ))
            # Caller gives up while the queue waits out the Groq delay
            self.time.on_sleep = second.cancel

            with pytest.raises(asyncio.CancelledError):
                await second

            return await self.queue.add_request(self._job(log, "third"), Provider.GEMINI)

        assert asyncio.run(scenario()) == "third"
        assert log == ["first", "third"]
        assert self.time.sleeps == [1.0]
        assert self.queue.get_status().queue_length == 0

    def test_failing_listener_does_not_stop_queue(self):
        calls = []

        def listener(status):
            calls.append(status)
            raise RuntimeError("listener bug")

        self.queue.on_status_change(listener)

        async def scenario():
            return await asyncio.gather(
                self.queue.add_request(self._job([], "a")),
                self.queue.add_request(self._job([], "b")),
            )

        assert asyncio.run(scenario()) == ["a", "b"]
        assert len(calls) == 4
        assert self.queue.get_status() == QueueStatus(queue_length=0, processing=False, estimated_wait_time=0)

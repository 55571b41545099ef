"""
AI Request Queue

Serializes outbound LLM calls through a single FIFO queue and keeps a
minimum delay between successive calls to the same provider.
"""

import asyncio
import logging
import random
import time
from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from functools import lru_cache
from typing import Any, Awaitable, Callable, Deque, Dict, List, Optional

from pydantic import BaseModel

from config.settings import get_settings

logger = logging.getLogger(__name__)


class Provider(str, Enum):
    GROQ = "groq"
    GEMINI = "gemini"


class QueueStatus(BaseModel):
    """Snapshot of the queue for status listeners"""
    queue_length: int
    processing: bool
    estimated_wait_time: int  # milliseconds


@dataclass
class QueuedRequest:
    id: str
    execute: Callable[[], Awaitable[Any]]
    future: asyncio.Future
    provider: Provider
    timestamp: float = field(default_factory=time.time)


class AIRequestQueue:
    """
    FIFO queue with per-provider rate limiting.

    Usage:
        queue = AIRequestQueue()
        text = await queue.add_request(lambda: groq.chat_completion(messages), Provider.GROQ)
    """

    GROQ_DELAY = 1.0    # seconds between Groq requests
    GEMINI_DELAY = 0.5  # seconds between Gemini requests

    def __init__(
        self,
        groq_delay: Optional[float] = None,
        gemini_delay: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.delays: Dict[Provider, float] = {
            Provider.GROQ: self.GROQ_DELAY if groq_delay is None else groq_delay,
            Provider.GEMINI: self.GEMINI_DELAY if gemini_delay is None else gemini_delay,
        }
        self._clock = clock
        self._sleep = sleep
        self._queue: Deque[QueuedRequest] = deque()
        self._last_request: Dict[Provider, Optional[float]] = {p: None for p in Provider}
        self._status_callbacks: List[Callable[[QueueStatus], None]] = []
        self._drain_task: Optional[asyncio.Task] = None
        self.processing = False

    async def add_request(
        self,
        execute: Callable[[], Awaitable[Any]],
        provider: Provider = Provider.GROQ,
    ) -> Any:
        """
        Queue a request and wait for its result.

        Args:
            execute: Zero-argument callable returning an awaitable
            provider: Provider whose rate limit applies

        Returns:
            Whatever the awaitable returns. Exceptions propagate to the caller.
        """
        provider = Provider(provider)
        loop = asyncio.get_running_loop()
        request = QueuedRequest(
            id=f"{provider.value}-{int(time.time() * 1000)}-{random.random()}",
            execute=execute,
            future=loop.create_future(),
            provider=provider,
        )

        self._queue.append(request)
        self._notify_status_change()

        if not self.processing:
            self.processing = True
            self._drain_task = loop.create_task(self._process_queue())

        return await request.future

    async def _process_queue(self):
        try:
            while self._queue:
                request = self._queue[0]

                if request.future.done():
                    # Caller gave up while waiting
                    self._queue.popleft()
                    self._notify_status_change()
                    continue

                delay = self.delays[request.provider]
                last_request = self._last_request[request.provider]
                if last_request is not None:
                    elapsed = self._clock() - last_request
                    if elapsed < delay:
                        await self._sleep(delay - elapsed)

                if request.future.done():
                    # Cancelled during the rate-limit wait
                    self._queue.popleft()
                    self._notify_status_change()
                    continue

                try:
                    result = await request.execute()
                    if not request.future.done():
                        request.future.set_result(result)
                except Exception as e:
                    logger.warning(f"Queued {request.provider.value} request {request.id} failed: {e}")
                    if not request.future.done():
                        request.future.set_exception(e)

                self._last_request[request.provider] = self._clock()

                self._queue.popleft()
                self._notify_status_change()
        finally:
            self.processing = False
            self._drain_task = None

    def on_status_change(self, callback: Callable[[QueueStatus], None]):
        """Register a listener called with a QueueStatus on every change"""
        self._status_callbacks.append(callback)

    def _notify_status_change(self):
        status = self.get_status()
        for callback in self._status_callbacks:
            try:
                callback(status)
            except Exception as e:
                logger.warning(f"Queue status listener failed: {e}")

    def get_status(self) -> QueueStatus:
        return QueueStatus(
            queue_length=len(self._queue),
            processing=self.processing,
            estimated_wait_time=len(self._queue) * 1000,
        )


@lru_cache()
def get_ai_queue() -> AIRequestQueue:
    """Process-wide queue shared by every request handler"""
    settings = get_settings()
    return AIRequestQueue(
        groq_delay=settings.groq_delay_seconds,
        gemini_delay=settings.gemini_delay_seconds,
    )

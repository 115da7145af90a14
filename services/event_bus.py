"""
Ticker Event Bus

Topic-based notification channel between the core (TickerConfig, Exchange)
and whoever displays prices. Two ways to listen:

- add_listener(topic, callback): synchronous callback, invoked on publish
- subscribe(topic): asyncio.Queue receiving every event, for consumers
  running their own task

Publishing never blocks. When a loop is bound and publish is called from
another thread, delivery is handed to that loop with call_soon_threadsafe,
so listeners always run in the foreground context.
"""

import asyncio
from collections import defaultdict
from typing import Any, Callable, DefaultDict, Dict, List, Optional, Set

from core.logging import get_logger

# Topics
PAIRS_UPDATED = "pairs_updated"
PRICES_UPDATED = "prices_updated"
SELECTION_UPDATED = "selection_updated"
INTERVAL_UPDATED = "interval_updated"

TOPICS = (PAIRS_UPDATED, PRICES_UPDATED, SELECTION_UPDATED, INTERVAL_UPDATED)

Event = Dict[str, Any]
Listener = Callable[[Event], None]


def _on_loop_thread(loop: asyncio.AbstractEventLoop) -> bool:
    try:
        return asyncio.get_running_loop() is loop
    except RuntimeError:
        return False


class EventBus:
    """
    Event bus with topic-based pub/sub.

    - Each queue subscriber gets its own asyncio.Queue and will not block publishers.
    - Unsubscribing is important to avoid queue leaks when consumers go away.
    - A failing listener is logged and does not stop delivery to the others.

    Events are dicts: {"topic": <topic>, "data": <payload or None>}.
    """

    def __init__(self, max_queue_size: int = 1000, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        self._topics: DefaultDict[str, Set[asyncio.Queue]] = defaultdict(set)
        self._listeners: DefaultDict[str, List[Listener]] = defaultdict(list)
        self._max_queue_size = max_queue_size
        self._lock = asyncio.Lock()
        self._loop = loop
        self._logger = get_logger(__name__)

    def bind_loop(self, loop: asyncio.AbstractEventLoop) -> None:
        """Deliver events on `loop` when publishing from other threads."""
        self._loop = loop

    # ============================================
    # Callback listeners
    # ============================================

    def add_listener(self, topic: str, callback: Listener) -> None:
        self._listeners[topic].append(callback)
        self._logger.debug(f"Listener added to topic '{topic}'. total={len(self._listeners[topic])}")

    def remove_listener(self, topic: str, callback: Listener) -> None:
        listeners = self._listeners.get(topic, [])
        if callback in listeners:
            listeners.remove(callback)

    # ============================================
    # Queue subscribers
    # ============================================

    async def subscribe(self, topic: str) -> asyncio.Queue:
        """
        Subscribe to a topic. Returns an asyncio.Queue for receiving events.
        """
        queue: asyncio.Queue = asyncio.Queue(maxsize=self._max_queue_size)
        async with self._lock:
            self._topics[topic].add(queue)
        self._logger.debug(f"Subscriber added to topic '{topic}'. total={len(self._topics[topic])}")
        return queue

    async def unsubscribe(self, topic: str, queue: asyncio.Queue) -> None:
        """
        Unsubscribe a queue from a topic and drain it.
        """
        async with self._lock:
            if queue in self._topics.get(topic, set()):
                self._topics[topic].remove(queue)
                while not queue.empty():
                    queue.get_nowait()
        self._logger.debug(f"Subscriber removed from topic '{topic}'. total={len(self._topics[topic])}")

    # ============================================
    # Publishing
    # ============================================

    def publish(self, topic: str, data: Any = None) -> None:
        """
        Publish an event to a topic. Drops queue events if a subscriber queue is full.
        """
        event: Event = {"topic": topic, "data": data}
        loop = self._loop
        if loop is not None and loop.is_running() and not _on_loop_thread(loop):
            loop.call_soon_threadsafe(self._dispatch, topic, event)
            return
        self._dispatch(topic, event)

    def _dispatch(self, topic: str, event: Event) -> None:
        for callback in list(self._listeners.get(topic, [])):
            try:
                callback(event)
            except Exception:
                self._logger.exception(f"Listener {callback!r} failed on topic '{topic}'")

        for q in list(self._topics.get(topic, set())):
            try:
                q.put_nowait(event)
            except asyncio.QueueFull:
                self._logger.warning(f"Dropping event for topic '{topic}' due to full queue")

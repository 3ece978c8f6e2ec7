"""
HEMSAEUCC - Periodic mailbox polling.

The relay has no push channel, so clients poll. The poller runs one
asyncio task that fetches the mailbox every ``interval`` seconds and hands
new messages to a callback. ``stop()`` cancels the task and waits for it.
"""

import asyncio
import contextlib
import logging
from typing import Awaitable, Callable, List, Optional, Union

from .constants import DEFAULT_POLL_INTERVAL
from .errors import RelayError
from .messenger import Messenger, ReceivedMessage

logger = logging.getLogger(__name__)

MessageCallback = Callable[[List[ReceivedMessage]], Union[None, Awaitable[None]]]


class MessagePoller:
    """Single periodic fetch task for a Messenger."""

    def __init__(
        self,
        messenger: Messenger,
        interval: float = DEFAULT_POLL_INTERVAL,
        on_messages: Optional[MessageCallback] = None,
    ):
        if interval <= 0:
            raise ValueError("poll interval must be positive")
        self.messenger = messenger
        self.interval = interval
        self.on_messages = on_messages
        self.running = False
        self.poll_task: Optional[asyncio.Task] = None

    async def start(self) -> None:
        """Start polling. Calling start twice is a no-op."""
        if self.poll_task and not self.poll_task.done():
            return
        self.running = True
        self.poll_task = asyncio.create_task(self._poll_loop())
        logger.info(f"Polling relay every {self.interval}s")

    async def stop(self) -> None:
        """Cancel the poll task and wait for it to finish."""
        self.running = False
        if self.poll_task:
            self.poll_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self.poll_task
            self.poll_task = None
        logger.info("Polling stopped")

    async def poll_once(self) -> List[ReceivedMessage]:
        """Fetch once in a worker thread and dispatch any messages."""
        messages = await asyncio.to_thread(self.messenger.fetch_messages)
        if messages and self.on_messages:
            result = self.on_messages(messages)
            if asyncio.iscoroutine(result):
                await result
        return messages

    async def _poll_loop(self) -> None:
        while self.running:
            try:
                await self.poll_once()
            except asyncio.CancelledError:
                break
            except RelayError as e:
                logger.warning(f"Mailbox fetch failed: {e}")
            except Exception as e:
                logger.error(f"Mailbox poll failed: {e}", exc_info=True)
            await asyncio.sleep(self.interval)

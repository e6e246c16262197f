"""
Latest-query-wins gate for search-as-you-type callers.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional

from .config import APP_NAME
from .constants import FeedConstants

logger = logging.getLogger(APP_NAME + ".debounce")


class LatestQueryGate:
    """
    Delays an async action and cancels it when a newer submission arrives.

    Rapid submissions therefore collapse into a single run of the action
    with the most recent arguments.
    """

    def __init__(
        self,
        action: Callable[..., Awaitable[Any]],
        delay: float = FeedConstants.DEBOUNCE_SECONDS,
    ):
        if delay < 0:
            raise ValueError("delay cannot be negative")
        self.action = action
        self.delay = delay
        self._task: Optional[asyncio.Task] = None

    @property
    def pending(self) -> bool:
        return self._task is not None and not self._task.done()

    async def _run(self, args: tuple, kwargs: dict) -> Any:
        await asyncio.sleep(self.delay)
        return await self.action(*args, **kwargs)

    def submit(self, *args, **kwargs) -> asyncio.Task:
        """Schedule the action, cancelling any submission still waiting."""
        if self.pending:
            logger.debug("Superseding pending submission")
            self._task.cancel()
        self._task = asyncio.get_running_loop().create_task(self._run(args, kwargs))
        return self._task

    def cancel(self) -> bool:
        """Cancel the pending submission; returns True if one was cancelled."""
        if not self.pending:
            return False
        self._task.cancel()
        return True

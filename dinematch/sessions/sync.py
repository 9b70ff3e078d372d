from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Callable

from .models import Session
from .store import SessionStore

logger = logging.getLogger(__name__)


class SessionSync:
    """Cancelable polling task that reports remote changes to one session.

    Use it as an async context manager so the task cannot outlive the
    membership scope::

        async with SessionSync(store, session_id, on_change):
            ...

    or pair :meth:`start` with :meth:`stop` / :meth:`cancel` explicitly.
    ``on_change`` gets each new version, and ``None`` once the session is
    gone, after which polling stops by itself.
    """

    def __init__(
        self,
        store: SessionStore,
        session_id: str,
        on_change: Callable[[Session | None], None],
        interval: float = 5.0,
    ) -> None:
        self._store = store
        self._session_id = session_id
        self._on_change = on_change
        self._interval = interval
        self._task: asyncio.Task | None = None

    @property
    def session_id(self) -> str:
        return self._session_id

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run())
        logger.info("Started sync for session %s", self._session_id)

    def cancel(self) -> None:
        """Request cancellation without waiting for the task to finish."""
        if self._task is not None and not self._task.done():
            self._task.cancel()
            logger.info("Stopped sync for session %s", self._session_id)

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        if not task.done():
            task.cancel()
            logger.info("Stopped sync for session %s", self._session_id)
        with contextlib.suppress(asyncio.CancelledError):
            await task

    async def __aenter__(self) -> "SessionSync":
        self.start()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.stop()

    def _notify(self, session: Session | None) -> None:
        try:
            self._on_change(session)
        except Exception:
            logger.warning("Sync callback failed for session %s", self._session_id, exc_info=True)

    async def _run(self) -> None:
        last_version: int | None = None
        while True:
            session = self._store.load(self._session_id)
            if session is None:
                logger.info("Session %s is gone, ending sync", self._session_id)
                self._notify(None)
                return
            if session.version != last_version:
                last_version = session.version
                self._notify(session)
            await asyncio.sleep(self._interval)

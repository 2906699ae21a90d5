"""Session Observer: publishes the current authentication snapshot.

The observer starts in ``loading`` and notifies async listeners, in
subscription order, whenever a new snapshot is published.
"""

from collections.abc import Awaitable, Callable

import httpx
import structlog
from pydantic import ValidationError

from design2code.schemas.session import SessionSnapshot

logger = structlog.get_logger(__name__)

SessionListener = Callable[[SessionSnapshot], Awaitable[None]]


class SessionObserver:
    """Holds the latest session snapshot and fans it out to listeners."""

    def __init__(self, snapshot: SessionSnapshot | None = None):
        self.snapshot = snapshot or SessionSnapshot.loading()
        self._listeners: list[SessionListener] = []

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def publish(self, snapshot: SessionSnapshot) -> None:
        self.snapshot = snapshot
        for listener in list(self._listeners):
            await listener(snapshot)


class HttpSessionObserver(SessionObserver):
    """Session observer that polls ``GET /session`` on demand."""

    def __init__(self, client: httpx.AsyncClient):
        super().__init__()
        self.client = client

    async def refresh(self) -> SessionSnapshot:
        """Fetch the session and publish it.

        A failed fetch publishes ``unauthenticated`` so the store falls back
        to guest mode instead of staying in ``loading`` forever.
        """
        try:
            response = await self.client.get("/session")
            response.raise_for_status()
            snapshot = SessionSnapshot.model_validate_json(response.content)
        except (httpx.HTTPError, ValidationError) as exc:
            logger.warning("session_fetch_failed", error=str(exc), error_type=type(exc).__name__)
            snapshot = SessionSnapshot.anonymous()

        await self.publish(snapshot)
        return snapshot

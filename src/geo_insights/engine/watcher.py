"""Polling-based observation of a single workflow execution.

`UpdateWatcher.watch` samples the engine every `interval_seconds` and yields a
snapshot whenever `completedAt` moves forward. The stream ends after the
terminal snapshot, or as soon as its `CancellationToken` is cancelled.
Sampling errors are logged and the next tick retries.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterator
from datetime import datetime
from typing import Protocol

from geo_insights.engine.errors import NotFound, StoreUnavailable
from geo_insights.engine.models import WorkflowExecution

logger = logging.getLogger(__name__)


class ExecutionReader(Protocol):
    def get_execution(self, execution_id: str) -> WorkflowExecution: ...


class CancellationToken:
    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def wait(self, timeout: float) -> bool:
        """Sleep up to `timeout` seconds; return True if cancelled meanwhile."""
        return self._event.wait(timeout)


class UpdateWatcher:
    def __init__(self, reader: ExecutionReader, *, interval_seconds: float = 2.0) -> None:
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        self._reader = reader
        self._interval_seconds = interval_seconds

    @property
    def interval_seconds(self) -> float:
        return self._interval_seconds

    def watch(
        self, execution_id: str, token: CancellationToken | None = None
    ) -> Iterator[WorkflowExecution]:
        token = token or CancellationToken()
        last_completed_at: datetime | None = None

        while not token.cancelled:
            snapshot = self._sample(execution_id)
            if snapshot is not None and not token.cancelled:
                completed_at = snapshot.completed_at
                if completed_at is not None and (
                    last_completed_at is None or completed_at > last_completed_at
                ):
                    last_completed_at = completed_at
                    yield snapshot
                if snapshot.is_terminal:
                    return
            if token.wait(self._interval_seconds):
                return

    def subscribe(
        self,
        execution_id: str,
        callback: Callable[[WorkflowExecution], None],
    ) -> Subscription:
        """Deliver updates to `callback` from a background polling thread."""
        token = CancellationToken()
        thread = threading.Thread(
            target=self._deliver,
            name=f"workflow-watch-{execution_id}",
            daemon=True,
            args=(execution_id, token, callback),
        )
        subscription = Subscription(token=token, thread=thread)
        thread.start()
        return subscription

    def _deliver(
        self,
        execution_id: str,
        token: CancellationToken,
        callback: Callable[[WorkflowExecution], None],
    ) -> None:
        for snapshot in self.watch(execution_id, token):
            if token.cancelled:
                return
            callback(snapshot)

    def _sample(self, execution_id: str) -> WorkflowExecution | None:
        try:
            return self._reader.get_execution(execution_id)
        except (StoreUnavailable, NotFound) as e:
            logger.warning(
                "Error polling workflow updates",
                extra={"execution_id": execution_id, "error": str(e)},
            )
            return None
        except Exception:
            logger.exception(
                "Unexpected error polling workflow updates", extra={"execution_id": execution_id}
            )
            return None


class Subscription:
    """Handle for a background watch started by `UpdateWatcher.subscribe`."""

    def __init__(self, *, token: CancellationToken, thread: threading.Thread) -> None:
        self._token = token
        self._thread = thread

    def cancel(self) -> None:
        self._token.cancel()

    @property
    def active(self) -> bool:
        return self._thread.is_alive() and not self._token.cancelled

    def join(self, timeout: float | None = None) -> None:
        self._thread.join(timeout)

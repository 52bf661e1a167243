"""Execution record storage.

The engine talks to an `ExecutionStore`; callers never see which backend is in
use. Every backend hands out deep copies so readers can never alias a record
the engine is still mutating.
"""

from __future__ import annotations

import json
import logging
import os
import threading
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from geo_insights.engine.errors import NotFound, StoreUnavailable
from geo_insights.engine.models import WorkflowExecution

logger = logging.getLogger(__name__)

Mutator = Callable[[WorkflowExecution], None]


class ExecutionStore(ABC):
    """Keyed storage for workflow executions.

    `update` applies the mutator under the store's lock, so each call is one
    atomic state transition from a reader's point of view.
    """

    @abstractmethod
    def create(self, execution: WorkflowExecution) -> WorkflowExecution:
        pass

    @abstractmethod
    def get(self, execution_id: str) -> WorkflowExecution:
        """Return a snapshot copy, or raise `NotFound`."""
        pass

    @abstractmethod
    def update(self, execution_id: str, mutator: Mutator) -> WorkflowExecution:
        pass

    @abstractmethod
    def list(self, limit: int | None = None) -> list[WorkflowExecution]:  # noqa: A003
        """Return snapshots, most recently started first."""
        pass


def _newest_first(
    executions: list[WorkflowExecution], limit: int | None
) -> list[WorkflowExecution]:
    ordered = sorted(executions, key=lambda e: e.started_at, reverse=True)
    return ordered if limit is None else ordered[:limit]


class InMemoryExecutionStore(ExecutionStore):
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._records: dict[str, WorkflowExecution] = {}

    def create(self, execution: WorkflowExecution) -> WorkflowExecution:
        with self._lock:
            if execution.id in self._records:
                raise ValueError(f"Execution already exists: {execution.id}")
            self._records[execution.id] = execution.model_copy(deep=True)
            return execution.model_copy(deep=True)

    def get(self, execution_id: str) -> WorkflowExecution:
        with self._lock:
            record = self._records.get(execution_id)
            if record is None:
                raise NotFound(execution_id)
            return record.model_copy(deep=True)

    def update(self, execution_id: str, mutator: Mutator) -> WorkflowExecution:
        with self._lock:
            record = self._records.get(execution_id)
            if record is None:
                raise NotFound(execution_id)
            # Mutate a copy so a failing mutator leaves the stored record intact.
            working = record.model_copy(deep=True)
            mutator(working)
            self._records[execution_id] = working
            return working.model_copy(deep=True)

    def list(self, limit: int | None = None) -> list[WorkflowExecution]:  # noqa: A003
        with self._lock:
            snapshots = [r.model_copy(deep=True) for r in self._records.values()]
        return _newest_first(snapshots, limit)


@dataclass
class JsonFileExecutionStore(ExecutionStore):
    """Persist executions to a single JSON file (best-effort durability).

    This is intentionally minimal. If/when we need reliability and scale, this
    should move to a real database.
    """

    path: Path

    def __post_init__(self) -> None:
        self._lock = threading.Lock()
        # Raw items that failed validation on the last load; written back as-is.
        self._unparsed: list[Any] = []

    def _load_unlocked(self) -> dict[str, WorkflowExecution]:
        if not self.path.exists():
            self._unparsed = []
            return {}
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except OSError as e:
            raise StoreUnavailable(f"Cannot read {self.path}: {e}") from e
        except json.JSONDecodeError as e:
            # Saving over an unparseable file would drop every record in it.
            raise StoreUnavailable(f"Cannot parse {self.path}: {e}") from e
        if not isinstance(raw, list):
            raise StoreUnavailable(f"Unexpected executions file layout in {self.path}")
        records: dict[str, WorkflowExecution] = {}
        self._unparsed = []
        for item in raw:
            try:
                execution = WorkflowExecution.model_validate(item)
            except ValidationError:
                logger.warning(
                    "Skipping malformed execution record", extra={"path": str(self.path)}
                )
                self._unparsed.append(item)
                continue
            records[execution.id] = execution
        return records

    def _save_unlocked(self, records: dict[str, WorkflowExecution]) -> None:
        payload = [r.model_dump(mode="json", by_alias=True) for r in records.values()]
        payload.extend(self._unparsed)
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(
                json.dumps(payload, indent=2, ensure_ascii=False) + "\n", encoding="utf-8"
            )
            os.replace(tmp_path, self.path)
        except OSError as e:
            raise StoreUnavailable(f"Cannot write {self.path}: {e}") from e

    def create(self, execution: WorkflowExecution) -> WorkflowExecution:
        with self._lock:
            records = self._load_unlocked()
            if execution.id in records:
                raise ValueError(f"Execution already exists: {execution.id}")
            records[execution.id] = execution
            self._save_unlocked(records)
            return execution.model_copy(deep=True)

    def get(self, execution_id: str) -> WorkflowExecution:
        with self._lock:
            record = self._load_unlocked().get(execution_id)
            if record is None:
                raise NotFound(execution_id)
            return record

    def update(self, execution_id: str, mutator: Mutator) -> WorkflowExecution:
        with self._lock:
            records = self._load_unlocked()
            record = records.get(execution_id)
            if record is None:
                raise NotFound(execution_id)
            mutator(record)
            self._save_unlocked(records)
            return record.model_copy(deep=True)

    def list(self, limit: int | None = None) -> list[WorkflowExecution]:  # noqa: A003
        with self._lock:
            records = list(self._load_unlocked().values())
        return _newest_first(records, limit)

"""
In-memory repository implementation.

Хранит независимые копии моделей (model_copy(deep=True)), поэтому изменения
загруженного объекта не видны другим читателям до save. Version check
делает поведение save идентичным conditional update в документной БД.
"""

import logging
import threading
from datetime import datetime
from typing import Dict, List, Optional

from empire_engine.core.domain.empire import Empire
from empire_engine.core.domain.enums import FlowStatus
from empire_engine.core.domain.resource_flow import ResourceFlow
from empire_engine.core.errors import ConcurrencyConflictError, NotFoundError

from .base_repository import EmpireRepository, ResourceFlowRepository

logger = logging.getLogger(__name__)


class InMemoryEmpireRepository(EmpireRepository):
    """Empire хранилище в памяти процесса."""

    def __init__(self):
        self._store: Dict[str, Empire] = {}
        self._lock = threading.Lock()

    def get(self, player_id: str) -> Optional[Empire]:
        with self._lock:
            stored = self._store.get(player_id)
            return stored.model_copy(deep=True) if stored is not None else None

    def create(self, empire: Empire) -> Empire:
        with self._lock:
            existing = self._store.get(empire.player_id)
            if existing is not None:
                raise ConcurrencyConflictError(
                    "empire", empire.player_id, expected_version=0, actual_version=existing.version
                )
            empire.version = 1
            self._store[empire.player_id] = empire.model_copy(deep=True)
            return empire

    def save(self, empire: Empire) -> Empire:
        with self._lock:
            stored = self._store.get(empire.player_id)
            if stored is None:
                raise NotFoundError("empire", empire.player_id)
            if stored.version != empire.version:
                raise ConcurrencyConflictError(
                    "empire", empire.player_id, expected_version=empire.version, actual_version=stored.version
                )
            empire.version += 1
            self._store[empire.player_id] = empire.model_copy(deep=True)
            return empire

    def list_leaderboard(self, limit: int = 100) -> List[Empire]:
        with self._lock:
            ranked = sorted(
                self._store.values(), key=lambda e: (e.level, e.total_value), reverse=True
            )
            return [empire.model_copy(deep=True) for empire in ranked[:limit]]

    def find_by_min_industry_count(self, min_count: int) -> List[Empire]:
        with self._lock:
            matching = [e for e in self._store.values() if e.industry_count >= min_count]
            matching.sort(key=lambda e: (e.industry_count, e.total_value), reverse=True)
            return [empire.model_copy(deep=True) for empire in matching]


class InMemoryResourceFlowRepository(ResourceFlowRepository):
    """ResourceFlow хранилище в памяти процесса."""

    def __init__(self):
        self._store: Dict[str, ResourceFlow] = {}
        self._lock = threading.Lock()

    def get(self, flow_id: str) -> Optional[ResourceFlow]:
        with self._lock:
            stored = self._store.get(flow_id)
            return stored.model_copy(deep=True) if stored is not None else None

    def create(self, flow: ResourceFlow) -> ResourceFlow:
        with self._lock:
            existing = self._store.get(flow.flow_id)
            if existing is not None:
                raise ConcurrencyConflictError(
                    "flow", flow.flow_id, expected_version=0, actual_version=existing.version
                )
            flow.version = 1
            self._store[flow.flow_id] = flow.model_copy(deep=True)
            return flow

    def save(self, flow: ResourceFlow) -> ResourceFlow:
        with self._lock:
            stored = self._store.get(flow.flow_id)
            if stored is None:
                raise NotFoundError("flow", flow.flow_id)
            if stored.version != flow.version:
                raise ConcurrencyConflictError(
                    "flow", flow.flow_id, expected_version=flow.version, actual_version=stored.version
                )
            flow.version += 1
            self._store[flow.flow_id] = flow.model_copy(deep=True)
            return flow

    def delete(self, flow_id: str) -> bool:
        with self._lock:
            return self._store.pop(flow_id, None) is not None

    def list_due(self, now: datetime, limit: Optional[int] = None) -> List[ResourceFlow]:
        with self._lock:
            due = [flow for flow in self._store.values() if flow.is_due(now)]
            # None ("немедленно") раньше любых датированных потоков
            due.sort(key=lambda f: (f.next_run_at is not None, f.next_run_at or now))
            if limit is not None:
                due = due[:limit]
            return [flow.model_copy(deep=True) for flow in due]

    def list_by_player(
        self, player_id: str, status: Optional[FlowStatus] = None
    ) -> List[ResourceFlow]:
        with self._lock:
            return [
                flow.model_copy(deep=True)
                for flow in self._store.values()
                if flow.player_id == player_id and (status is None or flow.status == status)
            ]

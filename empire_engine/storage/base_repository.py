"""
Base repository interfaces — контракт storage collaborator.

Подсистема не фиксирует движок хранения; ей нужны только:
- Empire: load по player_id, create, version-checked save
- ResourceFlow: load по id, create, version-checked save,
  запрос due потоков (status = active AND next_run <= now)
"""

import logging
from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional

from empire_engine.core.domain.empire import Empire
from empire_engine.core.domain.enums import FlowStatus
from empire_engine.core.domain.resource_flow import ResourceFlow
from empire_engine.core.errors import StorageFailureError

logger = logging.getLogger(__name__)


class BaseRepository(ABC):
    """Общая обработка ошибок для всех реализаций."""

    def handle_storage_error(self, error: Exception, operation: str) -> StorageFailureError:
        """
        Логирует I/O ошибку и оборачивает её в StorageFailureError.

        Использование в реализациях:
            except OSError as e:
                raise self.handle_storage_error(e, "save") from e
        """
        error_info = {
            "repository": self.__class__.__name__,
            "operation": operation,
            "error_type": type(error).__name__,
            "error_message": str(error),
        }
        logger.error("Storage error: %s", error_info)
        return StorageFailureError(f"{self.__class__.__name__}.{operation} failed: {error}")


class EmpireRepository(BaseRepository):
    """Хранилище агрегатов Empire (одна запись на игрока)."""

    @abstractmethod
    def get(self, player_id: str) -> Optional[Empire]:
        """
        Returns:
            Независимая копия агрегата или None
        """

    @abstractmethod
    def create(self, empire: Empire) -> Empire:
        """
        Raises:
            ConcurrencyConflictError: империя игрока уже существует
        """

    @abstractmethod
    def save(self, empire: Empire) -> Empire:
        """
        Version-checked запись: проходит только если версия в хранилище
        равна empire.version. При успехе empire.version увеличивается.

        Raises:
            NotFoundError: империи нет в хранилище
            ConcurrencyConflictError: версия изменилась с момента чтения
        """

    @abstractmethod
    def list_leaderboard(self, limit: int = 100) -> List[Empire]:
        """Сортировка: level desc, total_value desc."""

    @abstractmethod
    def find_by_min_industry_count(self, min_count: int) -> List[Empire]:
        """Сортировка: industry_count desc, total_value desc."""


class ResourceFlowRepository(BaseRepository):
    """Хранилище ресурсных потоков (независимо от Empire)."""

    @abstractmethod
    def get(self, flow_id: str) -> Optional[ResourceFlow]:
        """Независимая копия потока или None."""

    @abstractmethod
    def create(self, flow: ResourceFlow) -> ResourceFlow:
        """
        Raises:
            ConcurrencyConflictError: flow_id уже существует
        """

    @abstractmethod
    def save(self, flow: ResourceFlow) -> ResourceFlow:
        """
        Version-checked запись (см. EmpireRepository.save).

        Raises:
            NotFoundError / ConcurrencyConflictError
        """

    @abstractmethod
    def delete(self, flow_id: str) -> bool:
        """Удаление потока. False, если потока не было."""

    @abstractmethod
    def list_due(self, now: datetime, limit: Optional[int] = None) -> List[ResourceFlow]:
        """
        ACTIVE потоки с next_run_at <= now, по возрастанию next_run_at.

        next_run_at = None (ONE_TIME, "немедленно") идёт первым.
        """

    @abstractmethod
    def list_by_player(
        self, player_id: str, status: Optional[FlowStatus] = None
    ) -> List[ResourceFlow]:
        """Потоки игрока (опционально по статусу)."""

    def count_by_player(self, player_id: str) -> int:
        return len(self.list_by_player(player_id))

"""
Flow Scheduler — периодический sweep due ресурсных потоков

Один проход (run_pass):
1. now = clock.now() (одно значение на весь проход)
2. Запрос due потоков: status = ACTIVE AND next_run_at <= now
   (next_run_at = None идёт первым), по возрастанию next_run_at
3. Для каждого потока берётся lease (не более одного in-flight исполнения
   на flow_id); поток с занятым lease пропускается и попадает в отчёт
4. Поток отправляется в пул только при свободном воркере; иначе он
   откладывается (DEFERRED) и остаётся due до следующего прохода
5. Исполнение в пуле потоков: reload → process_transfer → on_transfer hook →
   version-checked save
6. Ожидание результатов с timeout на поток, отсчитываемым от старта воркера;
   future, не стартовавший за timeout, отменяется и тоже откладывается

Ошибка одного потока не прерывает проход: она логируется и попадает в отчёт.
Поток, который не удалось сохранить, остаётся due и будет повторён на
следующем проходе (автоматической отмены нет).

Lease и слот воркера освобождаются только когда воркер действительно
завершился, поэтому поток с истёкшим timeout не исполняется повторно, пока
висит его воркер, а зависшие воркеры не копятся сверх max_workers: при
занятом пуле проход откладывает все потоки и возвращается без ожидания.

on_transfer вызывается до version-checked save. Если save проиграл гонку,
поток остаётся due и на следующем проходе hook вызывается снова, поэтому
hook должен быть идемпотентным (например, пересчёт агрегата империи).
"""

import logging
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Callable, Dict, Optional, Set, Tuple

from empire_engine.core.clock import Clock
from empire_engine.core.domain.resource_flow import ResourceFlow, TransferResult
from empire_engine.core.errors import ConcurrencyConflictError, StorageFailureError
from empire_engine.storage.base_repository import ResourceFlowRepository

logger = logging.getLogger(__name__)


# Вызывается до save; может сработать повторно для того же периода
TransferHook = Callable[[ResourceFlow, TransferResult], None]


# =============================================================================
# CONFIGURATION
# =============================================================================


@dataclass(frozen=True)
class SchedulerConfig:
    """Конфигурация планировщика."""

    # Интервал между проходами в run_forever (по умолчанию раз в сутки)
    interval_sec: float = 86_400.0

    # Размер пула воркеров
    max_workers: int = 4

    # Timeout исполнения одного потока (от старта воркера)
    per_flow_timeout_sec: float = 30.0

    # Период опроса futures внутри прохода
    poll_interval_sec: float = 0.05

    # Максимум потоков за проход (None = без ограничения)
    batch_limit: Optional[int] = None

    def __post_init__(self):
        if self.max_workers < 1:
            raise ValueError(f"max_workers must be >= 1, got {self.max_workers}")
        if self.per_flow_timeout_sec <= 0:
            raise ValueError(f"per_flow_timeout_sec must be > 0, got {self.per_flow_timeout_sec}")
        if self.interval_sec < 0:
            raise ValueError(f"interval_sec must be >= 0, got {self.interval_sec}")


# =============================================================================
# LEASES
# =============================================================================


class FlowLeaseManager:
    """
    In-process lease на flow_id.

    Гарантирует не более одного in-flight исполнения потока в процессе.
    Между процессами ту же гарантию даёт version-checked save.
    """

    def __init__(self):
        self._held: Set[str] = set()
        self._lock = threading.Lock()

    def try_acquire(self, flow_id: str) -> bool:
        with self._lock:
            if flow_id in self._held:
                return False
            self._held.add(flow_id)
            return True

    def release(self, flow_id: str) -> None:
        with self._lock:
            self._held.discard(flow_id)

    def is_held(self, flow_id: str) -> bool:
        with self._lock:
            return flow_id in self._held

    @property
    def held_count(self) -> int:
        with self._lock:
            return len(self._held)


# =============================================================================
# RESULTS
# =============================================================================


class FlowRunStatus(str, Enum):
    """Итог обработки одного потока в проходе."""

    PROCESSED = "processed"
    NOT_PROCESSED = "not_processed"  # после reload поток уже не due
    SKIPPED_LEASED = "skipped_leased"
    DEFERRED = "deferred"  # нет свободного воркера, остаётся due
    CONFLICT = "conflict"
    FAILED = "failed"
    TIMED_OUT = "timed_out"


@dataclass(frozen=True)
class FlowRunOutcome:
    """Результат обработки потока."""

    flow_id: str
    status: FlowRunStatus
    reason: str

    transfer: Optional[TransferResult] = None
    error: Optional[str] = None
    duration_sec: float = 0.0


@dataclass(frozen=True)
class SchedulerPassReport:
    """Отчёт одного прохода планировщика."""

    started_at: datetime
    due_count: int
    outcomes: tuple[FlowRunOutcome, ...]
    duration_sec: float

    def count(self, status: FlowRunStatus) -> int:
        return sum(1 for outcome in self.outcomes if outcome.status == status)

    @property
    def processed_count(self) -> int:
        return self.count(FlowRunStatus.PROCESSED)

    @property
    def failed_count(self) -> int:
        return self.count(FlowRunStatus.FAILED) + self.count(FlowRunStatus.CONFLICT)

    @property
    def deferred_count(self) -> int:
        return self.count(FlowRunStatus.DEFERRED)

    @property
    def timed_out_count(self) -> int:
        return self.count(FlowRunStatus.TIMED_OUT)

    @property
    def skipped_count(self) -> int:
        return (
            self.count(FlowRunStatus.SKIPPED_LEASED)
            + self.count(FlowRunStatus.NOT_PROCESSED)
            + self.count(FlowRunStatus.DEFERRED)
        )

    def outcome_for(self, flow_id: str) -> Optional[FlowRunOutcome]:
        for outcome in self.outcomes:
            if outcome.flow_id == flow_id:
                return outcome
        return None


# =============================================================================
# SCHEDULER
# =============================================================================


class FlowScheduler:
    """
    Stateless periodic sweep по due потокам.

    Состояние между проходами — только lease'ы и слоты воркеров, которые ещё
    не завершились (например, после timeout).
    """

    def __init__(
        self,
        flow_repo: ResourceFlowRepository,
        clock: Clock,
        config: Optional[SchedulerConfig] = None,
        on_transfer: Optional[TransferHook] = None,
    ):
        self.flow_repo = flow_repo
        self.clock = clock
        self.config = config or SchedulerConfig()
        self.on_transfer = on_transfer

        self.leases = FlowLeaseManager()
        self._executor = ThreadPoolExecutor(
            max_workers=self.config.max_workers, thread_name_prefix="flow-scheduler"
        )

        # flow_id → time.monotonic() старта воркера
        self._started: Dict[str, float] = {}
        # Отправленные и ещё не вернувшиеся воркеры (включая timed out)
        self._busy_workers = 0
        self._state_lock = threading.Lock()

    @property
    def busy_workers(self) -> int:
        with self._state_lock:
            return self._busy_workers

    # -------------------------------------------------------------------------
    # Проход
    # -------------------------------------------------------------------------

    def run_pass(self) -> SchedulerPassReport:
        """
        Один sweep due потоков.

        Raises:
            StorageFailureError: не удалось выполнить запрос due потоков
        """
        now = self.clock.now()
        pass_started = time.monotonic()

        due = self.flow_repo.list_due(now, limit=self.config.batch_limit)

        outcomes: list[FlowRunOutcome] = []
        # flow_id → (future, time.monotonic() отправки)
        pending: Dict[str, Tuple[Future, float]] = {}

        for flow in due:
            if not self.leases.try_acquire(flow.flow_id):
                logger.warning("Flow %s skipped: previous execution still in flight", flow.flow_id)
                outcomes.append(
                    FlowRunOutcome(
                        flow_id=flow.flow_id,
                        status=FlowRunStatus.SKIPPED_LEASED,
                        reason="lease_held",
                    )
                )
                continue

            if not self._reserve_worker():
                self.leases.release(flow.flow_id)
                outcomes.append(
                    FlowRunOutcome(
                        flow_id=flow.flow_id,
                        status=FlowRunStatus.DEFERRED,
                        reason="no_free_worker",
                    )
                )
                continue

            try:
                future = self._executor.submit(self._process_one, flow.flow_id, now)
            except RuntimeError:
                self._release_worker()
                self.leases.release(flow.flow_id)
                raise
            pending[flow.flow_id] = (future, time.monotonic())

        deferred = sum(1 for outcome in outcomes if outcome.status == FlowRunStatus.DEFERRED)
        if deferred:
            logger.warning(
                "%d due flows deferred: all %d workers busy", deferred, self.config.max_workers
            )

        outcomes.extend(self._collect(pending))

        report = SchedulerPassReport(
            started_at=now,
            due_count=len(due),
            outcomes=tuple(outcomes),
            duration_sec=time.monotonic() - pass_started,
        )
        logger.info(
            "Scheduler pass at %s: due=%d processed=%d failed=%d timed_out=%d skipped=%d",
            now.isoformat(),
            report.due_count,
            report.processed_count,
            report.failed_count,
            report.timed_out_count,
            report.skipped_count,
        )
        return report

    def _collect(self, pending: Dict[str, Tuple[Future, float]]) -> list[FlowRunOutcome]:
        """
        Ожидание воркеров с timeout на поток от момента старта воркера.

        Future, который не стартовал за timeout от отправки, отменяется:
        lease и слот освобождаются, поток откладывается до следующего прохода.
        """
        outcomes: list[FlowRunOutcome] = []
        timeout = self.config.per_flow_timeout_sec

        while pending:
            for flow_id in list(pending):
                future, submitted = pending[flow_id]
                if future.done():
                    outcomes.append(future.result())
                    del pending[flow_id]
                    continue

                with self._state_lock:
                    started = self._started.get(flow_id)
                elapsed_base = started if started is not None else submitted
                if time.monotonic() - elapsed_base <= timeout:
                    continue

                if started is None:
                    if not future.cancel():
                        # Воркер стартовал между проверками
                        continue
                    self._release_worker()
                    self.leases.release(flow_id)
                    logger.warning("Flow %s deferred: worker did not start within %.2fs", flow_id, timeout)
                    outcomes.append(
                        FlowRunOutcome(flow_id=flow_id, status=FlowRunStatus.DEFERRED, reason="not_started")
                    )
                else:
                    logger.warning("Flow %s timed out after %.2fs, moving on", flow_id, timeout)
                    outcomes.append(
                        FlowRunOutcome(
                            flow_id=flow_id,
                            status=FlowRunStatus.TIMED_OUT,
                            reason="per_flow_timeout",
                            duration_sec=time.monotonic() - started,
                        )
                    )
                del pending[flow_id]

            if pending:
                time.sleep(self.config.poll_interval_sec)

        return outcomes

    def _reserve_worker(self) -> bool:
        with self._state_lock:
            if self._busy_workers >= self.config.max_workers:
                return False
            self._busy_workers += 1
            return True

    def _release_worker(self) -> None:
        with self._state_lock:
            self._busy_workers -= 1

    def _process_one(self, flow_id: str, now: datetime) -> FlowRunOutcome:
        """Исполнение одного потока в воркере. Lease и слот освобождаются здесь."""
        started = time.monotonic()
        with self._state_lock:
            self._started[flow_id] = started

        try:
            flow = self.flow_repo.get(flow_id)
            if flow is None:
                return self._outcome(flow_id, FlowRunStatus.NOT_PROCESSED, "not_found", started)

            # Поток мог быть поставлен на паузу / отменён / продвинут после запроса
            if not flow.is_due(now):
                return self._outcome(flow_id, FlowRunStatus.NOT_PROCESSED, "no_longer_due", started)

            transfer = flow.process_transfer(now)
            if not transfer.processed:
                return self._outcome(
                    flow_id, FlowRunStatus.NOT_PROCESSED, transfer.reason, started, transfer=transfer
                )

            if self.on_transfer is not None:
                self.on_transfer(flow, transfer)

            self.flow_repo.save(flow)
            logger.debug(
                "Flow %s processed: quantity=%s value=%s next_run_at=%s",
                flow_id,
                transfer.quantity,
                transfer.value,
                transfer.next_run_at,
            )
            return self._outcome(flow_id, FlowRunStatus.PROCESSED, transfer.reason, started, transfer=transfer)

        except ConcurrencyConflictError as e:
            logger.warning("Flow %s not saved, concurrent write: %s", flow_id, e)
            return self._outcome(flow_id, FlowRunStatus.CONFLICT, "version_conflict", started, error=str(e))
        except Exception as e:
            logger.exception("Flow %s processing failed", flow_id)
            return self._outcome(flow_id, FlowRunStatus.FAILED, type(e).__name__, started, error=str(e))
        finally:
            with self._state_lock:
                self._started.pop(flow_id, None)
                self._busy_workers -= 1
            self.leases.release(flow_id)

    @staticmethod
    def _outcome(
        flow_id: str,
        status: FlowRunStatus,
        reason: str,
        started: float,
        transfer: Optional[TransferResult] = None,
        error: Optional[str] = None,
    ) -> FlowRunOutcome:
        return FlowRunOutcome(
            flow_id=flow_id,
            status=status,
            reason=reason,
            transfer=transfer,
            error=error,
            duration_sec=time.monotonic() - started,
        )

    # -------------------------------------------------------------------------
    # Ticker
    # -------------------------------------------------------------------------

    def run_forever(self, stop_event: threading.Event, max_passes: Optional[int] = None) -> int:
        """
        Ticker: проход, затем ожидание interval_sec на stop_event.

        StorageFailureError прохода логируется, цикл продолжается.

        Returns:
            Число выполненных проходов
        """
        passes = 0
        while not stop_event.is_set():
            try:
                self.run_pass()
            except StorageFailureError:
                logger.exception("Scheduler pass failed: storage unavailable")
            passes += 1

            if max_passes is not None and passes >= max_passes:
                break
            stop_event.wait(self.config.interval_sec)

        logger.info("Scheduler stopped after %d passes", passes)
        return passes

    def close(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)

    def __enter__(self) -> "FlowScheduler":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

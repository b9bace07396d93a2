"""
Errors — типизированные ошибки подсистемы Empire / Resource Flow.

Все ошибки наследуются от EmpireEngineError, чтобы вызывающий код (API layer)
мог отличать доменные ошибки от программных.

Виды ошибок:
- NotFoundError: компания / поток / империя отсутствует
- DuplicateMemberError: компания уже входит в империю
- InvalidTransitionError: переход статуса потока не разрешён
- InvalidArgumentError: отрицательное количество, неизвестная индустрия и т.п.
- ConcurrencyConflictError: optimistic write проиграл гонку
- StorageFailureError: ошибка I/O хранилища
"""


class EmpireEngineError(Exception):
    """Базовая ошибка подсистемы."""


class NotFoundError(EmpireEngineError):
    """Сущность не найдена."""

    def __init__(self, kind: str, identifier: str):
        self.kind = kind
        self.identifier = identifier
        super().__init__(f"{kind} not found: {identifier}")


class DuplicateMemberError(EmpireEngineError):
    """Компания уже входит в империю."""

    def __init__(self, company_id: str):
        self.company_id = company_id
        super().__init__(f"Company already in empire: {company_id}")


class InvalidTransitionError(EmpireEngineError):
    """Переход статуса не определён state machine."""

    def __init__(self, flow_id: str, current_status: str, action: str):
        self.flow_id = flow_id
        self.current_status = current_status
        self.action = action
        super().__init__(
            f"Cannot {action} flow {flow_id} in status {current_status}"
        )


class InvalidArgumentError(EmpireEngineError, ValueError):
    """Невалидный аргумент от вызывающего кода."""


class ConcurrencyConflictError(EmpireEngineError):
    """Версия записи в хранилище не совпала с ожидаемой."""

    def __init__(self, kind: str, identifier: str, expected_version: int, actual_version: int | None):
        self.kind = kind
        self.identifier = identifier
        self.expected_version = expected_version
        self.actual_version = actual_version
        super().__init__(
            f"{kind} {identifier}: expected version {expected_version}, "
            f"found {actual_version}"
        )


class StorageFailureError(EmpireEngineError):
    """Ошибка storage collaborator (I/O)."""

"""Storage — контракты storage collaborator и in-memory реализация."""

from .base_repository import BaseRepository, EmpireRepository, ResourceFlowRepository
from .memory_repository import InMemoryEmpireRepository, InMemoryResourceFlowRepository

__all__ = [
    "BaseRepository",
    "EmpireRepository",
    "ResourceFlowRepository",
    "InMemoryEmpireRepository",
    "InMemoryResourceFlowRepository",
]

"""Utils — вспомогательные функции хоста."""

from .logging_utils import setup_logger

__all__ = ["setup_logger"]

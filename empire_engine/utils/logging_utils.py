"""
Logging setup для хостов, запускающих планировщик отдельным процессом.

Модули подсистемы только получают logger через logging.getLogger(__name__);
handlers настраивает хост один раз.
"""

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

SIMPLE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DETAILED_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s"


def setup_logger(
    name: str,
    level: Optional[str] = None,
    log_dir: Optional[Path] = None,
) -> logging.Logger:
    """
    Настройка logger: console handler и опционально rotating file.

    Повторный вызов для уже настроенного logger ничего не добавляет.

    Args:
        name: Имя logger (обычно "empire_engine")
        level: DEBUG / INFO / WARNING / ERROR / CRITICAL (по умолчанию INFO)
        log_dir: Каталог для файла <name>.log; None = только консоль

    Returns:
        Настроенный logger
    """
    logger = logging.getLogger(name)
    if logger.handlers:
        return logger

    log_level = getattr(logging, level.upper(), logging.INFO) if level else logging.INFO
    logger.setLevel(log_level)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(logging.Formatter(SIMPLE_FORMAT))
    console_handler.setLevel(log_level)
    logger.addHandler(console_handler)

    if log_dir is not None:
        log_dir = Path(log_dir)
        log_dir.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_dir / f"{name}.log",
            maxBytes=10_485_760,  # 10MB
            backupCount=5,
            encoding="utf-8",
        )
        file_handler.setFormatter(logging.Formatter(DETAILED_FORMAT))
        file_handler.setLevel(log_level)
        logger.addHandler(file_handler)

    return logger

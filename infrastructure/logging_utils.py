"""Утилиты для настройки логирования приложения."""
from __future__ import annotations

import logging
import os
from pathlib import Path

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def setup_logging(level: str | None = None, log_file: str | None = None) -> None:
    """Настроить логирование в файл и консоль.

    Параметры по умолчанию берутся из ``CONTEXTRANK_LOG_LEVEL`` и
    ``CONTEXTRANK_LOG_FILE``; пустой ``CONTEXTRANK_LOG_FILE`` отключает файл.
    Повторный вызов ничего не делает, если обработчики уже настроены.
    """
    root_logger = logging.getLogger()
    if root_logger.handlers:
        return

    level_name = (level or os.getenv("CONTEXTRANK_LOG_LEVEL", "INFO")).upper()
    resolved_level = getattr(logging, level_name, logging.INFO)
    if log_file is None:
        log_file = os.getenv("CONTEXTRANK_LOG_FILE", "contextrank.log")

    formatter = logging.Formatter(LOG_FORMAT)
    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(formatter)
    root_logger.addHandler(stream_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path, encoding="utf-8")
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    root_logger.setLevel(resolved_level)


__all__ = ["setup_logging"]

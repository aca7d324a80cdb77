"""Реестр эмбеддеров, которым владеет вызывающий код."""
from __future__ import annotations

import logging
import threading
from typing import Callable, Mapping

from domain.errors import ConfigurationError
from domain.interfaces import Embedder

logger = logging.getLogger(__name__)

EmbedderFactory = Callable[[], Embedder]


class EmbedderRegistry:
    """Лениво создаёт эмбеддеры по имени и кеширует их до вызова ``close()``.

    Заменяет глобальный кеш моделей: у каждого реестра свой жизненный цикл,
    и загруженные модели освобождаются вместе с ним.
    """

    def __init__(self, factories: Mapping[str, EmbedderFactory] | None = None) -> None:
        self._factories: dict[str, EmbedderFactory] = dict(factories or {})
        self._instances: dict[str, Embedder] = {}
        self._lock = threading.Lock()

    def register(self, name: str, factory: EmbedderFactory) -> None:
        with self._lock:
            self._factories[name] = factory
            self._instances.pop(name, None)

    def names(self) -> list[str]:
        return sorted(self._factories)

    def get(self, name: str) -> Embedder:
        """Вернуть эмбеддер по имени, создав его при первом обращении."""
        with self._lock:
            instance = self._instances.get(name)
            if instance is not None:
                return instance
            factory = self._factories.get(name)
            if factory is None:
                available = ", ".join(sorted(self._factories)) or "нет доступных"
                raise ConfigurationError(f"Не найден эмбеддер '{name}'. Доступные: {available}.", name=name)
            logger.info("Создание эмбеддера %s", name)
            instance = factory()
            self._instances[name] = instance
            return instance

    def loaded(self) -> list[str]:
        return sorted(self._instances)

    def close(self) -> None:
        """Освободить все созданные эмбеддеры."""
        with self._lock:
            instances = list(self._instances.values())
            self._instances.clear()
        for instance in instances:
            closer = getattr(instance, "close", None)
            if callable(closer):
                closer()

    def __enter__(self) -> "EmbedderRegistry":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


__all__ = ["EmbedderRegistry", "EmbedderFactory"]

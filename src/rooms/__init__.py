"""
Модуль контекста номеров (Rooms Context).

Отвечает за реестр номеров отеля:
- Добавление, изменение и удаление номеров
- Снимки свободных и всех номеров
"""

from . import application, domain, infrastructure, interfaces

__all__ = [
    "domain",
    "application",
    "infrastructure",
    "interfaces",
]

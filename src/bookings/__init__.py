"""
Модуль контекста бронирований (Bookings Context).

Отвечает за записи о бронированиях и их жизненный цикл:
- Active -> Extended -> Completed
- Цепочки продлений через predecessor_id
"""

from . import domain, infrastructure, interfaces

__all__ = [
    "domain",
    "infrastructure",
    "interfaces",
]

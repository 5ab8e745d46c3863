"""
Модуль контекста отчетов (Reporting Context).

Производные представления только для чтения:
- Текущие проживания и живая подписка на них
- История бронирований и сводная статистика
- Показатели панели управления и данные для счета
"""

from . import application, domain

__all__ = [
    "domain",
    "application",
]

"""
Модуль контекста стойки регистрации (Front Desk Context).

Координирует операции, затрагивающие номер и бронирование одновременно:
- Заселение в один или несколько номеров
- Выезд, в том числе на границе цикла
- Продление проживания
"""

from . import application, domain, infrastructure, interfaces

__all__ = [
    "domain",
    "application",
    "infrastructure",
    "interfaces",
]

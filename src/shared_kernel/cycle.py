"""
Расчет расчетного цикла проживания.

Сутки проживания заканчиваются в фиксированный час (час пересменки)
по местному времени отеля. Гость, заехавший до этого часа, должен
освободить номер в тот же день, заехавший в этот час или позже -
на следующий день.
"""

from datetime import datetime, time, timedelta, tzinfo
from typing import Optional

from .domain import ValidationException

DEFAULT_CUTOVER_HOUR = 12


class CycleCalculator:
    """Вычисляет границу расчетного цикла для заезда."""

    def __init__(
        self, cutover_hour: int = DEFAULT_CUTOVER_HOUR, tz: Optional[tzinfo] = None
    ):
        if not 0 <= cutover_hour <= 23:
            raise ValidationException(
                f"Час пересменки должен быть в диапазоне 0..23, получено {cutover_hour}"
            )
        self._cutover = time(hour=cutover_hour)
        self._tz = tz

    @property
    def cutover_hour(self) -> int:
        return self._cutover.hour

    def cycle_end(self, check_in: datetime) -> datetime:
        """Возвращает момент окончания текущего цикла для заезда check_in."""
        # Сохраненное время приходит с фиксированным смещением,
        # час пересменки считается по местному времени
        if self._tz is not None and check_in.tzinfo is not None:
            check_in = check_in.astimezone(self._tz)
        day = check_in.date()
        # Ровно час пересменки тоже переносит границу на следующие сутки
        if check_in.time() >= self._cutover:
            day += timedelta(days=1)
        return datetime.combine(day, self._cutover, tzinfo=check_in.tzinfo)

    @staticmethod
    def is_overdue(cycle_end: datetime, now: datetime) -> bool:
        """Проверяет, истек ли цикл к моменту now."""
        return now > cycle_end

    def is_stay_overdue(self, check_in: datetime, now: datetime) -> bool:
        return self.is_overdue(self.cycle_end(check_in), now)

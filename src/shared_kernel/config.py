"""
Настройки движка бронирования.
"""

import os
from datetime import tzinfo
from typing import Mapping, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, Field, field_validator

from .cycle import DEFAULT_CUTOVER_HOUR


class HotelSettings(BaseModel):
    """Конфигурация, потребляемая координаторами и представлениями."""

    cutover_hour: int = Field(DEFAULT_CUTOVER_HOUR, ge=0, le=23)
    max_rooms_per_reservation: int = Field(10, ge=1)
    max_commit_attempts: int = Field(3, ge=1, le=10)
    currency: str = Field(default="INR", max_length=3)
    timezone: Optional[str] = None

    @field_validator("timezone")
    @classmethod
    def timezone_must_exist(cls, v: Optional[str]) -> Optional[str]:
        if v is not None:
            try:
                ZoneInfo(v)
            except (ZoneInfoNotFoundError, ValueError) as exc:
                raise ValueError(f"Неизвестный часовой пояс: {v}") from exc
        return v

    @property
    def tz(self) -> Optional[tzinfo]:
        """Часовой пояс, в котором считаются сутки проживания."""
        return ZoneInfo(self.timezone) if self.timezone else None

    @classmethod
    def from_env(
        cls, prefix: str = "HOTEL_", environ: Optional[Mapping[str, str]] = None
    ) -> "HotelSettings":
        """
        Читает настройки из переменных окружения.

        Args:
            prefix: Префикс переменных (HOTEL_CUTOVER_HOUR и т.д.)
            environ: Источник переменных, по умолчанию os.environ
        """
        source = os.environ if environ is None else environ
        values = {}
        for name in cls.model_fields:
            raw = source.get(f"{prefix}{name.upper()}")
            if raw not in (None, ""):
                values[name] = raw
        return cls(**values)

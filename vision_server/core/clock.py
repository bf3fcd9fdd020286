"""
Источник меток времени для ответов API
"""
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional


@dataclass(frozen=True)
class IsoClock:
    """
    Неизменяемый генератор ISO-8601 меток времени (UTC, суффикс Z)

    Создаётся один раз при старте приложения и передаётся явно в сервисы.
    frozen_at фиксирует время (для тестов).
    """
    frozen_at: Optional[datetime] = None

    def now(self) -> datetime:
        if self.frozen_at is not None:
            return self.frozen_at
        return datetime.now(timezone.utc)

    def timestamp(self) -> str:
        """Текущее время в формате 2025-10-17T10:30:00Z"""
        return self.now().astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")

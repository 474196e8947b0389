from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict


@dataclass
class AppError(Exception):
    """
    Назначение:
        Базовая ошибка приложения с категорией и стабильным кодом.

    Поля:
        category: str
            Область возникновения (source/parse/duplicate/create/notify/api/config).
        code: str
            Код из ErrorCode.
        message: str
            Человекочитаемое описание для отчёта и логов.
    """

    category: str
    code: str
    message: str
    retryable: bool = False
    details: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        super().__init__(self.message)

    def __str__(self) -> str:
        return self.message

    def to_dict(self) -> Dict[str, Any]:
        return {
            "category": self.category,
            "code": self.code,
            "message": self.message,
            "retryable": self.retryable,
            "details": self.details or {},
        }


class ConfigError(AppError):
    """Некорректные настройки запуска."""

    def __init__(self, message: str, key: str | None = None):
        super().__init__(
            category="config",
            code="CONFIG_INVALID",
            message=message,
            details={"key": key} if key else {},
        )
        self.key = key


__all__ = ["AppError", "ConfigError"]

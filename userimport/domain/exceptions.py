from __future__ import annotations

from userimport.domain.error_codes import ErrorCode
from userimport.errors import AppError


class SourceUnreadableError(AppError):
    """
    Назначение:
        Источник строк не удалось открыть или прочитать.
    Инварианты/гарантии:
        - Фатальна для всего импорта: частичный отчёт не формируется.
    """

    def __init__(self, message: str, locator: str | None = None):
        super().__init__(
            category="source",
            code=ErrorCode.SOURCE_UNREADABLE.value,
            message=message,
            details={"locator": locator} if locator else {},
        )
        self.locator = locator


class RowProcessingError(AppError):
    """
    Назначение:
        База для восстанавливаемых ошибок одной строки.
    Инварианты/гарантии:
        - Конвейер превращает её в ErrorOutcome и продолжает обработку.
    """

    def __init__(self, category: str, code: ErrorCode, message: str, row_number: int | None = None):
        super().__init__(category=category, code=code.value, message=message)
        self.row_number = row_number


class ParseError(RowProcessingError):
    """Строка не прошла разбор или валидацию формата."""

    def __init__(self, message: str, code: ErrorCode, row_number: int | None = None):
        super().__init__("parse", code, message, row_number)


class MalformedRecordError(RowProcessingError):
    """
    Назначение:
        Одна запись источника не разбирается как CSV (например, поле длиннее
        csv.field_size_limit()). Чтение продолжается со следующей записи.
    """

    def __init__(self, message: str, row_number: int | None = None):
        super().__init__("source", ErrorCode.MALFORMED_RECORD, message, row_number)


class DuplicateResolutionError(RowProcessingError):
    """Исчерпаны попытки подобрать уникальный email."""

    def __init__(self, email: str, attempts: int, row_number: int | None = None):
        super().__init__(
            "duplicate",
            ErrorCode.DUPLICATE_UNRESOLVED,
            f"Could not generate a unique email for {email} after {attempts} attempts",
            row_number,
        )
        self.email = email
        self.attempts = attempts


class CreationError(RowProcessingError):
    """
    Назначение:
        Каталог отклонил создание учётной записи (ограничение, конфликт, отказ API).
    """

    def __init__(self, identifier: str, reason: str, row_number: int | None = None):
        super().__init__(
            "create",
            ErrorCode.CREATE_FAILED,
            f"Failed to create account {identifier}: {reason}",
            row_number,
        )
        self.identifier = identifier
        self.reason = reason


class NotificationError(AppError):
    """Не удалось отправить приветственное уведомление; исход строки не меняется."""

    def __init__(self, account_id: object, reason: str):
        super().__init__(
            category="notify",
            code=ErrorCode.NOTIFICATION_FAILED.value,
            message=f"Failed to send welcome notification to account {account_id}: {reason}",
            retryable=True,
        )
        self.account_id = account_id
        self.reason = reason


__all__ = [
    "SourceUnreadableError",
    "RowProcessingError",
    "ParseError",
    "MalformedRecordError",
    "DuplicateResolutionError",
    "CreationError",
    "NotificationError",
]

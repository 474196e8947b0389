from __future__ import annotations

from enum import Enum


class ErrorCode(str, Enum):
    """
    Назначение:
        Единая таксономия кодов ошибок для исходов строк и инфраструктуры.
    """

    # разбор строки
    INSUFFICIENT_FIELDS = "INSUFFICIENT_FIELDS"
    IDENTIFIER_EMPTY = "IDENTIFIER_EMPTY"
    EMAIL_EMPTY = "EMAIL_EMPTY"
    INVALID_EMAIL = "INVALID_EMAIL"
    INVALID_IDENTIFIER = "INVALID_IDENTIFIER"
    UNKNOWN_ROLE = "UNKNOWN_ROLE"

    # дубликаты / создание / уведомления
    DUPLICATE_UNRESOLVED = "DUPLICATE_UNRESOLVED"
    CREATE_FAILED = "CREATE_FAILED"
    NOTIFICATION_FAILED = "NOTIFICATION_FAILED"

    # источник
    SOURCE_UNREADABLE = "SOURCE_UNREADABLE"
    MALFORMED_RECORD = "MALFORMED_RECORD"

    # внешний каталог
    NETWORK_ERROR = "NETWORK_ERROR"
    HTTP_ERROR = "HTTP_ERROR"
    INVALID_JSON = "INVALID_JSON"
    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"
    CONFLICT = "CONFLICT"

    UNEXPECTED_ERROR = "UNEXPECTED_ERROR"

    @classmethod
    def from_status(cls, status_code: int | None) -> "ErrorCode":
        """
        Назначение:
            Подбор общего кода по HTTP-статусу.
        """
        if status_code == 401:
            return cls.UNAUTHORIZED
        if status_code == 403:
            return cls.FORBIDDEN
        if status_code == 409:
            return cls.CONFLICT
        return cls.HTTP_ERROR

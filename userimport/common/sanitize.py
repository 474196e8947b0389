from __future__ import annotations


def maskSecret(value: str | None) -> str | None:
    """
    Назначение:
        Маскирует секреты для безопасного вывода в stdout/logs.

    Алгоритм:
        - Если значение отсутствует, вернуть None.
        - Иначе вернуть фиксированную маску '***'.
    """
    if value is None:
        return None
    return "***"


def truncateText(value: str | None, limit: int = 500) -> str | None:
    """
    Назначение:
        Ограничивает длину текста, чтобы не раздувать логи и отчёты.
    """
    if value is None:
        return None
    if len(value) <= limit:
        return value
    suffix = "..." if limit > 3 else ""
    return value[: limit - len(suffix)] + suffix


def previewList(values: list[str], limit: int = 10) -> str:
    """
    Назначение:
        Первые limit значений через запятую, с '...' если значений больше.
    """
    head = ", ".join(values[:limit])
    if len(values) > limit:
        return head + "..."
    return head

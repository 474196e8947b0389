from __future__ import annotations

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class RowSourceProtocol(Protocol):
    """
    Назначение/ответственность:
        Источник сырых записей с разделителями (файл, загрузка и т.п.).
    Взаимодействия:
        Конвейер импорта открывает источник один раз, читает построчно и
        гарантированно закрывает его на любом пути выхода.
    """

    def open(self, locator: str) -> Any:
        """
        Контракт:
            Вход: locator (путь/URI источника).
            Выход: непрозрачный handle.
        Ошибки/исключения:
            SourceUnreadableError, если источник не открывается.
        """
        ...

    def next_row(self, handle: Any, delimiter: str) -> list[str] | None:
        """
        Контракт:
            Возвращает поля очередной записи (поле в кавычках может занимать
            несколько строк файла) или None в конце данных.
        Ошибки/исключения:
            MalformedRecordError: эта запись не разбирается, чтение можно продолжать.
            SourceUnreadableError: источник больше не читается (ввод-вывод).
        """
        ...

    def close(self, handle: Any) -> None: ...


__all__ = ["RowSourceProtocol"]

from __future__ import annotations

import csv
from dataclasses import dataclass
from pathlib import Path
from typing import Any, TextIO

from userimport.domain.exceptions import MalformedRecordError, SourceUnreadableError


@dataclass
class CsvRowHandle:
    """
    Назначение:
        Открытый файл и csv.reader, созданный под конкретный разделитель.
    """

    path: str
    stream: TextIO
    reader: Any = None
    delimiter: str | None = None


class CsvRowSource:
    """
    Назначение/ответственность:
        RowSource поверх локальных CSV-файлов (UTF-8, BOM допускается).
    Ограничения:
        - Пустая физическая строка отдаётся как [] (меньше двух полей).
        - Недекодируемые байты заменяются на U+FFFD и доходят до RowParser,
          где строка отклоняется проверками формата.
        - Запись, которую csv не смог разобрать, -> MalformedRecordError,
          следующий вызов продолжает со следующей записи.
    """

    def __init__(self, encoding: str = "utf-8-sig", errors: str = "replace") -> None:
        self.encoding = encoding
        self.errors = errors

    def open(self, locator: str) -> CsvRowHandle:
        path = Path(locator)
        if not path.is_file():
            raise SourceUnreadableError(f"Could not open file: {locator}", locator=locator)
        try:
            stream = open(path, "r", encoding=self.encoding, errors=self.errors, newline="")
        except OSError as exc:
            raise SourceUnreadableError(f"Could not open file: {locator} ({exc})", locator=locator) from exc
        return CsvRowHandle(path=str(path), stream=stream)

    def next_row(self, handle: CsvRowHandle, delimiter: str) -> list[str] | None:
        if handle.reader is None or handle.delimiter != delimiter:
            handle.reader = csv.reader(handle.stream, delimiter=delimiter)
            handle.delimiter = delimiter
        try:
            return next(handle.reader, None)
        except csv.Error as exc:
            raise MalformedRecordError(f"Malformed record: {exc}") from exc
        except OSError as exc:
            raise SourceUnreadableError(
                f"Could not read file: {handle.path} ({exc})",
                locator=handle.path,
            ) from exc

    def close(self, handle: CsvRowHandle) -> None:
        handle.stream.close()


__all__ = ["CsvRowHandle", "CsvRowSource"]

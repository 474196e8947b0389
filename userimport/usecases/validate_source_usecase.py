from __future__ import annotations

from dataclasses import dataclass

from userimport.domain.exceptions import MalformedRecordError
from userimport.domain.ports.sources import RowSourceProtocol
from userimport.domain.validation.row_rules import MIN_FIELDS

DEFAULT_SAMPLE_ROWS = 5


@dataclass(frozen=True)
class SourceCheckResult:
    ok: bool
    rows_checked: int
    message: str | None = None


def validate_source(
    row_source: RowSourceProtocol,
    locator: str,
    delimiter: str,
    sample_rows: int = DEFAULT_SAMPLE_ROWS,
) -> SourceCheckResult:
    """
    Назначение:
        Быстрая структурная проверка файла до импорта.

    Алгоритм:
        - открыть источник (SourceUnreadableError наружу);
        - просмотреть первые sample_rows записей, включая заголовок;
        - первая запись с < 2 полями или неразбираемая запись -> ok=False;
        - нет ни одной записи -> ok=False.
    """
    handle = row_source.open(locator)
    rows_checked = 0
    try:
        while rows_checked < sample_rows:
            try:
                row = row_source.next_row(handle, delimiter)
            except MalformedRecordError as exc:
                rows_checked += 1
                return SourceCheckResult(
                    ok=False,
                    rows_checked=rows_checked,
                    message=f"Row {rows_checked} is malformed: {exc.message}",
                )
            if row is None:
                break
            rows_checked += 1
            if len(row) < MIN_FIELDS:
                return SourceCheckResult(
                    ok=False,
                    rows_checked=rows_checked,
                    message=(
                        f"Row {rows_checked} is empty or has insufficient data "
                        "(expected at least identifier and email)"
                    ),
                )
    finally:
        row_source.close(handle)

    if rows_checked == 0:
        return SourceCheckResult(ok=False, rows_checked=0, message="The file is empty or could not be read.")
    return SourceCheckResult(ok=True, rows_checked=rows_checked)


__all__ = ["SourceCheckResult", "validate_source"]

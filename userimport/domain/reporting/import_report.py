from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from userimport.domain.models import CreatedOutcome, ErrorOutcome, SkippedOutcome


@dataclass(frozen=True)
class ImportReport:
    """
    Назначение:
        Итог одного запуска импорта, только для чтения.
    Инварианты/гарантии:
        - total_processed == created_count + skipped_count + error_count.
        - Внутри каждой категории исходы идут в порядке строк файла.
    """

    total_processed: int = 0
    created: tuple[CreatedOutcome, ...] = ()
    skipped: tuple[SkippedOutcome, ...] = ()
    errors: tuple[ErrorOutcome, ...] = ()

    @property
    def created_count(self) -> int:
        return len(self.created)

    @property
    def skipped_count(self) -> int:
        return len(self.skipped)

    @property
    def error_count(self) -> int:
        return len(self.errors)

    @property
    def skipped_identifiers(self) -> tuple[str, ...]:
        return tuple(item.identifier for item in self.skipped)

    def summary_line(self) -> str:
        return (
            f"Processed {self.total_processed} rows: {self.created_count} created, "
            f"{self.skipped_count} skipped, {self.error_count} errors."
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_processed": self.total_processed,
            "counts": {
                "created": self.created_count,
                "skipped": self.skipped_count,
                "errors": self.error_count,
            },
            "created": [item.to_dict() for item in self.created],
            "skipped": [item.to_dict() for item in self.skipped],
            "errors": [item.to_dict() for item in self.errors],
        }


@dataclass
class ImportReportBuilder:
    """
    Назначение/ответственность:
        Накопитель исходов, которым владеет ровно один запуск конвейера.
    """

    total_processed: int = 0
    created: list[CreatedOutcome] = field(default_factory=list)
    skipped: list[SkippedOutcome] = field(default_factory=list)
    errors: list[ErrorOutcome] = field(default_factory=list)

    def mark_processed(self) -> int:
        self.total_processed += 1
        return self.total_processed

    def add_created(self, outcome: CreatedOutcome) -> None:
        self.created.append(outcome)

    def add_skipped(self, outcome: SkippedOutcome) -> None:
        self.skipped.append(outcome)

    def add_error(self, outcome: ErrorOutcome) -> None:
        self.errors.append(outcome)

    def build(self) -> ImportReport:
        return ImportReport(
            total_processed=self.total_processed,
            created=tuple(self.created),
            skipped=tuple(self.skipped),
            errors=tuple(self.errors),
        )


__all__ = ["ImportReport", "ImportReportBuilder"]

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any

from userimport.common.time import getNowIso
from userimport.domain.reporting.import_report import ImportReport


@dataclass
class ReportMeta:
    """
    Назначение:
        Метаданные запуска команды.
    """

    run_id: str
    command: str
    started_at: str
    finished_at: str | None = None
    duration_ms: int | None = None
    csv_path: str | None = None


@dataclass
class ReportSummary:
    rows_total: int = 0
    created: int = 0
    skipped: int = 0
    errors: int = 0


class RunReport:
    """
    Назначение/ответственность:
        Сборщик отчёта одной команды CLI (meta + summary + context).
    """

    def __init__(self, run_id: str, command: str, started_at: str | None = None) -> None:
        self.meta = ReportMeta(run_id=run_id, command=command, started_at=started_at or getNowIso())
        self.summary = ReportSummary()
        self.context: dict[str, Any] = {}
        self.status: str | None = None

    def set_context(self, name: str, value: Any) -> None:
        self.context[name] = value

    def attach_import(self, report: ImportReport) -> None:
        self.summary.rows_total = report.total_processed
        self.summary.created = report.created_count
        self.summary.skipped = report.skipped_count
        self.summary.errors = report.error_count
        self.set_context("import", report.to_dict())

    def fail(self, message: str) -> None:
        self.status = "FAILED"
        self.set_context("error", {"message": message})

    def finish(self, finished_at: str | None = None, duration_ms: int | None = None) -> None:
        self.meta.finished_at = finished_at or getNowIso()
        self.meta.duration_ms = duration_ms
        if self.status is None:
            self.status = self._derive_status()

    def _derive_status(self) -> str:
        if self.summary.errors == 0:
            return "SUCCESS"
        if self.summary.created > 0 or self.summary.skipped > 0:
            return "PARTIAL"
        return "FAILED"

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status or self._derive_status(),
            "meta": asdict(self.meta),
            "summary": asdict(self.summary),
            "context": self.context,
        }


__all__ = ["ReportMeta", "ReportSummary", "RunReport"]

from __future__ import annotations

import json
from pathlib import Path

from userimport.domain.reporting.run_report import RunReport


def createEmptyReport(runId: str, command: str, configSources: list[str]) -> RunReport:
    """
    Назначение:
        Создаёт пустой отчёт-скелет команды.
    """
    report = RunReport(run_id=runId, command=command)
    if configSources:
        report.set_context("config", {"sources": configSources})
    return report


def finalizeReport(report: RunReport, durationMs: int, logFile: str | None, dataDir: str, reportDir: str) -> None:
    """
    Назначение:
        Финализирует отчёт: время завершения, длительность, пути.
    """
    report.set_context(
        "runtime",
        {
            "log_file": logFile,
            "data_dir": dataDir,
            "report_dir": reportDir,
        },
    )
    report.finish(duration_ms=durationMs)


def writeReportJson(report: RunReport, reportDir: str, fileBaseName: str) -> str:
    """
    Назначение:
        Записывает report JSON на диск.

    Выходные данные:
        str
            Путь к файлу отчёта.
    """
    Path(reportDir).mkdir(parents=True, exist_ok=True)
    reportPath = str(Path(reportDir) / f"{fileBaseName}.json")

    with open(reportPath, "w", encoding="utf-8") as f:
        json.dump(report.to_dict(), f, ensure_ascii=False, indent=2, default=str)

    return reportPath

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Sequence

from userimport.common.run_id import generate_run_id
from userimport.domain.error_codes import ErrorCode
from userimport.domain.exceptions import MalformedRecordError, RowProcessingError
from userimport.domain.models import (
    CandidateAccount,
    CreatedOutcome,
    ErrorOutcome,
    ImportConfig,
    RowOutcome,
    SkippedOutcome,
)
from userimport.domain.planning.duplicate_policy import DuplicatePolicy
from userimport.domain.ports.directory import AccountDirectoryProtocol
from userimport.domain.ports.notifications import NotificationSenderProtocol
from userimport.domain.ports.sources import RowSourceProtocol
from userimport.domain.reporting.import_report import ImportReport, ImportReportBuilder
from userimport.domain.validation.row_parser import RowParser
from userimport.infra.logging.setup import LOGGER_ROOT, logEvent

COMPONENT = "import"


class PipelineState(str, Enum):
    INITIALIZING = "initializing"
    READING_HEADER = "reading_header"
    READING_ROWS = "reading_rows"
    FINALIZING = "finalizing"
    DONE = "done"


class ImportPipeline:
    """
    Назначение/ответственность:
        Оркестратор импорта учётных записей: читает строки, разбирает,
        применяет политику дубликатов, создаёт записи и собирает ImportReport.
    Взаимодействия:
        Все внешние зависимости передаются явно через конструктор.
    Ограничения:
        Синхронно и строго последовательно; один экземпляр = один запуск за раз.
    """

    def __init__(
        self,
        row_source: RowSourceProtocol,
        directory: AccountDirectoryProtocol,
        notifier: NotificationSenderProtocol | None = None,
        logger: logging.Logger | None = None,
        run_id: str | None = None,
        parser: RowParser | None = None,
        policy: DuplicatePolicy | None = None,
    ):
        self.row_source = row_source
        self.directory = directory
        self.notifier = notifier
        self.logger = logger or logging.getLogger(f"{LOGGER_ROOT}.{COMPONENT}")
        self.run_id = run_id or generate_run_id()
        self.parser = parser or RowParser(directory)
        self.policy = policy or DuplicatePolicy(directory)
        self.state = PipelineState.INITIALIZING

    def run_import(
        self,
        locator: str,
        delimiter: str,
        has_header: bool,
        activate_users: bool,
        send_notifications: bool,
        config: ImportConfig,
    ) -> ImportReport:
        """
        Контракт (вход/выход):
            - Вход: locator источника, разделитель, флаги заголовка/активации/уведомлений, config.
            - Выход: ImportReport по всем обработанным строкам.
        Ошибки/исключения:
            SourceUnreadableError: источник не открылся или перестал читаться.
            Ошибки отдельных строк, включая неразбираемые записи, наружу не выходят.
        Алгоритм:
            INITIALIZING -> READING_HEADER (has_header) -> READING_ROWS -> FINALIZING -> DONE
        """
        self.state = PipelineState.INITIALIZING
        builder = ImportReportBuilder()
        handle = self.row_source.open(locator)
        row_number = 0
        try:
            if has_header:
                self.state = PipelineState.READING_HEADER
                if self._skip_header(handle, delimiter):
                    row_number += 1

            self.state = PipelineState.READING_ROWS
            while builder.total_processed < config.max_import_size:
                try:
                    raw = self.row_source.next_row(handle, delimiter)
                except MalformedRecordError as exc:
                    row_number += 1
                    builder.mark_processed()
                    self._record(builder, self._error(row_number, exc.message, exc.code))
                    continue
                if raw is None:
                    break
                row_number += 1
                builder.mark_processed()
                outcome = self._process_row(raw, row_number, activate_users, send_notifications, config)
                self._record(builder, outcome)
        finally:
            self.state = PipelineState.FINALIZING
            self.row_source.close(handle)

        report = builder.build()
        if config.logging_enabled:
            logEvent(
                self.logger,
                logging.INFO,
                self.run_id,
                COMPONENT,
                f"Import completed: {report.created_count} created, "
                f"{report.skipped_count} skipped, {report.error_count} errors",
            )
        self.state = PipelineState.DONE
        return report

    def _process_row(
        self,
        raw: Sequence[str | None],
        row_number: int,
        activate_users: bool,
        send_notifications: bool,
        config: ImportConfig,
    ) -> RowOutcome:
        try:
            candidate = self.parser.parse(raw, row_number, config.default_role)

            decision = self.policy.resolve(candidate, config.allow_duplicate_emails)
            if decision.is_skip:
                if config.logging_enabled:
                    logEvent(
                        self.logger,
                        logging.INFO,
                        self.run_id,
                        COMPONENT,
                        f"Skipped existing user: {candidate.identifier} ({candidate.email})",
                        rowNumber=row_number,
                    )
                return SkippedOutcome(
                    identifier=candidate.identifier,
                    row_number=row_number,
                    reason=decision.reason.value if decision.reason else None,
                )

            candidate = decision.candidate
            account_id = self.directory.create_account(candidate, activate_users)
        except RowProcessingError as exc:
            return self._error(row_number, exc.message, exc.code)
        except Exception as exc:
            return self._error(row_number, str(exc), ErrorCode.UNEXPECTED_ERROR.value)

        if config.logging_enabled:
            logEvent(
                self.logger,
                logging.INFO,
                self.run_id,
                COMPONENT,
                f"Created user: {candidate.identifier} ({candidate.email}) with role {candidate.role}",
                rowNumber=row_number,
            )
        if activate_users and send_notifications:
            self._notify(candidate, account_id, row_number)

        return CreatedOutcome(
            identifier=candidate.identifier,
            email=candidate.email,
            role=candidate.role,
            account_id=account_id,
            row_number=row_number,
        )

    def _skip_header(self, handle: Any, delimiter: str) -> bool:
        """Читает заголовок; False, если источник пуст."""
        try:
            return self.row_source.next_row(handle, delimiter) is not None
        except MalformedRecordError as exc:
            logEvent(
                self.logger,
                logging.WARNING,
                self.run_id,
                COMPONENT,
                f"Header record is malformed and was skipped: {exc.message}",
                rowNumber=1,
            )
            return True

    def _notify(self, candidate: CandidateAccount, account_id: Any, row_number: int) -> None:
        if self.notifier is None:
            return
        try:
            self.notifier.send_welcome(account_id)
        except Exception as exc:
            # исход строки остаётся Created
            logEvent(
                self.logger,
                logging.WARNING,
                self.run_id,
                "notify",
                f"Failed to send welcome notification to {candidate.identifier}: {exc}",
                rowNumber=row_number,
            )

    def _error(self, row_number: int, message: str, code: str | None) -> ErrorOutcome:
        logEvent(
            self.logger,
            logging.ERROR,
            self.run_id,
            COMPONENT,
            f"Error processing user at row {row_number}: {message}",
            rowNumber=row_number,
        )
        return ErrorOutcome(row_number=row_number, message=message, code=code)

    @staticmethod
    def _record(builder: ImportReportBuilder, outcome: RowOutcome) -> None:
        if isinstance(outcome, CreatedOutcome):
            builder.add_created(outcome)
        elif isinstance(outcome, SkippedOutcome):
            builder.add_skipped(outcome)
        else:
            builder.add_error(outcome)


__all__ = ["ImportPipeline", "PipelineState"]

from __future__ import annotations

import logging
import sqlite3
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

import typer

from userimport.common.run_id import generate_run_id
from userimport.common.sanitize import maskSecret, previewList
from userimport.common.time import getDurationMs
from userimport.config import Settings, load_settings
from userimport.domain.exceptions import SourceUnreadableError
from userimport.domain.models import ImportConfig
from userimport.domain.ports.directory import AccountDirectoryProtocol
from userimport.domain.ports.notifications import NotificationSenderProtocol
from userimport.domain.reporting.import_report import ImportReport
from userimport.errors import ConfigError
from userimport.infra.artifacts.report_writer import createEmptyReport, finalizeReport, writeReportJson
from userimport.infra.artifacts.template_writer import write_template
from userimport.infra.directory.db import getDirectoryDbPath, openDirectoryEngine
from userimport.infra.directory.sqlite_directory import SqliteAccountDirectory, SqliteNotificationOutbox
from userimport.infra.http.api_directory import ApiAccountDirectory, ApiNotificationSender
from userimport.infra.http.directory_client import DirectoryApiClient
from userimport.infra.logging.setup import closeCommandLogger, createCommandLogger, logEvent, teeStdStreams
from userimport.infra.sources.csv_reader import CsvRowSource
from userimport.infra.sources.csv_utils import delimiter_name, resolve_delimiter
from userimport.usecases.import_users_service import ImportPipeline
from userimport.usecases.validate_source_usecase import validate_source

app = typer.Typer(no_args_is_help=True, add_completion=False)
directoryApp = typer.Typer(no_args_is_help=True)

CREATED_DISPLAY_LIMIT = 20
SKIPPED_DISPLAY_LIMIT = 10


def ensureDir(path: str) -> None:
    Path(path).mkdir(parents=True, exist_ok=True)


def requireCsv(csvPath: str | None) -> None:
    """
    Назначение:
        Базовая проверка наличия CSV-файла для import/validate.

    Поведение:
        - Если csvPath не задан или файл не существует, exit code 2.
    """
    if not csvPath:
        typer.echo("ERROR: --csv is required", err=True)
        raise typer.Exit(code=2)

    p = Path(csvPath)
    if not p.exists() or not p.is_file():
        typer.echo(f"ERROR: CSV file not found: {csvPath}", err=True)
        raise typer.Exit(code=2)


def requireApi(settings: Settings) -> None:
    """
    Назначение:
        Проверяет параметры API, когда каталог учётных записей удалённый.
    """
    missing = []
    if not settings.host:
        missing.append("host")
    if not settings.api_username:
        missing.append("api_username")
    if not settings.api_password:
        missing.append("api_password")

    if missing:
        typer.echo(f"ERROR: missing API settings: {', '.join(missing)}", err=True)
        raise typer.Exit(code=2)


def printRunHeader(runId: str, command: str, settings: Settings, sources: list[str]) -> None:
    """
    Назначение:
        Печатает безопасную сводку параметров запуска (без секретов).
    """
    typer.echo(
        f"run_id={runId} command={command} directory={settings.directory_backend} "
        f"host={settings.host} port={settings.port} api_username={settings.api_username} "
        f"api_password={maskSecret(settings.api_password)} sources={sources} "
        f"log_level={settings.log_level}"
    )


def runWithReport(
    ctx: typer.Context,
    commandName: str,
    csvPath: str | None,
    requiresCsv: bool,
    requiresApiAccess: bool,
    runner,
) -> None:
    """
    Назначение:
        Унифицированная обвязка выполнения команд:
        - создаёт логгер + файл лога
        - создаёт report skeleton
        - валидирует обязательные входы (CSV/API)
        - дублирует stdout/stderr в лог (tee)
        - гарантирует запись отчёта в finally
    """
    runId = ctx.obj["runId"]
    settings: Settings = ctx.obj["settings"]
    sources = ctx.obj["sources"]

    startMonotonic = time.monotonic()

    logger, logFilePath = createCommandLogger(
        commandName=commandName,
        logDir=settings.log_dir,
        runId=runId,
        logLevel=settings.log_level,
    )

    report = createEmptyReport(runId=runId, command=commandName, configSources=sources)
    report.meta.csv_path = csvPath

    def execute() -> int | None:
        logEvent(logger, logging.INFO, runId, "core", "Command started")
        printRunHeader(runId, commandName, settings, sources)

        if requiresApiAccess:
            try:
                requireApi(settings)
            except typer.Exit:
                logEvent(logger, logging.ERROR, runId, "config", "Missing API settings")
                report.fail("Missing API settings")
                return 2

        if requiresCsv:
            try:
                requireCsv(csvPath)
            except typer.Exit:
                logEvent(logger, logging.ERROR, runId, "csv", "CSV is missing or not accessible")
                report.fail("CSV is missing or not accessible")
                return 2

        return runner(logger, report)

    exitCode: int | None = None
    try:
        with teeStdStreams(logger):
            try:
                exitCode = execute()
            finally:
                durationMs = getDurationMs(startMonotonic, time.monotonic())
                finalizeReport(
                    report=report,
                    durationMs=durationMs,
                    logFile=logFilePath,
                    dataDir=settings.data_dir,
                    reportDir=settings.report_dir,
                )
                reportPath = writeReportJson(report, settings.report_dir, f"report_{commandName}_{runId}")
                logEvent(logger, logging.INFO, runId, "report", f"Report written: {reportPath}")
    finally:
        closeCommandLogger(logger)

    if exitCode is not None:
        raise typer.Exit(code=exitCode)


@contextmanager
def openDirectory(settings: Settings) -> Iterator[tuple[AccountDirectoryProtocol, NotificationSenderProtocol]]:
    """
    Назначение:
        Открывает каталог учётных записей и отправителя уведомлений
        выбранного backend и закрывает их по выходу.
    """
    if settings.directory_backend == "api":
        client = DirectoryApiClient(
            baseUrl=settings.api_base_url() or "",
            username=settings.api_username or "",
            password=settings.api_password or "",
            timeoutSeconds=settings.timeout_seconds,
            tlsSkipVerify=settings.tls_skip_verify,
            caFile=settings.ca_file,
            retries=settings.retries,
            retryBackoffSeconds=settings.retry_backoff_seconds,
        )
        try:
            yield ApiAccountDirectory(client), ApiNotificationSender(client)
        finally:
            client.close()
        return

    engine = openDirectoryEngine(settings.data_dir)
    try:
        yield SqliteAccountDirectory(engine), SqliteNotificationOutbox(engine)
    finally:
        engine.close()


@contextmanager
def openSqliteDirectory(settings: Settings) -> Iterator[SqliteAccountDirectory]:
    engine = openDirectoryEngine(settings.data_dir)
    try:
        yield SqliteAccountDirectory(engine)
    finally:
        engine.close()


def printImportReport(result: ImportReport) -> None:
    typer.echo(result.summary_line())

    if result.created:
        typer.echo("Created:")
        for item in result.created[:CREATED_DISPLAY_LIMIT]:
            typer.echo(f"  {item.identifier} ({item.email}) - role: {item.role}")
        if result.created_count > CREATED_DISPLAY_LIMIT:
            typer.echo(f"  ... and {result.created_count - CREATED_DISPLAY_LIMIT} more users created")

    if result.skipped:
        typer.echo(
            f"WARNING: {result.skipped_count} users were skipped (duplicates): "
            f"{previewList(list(result.skipped_identifiers), SKIPPED_DISPLAY_LIMIT)}"
        )

    if result.errors:
        typer.echo(f"ERROR: {result.error_count} errors occurred during import:", err=True)
        for error in result.errors:
            typer.echo(f"  {error.display()}", err=True)


def runImportCommand(
    ctx: typer.Context,
    csvPath: str | None,
    delimiter: str | None,
    hasHeader: bool | None,
    activateUsers: bool | None,
    sendNotifications: bool | None,
    defaultRole: str | None,
    maxImportSize: int | None,
    allowDuplicateEmails: bool | None,
    logImports: bool | None,
) -> None:
    runId = ctx.obj["runId"]
    settings: Settings = ctx.obj["settings"]

    def execute(logger, report) -> int:
        try:
            resolvedDelimiter = resolve_delimiter(delimiter if delimiter is not None else settings.csv_delimiter)
            importConfig = ImportConfig(
                max_import_size=maxImportSize if maxImportSize is not None else settings.max_import_size,
                default_role=defaultRole or settings.default_role,
                logging_enabled=logImports if logImports is not None else settings.logging_enabled,
                allow_duplicate_emails=(
                    allowDuplicateEmails if allowDuplicateEmails is not None else settings.allow_duplicate_emails
                ),
            )
        except ValueError as exc:
            logEvent(logger, logging.ERROR, runId, "config", f"Invalid import options: {exc}")
            typer.echo(f"ERROR: {exc}", err=True)
            report.fail(str(exc))
            return 2

        csvHasHeader = hasHeader if hasHeader is not None else settings.csv_has_header
        activate = activateUsers if activateUsers is not None else settings.activate_users
        notify = sendNotifications if sendNotifications is not None else settings.send_notifications

        report.set_context(
            "options",
            {
                "delimiter": delimiter_name(resolvedDelimiter),
                "has_header": csvHasHeader,
                "activate_users": activate,
                "send_notifications": notify,
                "default_role": importConfig.default_role,
                "max_import_size": importConfig.max_import_size,
                "logging_enabled": importConfig.logging_enabled,
                "allow_duplicate_emails": importConfig.allow_duplicate_emails,
            },
        )

        try:
            with openDirectory(settings) as (directory, notifier):
                pipeline = ImportPipeline(
                    row_source=CsvRowSource(),
                    directory=directory,
                    notifier=notifier,
                    logger=logger,
                    run_id=runId,
                )
                result = pipeline.run_import(
                    csvPath,
                    resolvedDelimiter,
                    csvHasHeader,
                    activate,
                    notify,
                    importConfig,
                )
        except SourceUnreadableError as exc:
            logEvent(logger, logging.ERROR, runId, "source", f"Import failed: {exc}")
            typer.echo(f"ERROR: Import failed: {exc}", err=True)
            report.fail(str(exc))
            return 2
        except sqlite3.Error as exc:
            logEvent(logger, logging.ERROR, runId, "directory", f"Failed to open account directory: {exc}")
            typer.echo("ERROR: failed to open account directory (see logs/report)", err=True)
            report.fail(str(exc))
            return 2

        report.attach_import(result)
        printImportReport(result)
        return 1 if result.error_count > 0 else 0

    runWithReport(
        ctx=ctx,
        commandName="import",
        csvPath=csvPath,
        requiresCsv=True,
        requiresApiAccess=settings.directory_backend == "api",
        runner=execute,
    )


def runValidateCommand(ctx: typer.Context, csvPath: str | None, delimiter: str | None) -> None:
    runId = ctx.obj["runId"]
    settings: Settings = ctx.obj["settings"]

    def execute(logger, report) -> int:
        try:
            resolvedDelimiter = resolve_delimiter(delimiter if delimiter is not None else settings.csv_delimiter)
        except ValueError as exc:
            typer.echo(f"ERROR: {exc}", err=True)
            report.fail(str(exc))
            return 2

        try:
            result = validate_source(CsvRowSource(), csvPath, resolvedDelimiter)
        except SourceUnreadableError as exc:
            logEvent(logger, logging.ERROR, runId, "source", f"CSV read error: {exc}")
            typer.echo(f"ERROR: {exc}", err=True)
            report.fail(str(exc))
            return 2

        report.set_context(
            "validate",
            {"ok": result.ok, "rows_checked": result.rows_checked, "message": result.message},
        )
        if not result.ok:
            logEvent(logger, logging.WARNING, runId, "validate", f"Validation failed: {result.message}")
            typer.echo(f"ERROR: {result.message}", err=True)
            report.fail(result.message or "validation failed")
            return 1

        typer.echo(f"OK: checked {result.rows_checked} rows")
        return 0

    runWithReport(
        ctx=ctx,
        commandName="validate",
        csvPath=csvPath,
        requiresCsv=True,
        requiresApiAccess=False,
        runner=execute,
    )


def runTemplateCommand(ctx: typer.Context, output: str, delimiter: str | None) -> None:
    settings: Settings = ctx.obj["settings"]

    def execute(logger, report) -> int:
        try:
            resolvedDelimiter = resolve_delimiter(delimiter if delimiter is not None else settings.csv_delimiter)
        except ValueError as exc:
            typer.echo(f"ERROR: {exc}", err=True)
            report.fail(str(exc))
            return 2
        path = write_template(output, resolvedDelimiter)
        report.set_context("template", {"path": path, "delimiter": delimiter_name(resolvedDelimiter)})
        typer.echo(f"Template written: {path}")
        return 0

    runWithReport(
        ctx=ctx,
        commandName="template",
        csvPath=None,
        requiresCsv=False,
        requiresApiAccess=False,
        runner=execute,
    )


def _requireSqliteBackend(settings: Settings, report) -> int | None:
    if settings.directory_backend != "sqlite":
        typer.echo("ERROR: directory commands require directory_backend=sqlite", err=True)
        report.fail("directory commands require directory_backend=sqlite")
        return 2
    return None


def runDirectoryInitCommand(ctx: typer.Context, roles: list[str]) -> None:
    runId = ctx.obj["runId"]
    settings: Settings = ctx.obj["settings"]

    def execute(logger, report) -> int:
        failed = _requireSqliteBackend(settings, report)
        if failed is not None:
            return failed
        try:
            with openSqliteDirectory(settings) as directory:
                added = [role for role in roles if directory.add_role(role.strip())]
                all_roles = directory.list_roles()
        except sqlite3.Error as exc:
            logEvent(logger, logging.ERROR, runId, "directory", f"Directory init failed: {exc}")
            typer.echo("ERROR: directory init failed (see logs/report)", err=True)
            report.fail(str(exc))
            return 2
        report.set_context("directory", {"roles": all_roles, "added": added})
        typer.echo(f"Directory ready: {getDirectoryDbPath(settings.data_dir)}")
        typer.echo(f"roles={', '.join(all_roles)}")
        return 0

    runWithReport(
        ctx=ctx,
        commandName="directory-init",
        csvPath=None,
        requiresCsv=False,
        requiresApiAccess=False,
        runner=execute,
    )


def runDirectoryStatusCommand(ctx: typer.Context) -> None:
    runId = ctx.obj["runId"]
    settings: Settings = ctx.obj["settings"]

    def execute(logger, report) -> int:
        failed = _requireSqliteBackend(settings, report)
        if failed is not None:
            return failed
        try:
            with openSqliteDirectory(settings) as directory:
                counts = directory.count_accounts()
                roles = directory.list_roles()
        except sqlite3.Error as exc:
            logEvent(logger, logging.ERROR, runId, "directory", f"Directory status failed: {exc}")
            typer.echo("ERROR: directory status failed (see logs/report)", err=True)
            report.fail(str(exc))
            return 2
        report.set_context("directory", {"accounts": counts, "roles": roles})
        typer.echo(
            f"accounts total={counts['total']} active={counts['active']} blocked={counts['blocked']}"
        )
        typer.echo(f"roles={', '.join(roles)}")
        return 0

    runWithReport(
        ctx=ctx,
        commandName="directory-status",
        csvPath=None,
        requiresCsv=False,
        requiresApiAccess=False,
        runner=execute,
    )


@app.callback()
def main(
    ctx: typer.Context,
    config: str | None = typer.Option(None, "--config", help="Path to config.yml"),
    runId: str | None = typer.Option(None, "--run-id", help="Run identifier (UUID). If omitted, generated."),
    logLevel: str | None = typer.Option(None, "--log-level", help="Log level: ERROR|WARN|INFO|DEBUG"),
    logDir: str | None = typer.Option(None, "--log-dir", help="Directory for logs."),
    reportDir: str | None = typer.Option(None, "--report-dir", help="Directory for reports."),
    dataDir: str | None = typer.Option(None, "--data-dir", help="Directory for the local account directory (SQLite)."),
    directoryBackend: str | None = typer.Option(
        None, "--directory-backend", help="Account directory backend: sqlite|api", case_sensitive=False
    ),
    host: str | None = typer.Option(None, "--host", help="API host or base URL"),
    port: int | None = typer.Option(None, "--port", help="API port"),
    apiUsername: str | None = typer.Option(None, "--api-username", help="API username"),
    apiPassword: str | None = typer.Option(None, "--api-password", help="API password (avoid; use env/file)"),
    apiPasswordFile: str | None = typer.Option(None, "--api-password-file", help="Read API password from file"),
    tlsSkipVerify: bool | None = typer.Option(None, "--tls-skip-verify", help="Disable TLS verification"),
    caFile: str | None = typer.Option(None, "--ca-file", help="CA file path"),
    timeoutSeconds: float | None = typer.Option(None, "--timeout-seconds", help="API timeout in seconds"),
    retries: int | None = typer.Option(None, "--retries", help="Retry attempts for API calls"),
    retryBackoffSeconds: float | None = typer.Option(None, "--retry-backoff-seconds", help="Base backoff for retries"),
):
    """
    Назначение:
        Глобальная инициализация CLI:
        - генерирует/принимает run_id
        - загружает настройки (CLI > ENV > config > defaults)
        - создаёт каталоги log/report
        - сохраняет всё в ctx.obj для подкоманд
    """
    if apiPasswordFile and not apiPassword:
        p = Path(apiPasswordFile)
        if not p.exists() or not p.is_file():
            typer.echo(f"ERROR: api-password-file not found: {apiPasswordFile}", err=True)
            raise typer.Exit(code=2)
        apiPassword = p.read_text(encoding="utf-8").strip()

    if not runId:
        runId = generate_run_id()

    cliOverrides = {
        "log_level": logLevel,
        "log_dir": logDir,
        "report_dir": reportDir,
        "data_dir": dataDir,
        "directory_backend": directoryBackend,
        "host": host,
        "port": port,
        "api_username": apiUsername,
        "api_password": apiPassword,
        "tls_skip_verify": tlsSkipVerify,
        "ca_file": caFile,
        "timeout_seconds": timeoutSeconds,
        "retries": retries,
        "retry_backoff_seconds": retryBackoffSeconds,
    }
    try:
        loaded = load_settings(config_path=config, cli_overrides=cliOverrides)
    except ConfigError as exc:
        typer.echo(f"ERROR: {exc}", err=True)
        raise typer.Exit(code=2)

    ensureDir(loaded.settings.log_dir)
    ensureDir(loaded.settings.report_dir)

    ctx.obj = {
        "runId": runId,
        "settings": loaded.settings,
        "sources": loaded.sources_used,
        "configPath": config,
    }


@app.command("import")
def importUsers(
    ctx: typer.Context,
    csv: str | None = typer.Option(None, "--csv", help="Path to input CSV"),
    delimiter: str | None = typer.Option(None, "--delimiter", help="comma|semicolon|tab|pipe or the character itself"),
    hasHeader: bool | None = typer.Option(
        None, "--has-header/--no-has-header", help="First row is a header and is skipped", show_default=True
    ),
    activate: bool | None = typer.Option(
        None, "--activate/--no-activate", help="Create accounts active (can log in immediately)", show_default=True
    ),
    notify: bool | None = typer.Option(
        None, "--notify/--no-notify", help="Send welcome notifications (only with --activate)", show_default=True
    ),
    defaultRole: str | None = typer.Option(None, "--default-role", help="Role for rows without a role column"),
    maxImportSize: int | None = typer.Option(
        None, "--max-import-size", min=1, max=10000, help="Maximum number of data rows processed"
    ),
    allowDuplicateEmails: bool | None = typer.Option(
        None,
        "--allow-duplicate-emails/--no-allow-duplicate-emails",
        help="Rewrite colliding emails as local+N@domain instead of skipping",
        show_default=True,
    ),
    logImports: bool | None = typer.Option(
        None, "--log-imports/--no-log-imports", help="Log created/skipped rows and the summary", show_default=True
    ),
):
    runImportCommand(
        ctx=ctx,
        csvPath=csv,
        delimiter=delimiter,
        hasHeader=hasHeader,
        activateUsers=activate,
        sendNotifications=notify,
        defaultRole=defaultRole,
        maxImportSize=maxImportSize,
        allowDuplicateEmails=allowDuplicateEmails,
        logImports=logImports,
    )


@app.command()
def validate(
    ctx: typer.Context,
    csv: str | None = typer.Option(None, "--csv", help="Path to input CSV"),
    delimiter: str | None = typer.Option(None, "--delimiter", help="comma|semicolon|tab|pipe or the character itself"),
):
    runValidateCommand(ctx, csv, delimiter)


@app.command()
def template(
    ctx: typer.Context,
    output: str = typer.Option("user_import_template.csv", "--output", help="Where to write the template"),
    delimiter: str | None = typer.Option(None, "--delimiter", help="comma|semicolon|tab|pipe or the character itself"),
):
    runTemplateCommand(ctx, output, delimiter)


@directoryApp.command("init")
def directoryInit(
    ctx: typer.Context,
    role: list[str] | None = typer.Option(None, "--role", help="Role to create (repeatable)"),
):
    runDirectoryInitCommand(ctx, list(role or []))


@directoryApp.command("status")
def directoryStatus(ctx: typer.Context):
    runDirectoryStatusCommand(ctx)


app.add_typer(directoryApp, name="directory")

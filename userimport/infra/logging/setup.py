from __future__ import annotations

import logging
import sys
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, TextIO

LOGGER_ROOT = "userImport"
LOG_FORMAT = "%(asctime)s %(levelname)s runId=%(runId)s comp=%(component)s row=%(rowNumber)s msg=%(message)s"
LOG_DATE_FORMAT = "%Y-%m-%dT%H:%M:%S%z"

LOG_LEVELS: dict[str, int] = {
    "ERROR": logging.ERROR,
    "WARN": logging.WARNING,
    "WARNING": logging.WARNING,
    "INFO": logging.INFO,
    "DEBUG": logging.DEBUG,
}

NO_ROW = "-"


class ImportContextFilter(logging.Filter):
    """
    Назначение:
        Дополняет LogRecord полями runId/component/rowNumber, если вызывающий
        код их не передал (сторонние логгеры, перехваченный stdout).
    """

    def __init__(self, runId: str, defaultComponent: str = "core"):
        super().__init__()
        self.runId = runId
        self.defaultComponent = defaultComponent

    def filter(self, record: logging.LogRecord) -> bool:
        if getattr(record, "runId", None) is None:
            record.runId = self.runId
        if getattr(record, "component", None) is None:
            record.component = self.defaultComponent
        if getattr(record, "rowNumber", None) is None:
            record.rowNumber = NO_ROW
        return True


class LoggingTee:
    """
    Назначение:
        Поток-обёртка: пишет в исходный поток и построчно дублирует вывод в лог.
    """

    def __init__(self, stream: TextIO, logger: logging.Logger, level: int, component: str):
        self.stream = stream
        self.logger = logger
        self.level = level
        self.component = component
        self.pending = ""

    def write(self, s: str) -> int:
        written = self.stream.write(s)
        self.pending += s
        *lines, self.pending = self.pending.split("\n")
        for line in lines:
            self._emit(line)
        return written

    def flush(self) -> None:
        self.stream.flush()
        self._emit(self.pending)
        self.pending = ""

    @property
    def encoding(self) -> str:
        return getattr(self.stream, "encoding", None) or "utf-8"

    def isatty(self) -> bool:
        isatty = getattr(self.stream, "isatty", None)
        return bool(isatty()) if isatty else False

    def _emit(self, line: str) -> None:
        if line.strip():
            self.logger.log(self.level, line.rstrip(), extra={"component": self.component})


@contextmanager
def teeStdStreams(logger: logging.Logger) -> Iterator[None]:
    """
    Назначение:
        На время команды дублирует stdout (INFO) и stderr (ERROR) в лог команды
        и восстанавливает исходные потоки на выходе.
    """
    originalStdout, originalStderr = sys.stdout, sys.stderr
    sys.stdout = LoggingTee(originalStdout, logger, logging.INFO, "stdout")
    sys.stderr = LoggingTee(originalStderr, logger, logging.ERROR, "stderr")
    try:
        yield
    finally:
        sys.stdout.flush()
        sys.stderr.flush()
        sys.stdout, sys.stderr = originalStdout, originalStderr


def parseLogLevel(levelName: str) -> int:
    level = LOG_LEVELS.get((levelName or "").strip().upper())
    if level is None:
        raise ValueError(f"Unsupported log level: {levelName}")
    return level


def createCommandLogger(commandName: str, logDir: str, runId: str, logLevel: str) -> tuple[logging.Logger, str]:
    """
    Назначение:
        Логгер одного запуска команды с файлом <logDir>/<command>_<runId>.log.

    Выходные данные:
        (logger, logFilePath)
    """
    Path(logDir).mkdir(parents=True, exist_ok=True)
    logFilePath = str(Path(logDir) / f"{commandName}_{runId}.log")

    logger = logging.getLogger(f"{LOGGER_ROOT}.{commandName}.{runId}")
    closeCommandLogger(logger)
    logger.propagate = False
    logger.setLevel(parseLogLevel(logLevel))

    fileHandler = logging.FileHandler(logFilePath, encoding="utf-8")
    fileHandler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATE_FORMAT))
    fileHandler.addFilter(ImportContextFilter(runId=runId))
    logger.addHandler(fileHandler)

    return logger, logFilePath


def closeCommandLogger(logger: logging.Logger) -> None:
    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)


def logEvent(
    logger: logging.Logger,
    level: int,
    runId: str,
    component: str,
    message: str,
    rowNumber: int | None = None,
) -> None:
    """
    Назначение:
        Единая точка записи событий; rowNumber указывается для событий строки файла.
    """
    logger.log(level, message, extra={"runId": runId, "component": component, "rowNumber": rowNumber})

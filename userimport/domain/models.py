from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Union

DEFAULT_ROLE = "authenticated"
DEFAULT_MAX_IMPORT_SIZE = 1000


@dataclass(frozen=True)
class CandidateAccount:
    """
    Назначение:
        Разобранная, ещё не сохранённая учётная запись из одной строки файла.
    Инварианты/гарантии:
        - identifier и email обрезаны и прошли проверку формата.
        - role существовала в каталоге в момент разбора.
        - Единственное изменение после разбора: новая копия с другим email
          (политика дубликатов).
    """

    identifier: str
    email: str
    role: str


@dataclass(frozen=True)
class ImportConfig:
    """
    Назначение:
        Настройки одного запуска импорта (только чтение на время запуска).
    """

    max_import_size: int = DEFAULT_MAX_IMPORT_SIZE
    default_role: str = DEFAULT_ROLE
    logging_enabled: bool = True
    allow_duplicate_emails: bool = False

    def __post_init__(self) -> None:
        if self.max_import_size < 1:
            raise ValueError("max_import_size must be >= 1")
        if not self.default_role or not self.default_role.strip():
            raise ValueError("default_role must not be empty")


class OutcomeKind(str, Enum):
    CREATED = "created"
    SKIPPED = "skipped"
    ERROR = "error"


@dataclass(frozen=True)
class CreatedOutcome:
    identifier: str
    email: str
    role: str
    account_id: Any
    row_number: int | None = None

    kind = OutcomeKind.CREATED

    def to_dict(self) -> dict[str, Any]:
        return {
            "row_number": self.row_number,
            "identifier": self.identifier,
            "email": self.email,
            "role": self.role,
            "account_id": self.account_id,
        }


@dataclass(frozen=True)
class SkippedOutcome:
    identifier: str
    row_number: int | None = None
    reason: str | None = None

    kind = OutcomeKind.SKIPPED

    def to_dict(self) -> dict[str, Any]:
        return {
            "row_number": self.row_number,
            "identifier": self.identifier,
            "reason": self.reason,
        }


@dataclass(frozen=True)
class ErrorOutcome:
    """
    Назначение:
        Восстановленная ошибка строки: номер записи в файле, код и текст.
    """

    row_number: int
    message: str
    code: str | None = None

    kind = OutcomeKind.ERROR

    def display(self) -> str:
        return f"Row {self.row_number}: {self.message}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "row_number": self.row_number,
            "code": self.code,
            "message": self.message,
        }


RowOutcome = Union[CreatedOutcome, SkippedOutcome, ErrorOutcome]

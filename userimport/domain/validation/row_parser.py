from __future__ import annotations

from typing import Sequence

from userimport.domain.error_codes import ErrorCode
from userimport.domain.exceptions import ParseError
from userimport.domain.models import CandidateAccount
from userimport.domain.ports.directory import AccountDirectoryProtocol
from userimport.domain.validation.row_rules import (
    EMAIL_FIELD,
    IDENTIFIER_FIELD,
    MIN_FIELDS,
    field_at,
    resolve_role,
    validate_email,
    validate_identifier,
)


class RowParser:
    """
    Назначение/ответственность:
        Превращает одну сырую запись в CandidateAccount или ParseError.
    Взаимодействия:
        Обращается к каталогу только для проверки существования роли.
    """

    def __init__(self, directory: AccountDirectoryProtocol):
        self.directory = directory

    def parse(self, raw_fields: Sequence[str | None], row_number: int, default_role: str) -> CandidateAccount:
        """
        Контракт (вход/выход):
            - Вход: поля записи, номер записи в файле, роль по умолчанию.
            - Выход: CandidateAccount с обрезанными identifier/email и ролью в написании каталога.
        Ошибки/исключения:
            ParseError с кодом ErrorCode.* и row_number.
        Алгоритм:
            поля < 2 -> пустой identifier -> пустой email -> формат email ->
            формат identifier -> роль через canonical_role
        """
        if not raw_fields or len(raw_fields) < MIN_FIELDS:
            raise ParseError(
                "Insufficient data in row (expected at least identifier and email)",
                ErrorCode.INSUFFICIENT_FIELDS,
                row_number,
            )

        identifier = field_at(raw_fields, IDENTIFIER_FIELD) or ""
        email = field_at(raw_fields, EMAIL_FIELD) or ""
        role = resolve_role(raw_fields, default_role)

        if not identifier:
            raise ParseError("Identifier is empty", ErrorCode.IDENTIFIER_EMPTY, row_number)
        if not email:
            raise ParseError("Email is empty", ErrorCode.EMAIL_EMPTY, row_number)
        if not validate_email(email):
            raise ParseError(f"Invalid email format: {email}", ErrorCode.INVALID_EMAIL, row_number)
        if not validate_identifier(identifier):
            raise ParseError(
                f"Invalid identifier format: {identifier} (only letters, numbers, @, ., _, - allowed)",
                ErrorCode.INVALID_IDENTIFIER,
                row_number,
            )
        canonical = self.directory.canonical_role(role)
        if canonical is None:
            raise ParseError(f"Invalid role: {role}", ErrorCode.UNKNOWN_ROLE, row_number)

        return CandidateAccount(identifier=identifier, email=email, role=canonical)


__all__ = ["RowParser"]

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum

from userimport.domain.exceptions import DuplicateResolutionError
from userimport.domain.models import CandidateAccount
from userimport.domain.ports.directory import AccountDirectoryProtocol
from userimport.domain.validation.row_rules import split_email

MAX_UNIQUE_EMAIL_ATTEMPTS = 999


class DecisionAction(str, Enum):
    PROCEED = "proceed"
    SKIP = "skip"


class SkipReason(str, Enum):
    IDENTIFIER_EXISTS = "identifier_exists"
    EMAIL_EXISTS = "email_exists"


@dataclass(frozen=True)
class Decision:
    """
    Назначение:
        Итог политики дубликатов: PROCEED с (возможно переписанным) кандидатом или SKIP.
    """

    action: DecisionAction
    candidate: CandidateAccount
    reason: SkipReason | None = None

    @classmethod
    def proceed(cls, candidate: CandidateAccount) -> "Decision":
        return cls(action=DecisionAction.PROCEED, candidate=candidate)

    @classmethod
    def skip(cls, candidate: CandidateAccount, reason: SkipReason) -> "Decision":
        return cls(action=DecisionAction.SKIP, candidate=candidate, reason=reason)

    @property
    def is_skip(self) -> bool:
        return self.action == DecisionAction.SKIP


class DuplicatePolicy:
    """
    Назначение/ответственность:
        Решает судьбу кандидата при коллизиях с существующими учётными записями.
    Ограничения:
        Коллизия identifier всегда SKIP: записи ключуются по identifier.
        Коллизия только по email мягкая лишь при allow_duplicate_emails.
    """

    def __init__(self, directory: AccountDirectoryProtocol, max_attempts: int = MAX_UNIQUE_EMAIL_ATTEMPTS):
        self.directory = directory
        self.max_attempts = max_attempts

    def resolve(self, candidate: CandidateAccount, allow_duplicate_emails: bool) -> Decision:
        """
        Контракт (вход/выход):
            - Вход: candidate, allow_duplicate_emails.
            - Выход: Decision.
        Ошибки/исключения:
            DuplicateResolutionError, если уникальный email не подобран.
        Алгоритм:
            identifier существует -> skip
            email существует и дубликаты запрещены -> skip
            email существует и дубликаты разрешены -> proceed с local+<n>@domain
            иначе -> proceed без изменений
        """
        if self.directory.exists_by_identifier(candidate.identifier):
            return Decision.skip(candidate, SkipReason.IDENTIFIER_EXISTS)

        if not self.directory.exists_by_email(candidate.email):
            return Decision.proceed(candidate)

        if not allow_duplicate_emails:
            return Decision.skip(candidate, SkipReason.EMAIL_EXISTS)

        unique_email = self.generate_unique_email(candidate.email)
        return Decision.proceed(replace(candidate, email=unique_email))

    def generate_unique_email(self, email: str) -> str:
        """
        Назначение:
            Подбирает первый свободный адрес вида local+<n>@domain, n = 1..max_attempts.
        """
        local, domain = split_email(email)
        for counter in range(1, self.max_attempts + 1):
            new_email = f"{local}+{counter}@{domain}"
            if not self.directory.exists_by_email(new_email):
                return new_email
        raise DuplicateResolutionError(email, self.max_attempts)


__all__ = ["Decision", "DecisionAction", "DuplicatePolicy", "SkipReason", "MAX_UNIQUE_EMAIL_ATTEMPTS"]

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from userimport.domain.models import CandidateAccount


@runtime_checkable
class AccountDirectoryProtocol(Protocol):
    """
    Назначение:
        Контракт каталога учётных записей (хранилище + поиск).

    Контракт:
        - exists_by_identifier(identifier) -> bool
        - exists_by_email(email) -> bool
        - canonical_role(role_id) -> role_id в написании каталога | None (поиск без учёта регистра)
        - role_exists(role_id) -> bool
        - create_account(candidate, activate) -> account id | CreationError
    """

    def exists_by_identifier(self, identifier: str) -> bool: ...
    def exists_by_email(self, email: str) -> bool: ...
    def canonical_role(self, role_id: str) -> str | None: ...
    def role_exists(self, role_id: str) -> bool: ...
    def create_account(self, candidate: CandidateAccount, activate: bool) -> Any: ...


__all__ = ["AccountDirectoryProtocol"]

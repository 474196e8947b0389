from __future__ import annotations

from typing import Any
from urllib.parse import quote

from userimport.common.sanitize import truncateText
from userimport.domain.error_codes import ErrorCode
from userimport.domain.exceptions import CreationError, NotificationError
from userimport.domain.models import CandidateAccount
from userimport.infra.http.directory_client import ApiError, DirectoryApiClient

ACCOUNTS_PATH = "/api/accounts"
ROLES_PATH = "/api/roles"
WELCOME_TEMPLATE = "register_admin_created"


def _extract_items(data: Any) -> list[Any]:
    if isinstance(data, list):
        return data
    if isinstance(data, dict):
        for key in ("items", "data", "result", "accounts"):
            if isinstance(data.get(key), list):
                return data[key]
    raise ApiError("Unexpected response format: no items array", code=ErrorCode.INVALID_JSON.value)


class ApiAccountDirectory:
    """
    Назначение/ответственность:
        AccountDirectory поверх HTTP API удалённой службы учётных записей.
    Взаимодействия:
        GET  /api/accounts?identifier=...|email=...  -> {"items": [...]}
        GET  /api/roles/{role_id}                    -> 200 | 404
        POST /api/accounts                           -> 200/201 {"id": ...}
    """

    def __init__(self, client: DirectoryApiClient):
        self.client = client

    def exists_by_identifier(self, identifier: str) -> bool:
        data = self.client.getJson(ACCOUNTS_PATH, params={"identifier": identifier, "limit": 1})
        return len(_extract_items(data)) > 0

    def exists_by_email(self, email: str) -> bool:
        data = self.client.getJson(ACCOUNTS_PATH, params={"email": email, "limit": 1})
        return len(_extract_items(data)) > 0

    def canonical_role(self, role_id: str) -> str | None:
        status_code, data, body_snippet = self.client.requestAny("GET", f"{ROLES_PATH}/{quote(role_id, safe='')}")
        if status_code == 200:
            if isinstance(data, dict) and isinstance(data.get("id"), str) and data["id"]:
                return data["id"]
            return role_id
        if status_code == 404:
            return None
        raise ApiError(
            f"HTTP {status_code}",
            status_code=status_code,
            body_snippet=body_snippet,
            code=ErrorCode.from_status(status_code).value,
        )

    def role_exists(self, role_id: str) -> bool:
        return self.canonical_role(role_id) is not None

    def create_account(self, candidate: CandidateAccount, activate: bool) -> Any:
        """
        Контракт (вход/выход):
            - Вход: кандидат, признак активации.
            - Выход: id из ответа API.
        Ошибки/исключения:
            CreationError при любом статусе кроме 200/201 или ответе без id.
        """
        payload = {
            "identifier": candidate.identifier,
            "email": candidate.email,
            "init": candidate.email,
            "role": candidate.role,
            "status": 1 if activate else 0,
        }
        try:
            status_code, data, body_snippet = self.client.requestAny("POST", ACCOUNTS_PATH, json=payload)
        except ApiError as exc:
            raise CreationError(candidate.identifier, exc.message) from exc

        if status_code not in (200, 201):
            reason = f"HTTP {status_code}"
            if body_snippet:
                reason = f"{reason}: {truncateText(body_snippet, 200)}"
            raise CreationError(candidate.identifier, reason)
        account_id = data.get("id") if isinstance(data, dict) else None
        if account_id is None:
            raise CreationError(candidate.identifier, "response does not contain account id")
        return account_id


class ApiNotificationSender:
    """
    Назначение:
        NotificationSender поверх HTTP API: POST /api/accounts/{id}/notifications.
    """

    def __init__(self, client: DirectoryApiClient, template: str = WELCOME_TEMPLATE):
        self.client = client
        self.template = template

    def send_welcome(self, account_id: Any) -> None:
        path = f"{ACCOUNTS_PATH}/{quote(str(account_id), safe='')}/notifications"
        try:
            status_code, _data, body_snippet = self.client.requestAny("POST", path, json={"template": self.template})
        except ApiError as exc:
            raise NotificationError(account_id, exc.message) from exc
        if status_code not in (200, 201, 202, 204):
            reason = f"HTTP {status_code}"
            if body_snippet:
                reason = f"{reason}: {truncateText(body_snippet, 200)}"
            raise NotificationError(account_id, reason)


__all__ = ["ApiAccountDirectory", "ApiNotificationSender"]

from __future__ import annotations

import time
from typing import Any

import httpx

from userimport.errors import AppError


class ApiError(AppError):
    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        body_snippet: str | None = None,
        retryable: bool = False,
        details: dict | None = None,
        code: str | None = None,
    ):
        """
        Назначение:
            Исключение для ошибок HTTP/API уровня DirectoryApiClient.
        Контракт:
            - code: строковый код (HTTP_*, NETWORK_ERROR, INVALID_JSON).
            - status_code/body_snippet используются для диагностики.
        """
        super().__init__(
            category="api",
            code=code or (f"HTTP_{status_code}" if status_code else "API_ERROR"),
            message=message,
            retryable=retryable,
            details=details or {},
        )
        self.status_code = status_code
        self.body_snippet = body_snippet


class DirectoryApiClient:
    def __init__(
        self,
        baseUrl: str,
        username: str,
        password: str,
        timeoutSeconds: float = 20.0,
        tlsSkipVerify: bool = False,
        caFile: str | None = None,
        retries: int = 3,
        retryBackoffSeconds: float = 0.5,
        transport: httpx.BaseTransport | None = None,
    ):
        """
        Назначение:
            HTTP-клиент удалённой службы учётных записей с простой политикой ретраев.
        Контракт:
            - baseUrl, username, password обязательны.
            - retries/retryBackoffSeconds управляют повторными попытками (429, 5xx, сеть).
        """
        verify: bool | str = True
        if tlsSkipVerify:
            verify = False
        elif caFile:
            verify = caFile

        self.baseUrl = baseUrl.rstrip("/")
        self.retries = retries
        self.retryBackoffSeconds = retryBackoffSeconds
        self.retry_attempts = 0

        self.client = httpx.Client(
            base_url=self.baseUrl,
            auth=(username, password),
            timeout=timeoutSeconds,
            verify=verify,
            transport=transport,
        )

    def close(self) -> None:
        self.client.close()

    def getRetryAttempts(self) -> int:
        """Количество выполненных повторных попыток."""
        return self.retry_attempts

    def _headers(self) -> dict[str, str]:
        return {"accept": "application/json"}

    def _should_retry(self, resp: httpx.Response) -> bool:
        """Повторяем при 429 и 5xx."""
        if resp.status_code == 429:
            return True
        return 500 <= resp.status_code <= 599

    def _sleep_backoff(self, attempt: int) -> None:
        delay = self.retryBackoffSeconds * (2 ** attempt)
        if delay > 0:
            time.sleep(delay)

    def requestAny(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
        json: Any | None = None,
    ) -> tuple[int, Any | None, str | None]:
        """
        Назначение:
            Запрос без проверки ожидаемых статусов.

        Выходные данные:
            (status_code, response_json_or_text, body_snippet)

        Ошибки/исключения:
            ApiError(NETWORK_ERROR), когда ретраи сетевых ошибок исчерпаны.
        """
        attempt = 0
        while True:
            try:
                resp = self.client.request(
                    method,
                    path,
                    params=params or None,
                    headers=self._headers(),
                    json=json,
                )
            except (httpx.TimeoutException, httpx.TransportError) as exc:
                if attempt >= self.retries:
                    raise ApiError("Network error", status_code=None, retryable=False, code="NETWORK_ERROR") from exc
                self.retry_attempts += 1
                self._sleep_backoff(attempt)
                attempt += 1
                continue

            if self._should_retry(resp) and attempt < self.retries:
                self.retry_attempts += 1
                self._sleep_backoff(attempt)
                attempt += 1
                continue

            body_snippet = resp.text[:200] if resp.text else None
            if resp.text:
                try:
                    return resp.status_code, resp.json(), body_snippet
                except ValueError:
                    return resp.status_code, resp.text, body_snippet
            return resp.status_code, None, body_snippet

    def getJson(self, path: str, params: dict[str, Any] | None = None) -> Any:
        """GET с ретраями; ожидает 200 и JSON, иначе ApiError."""
        status_code, data, body_snippet = self.requestAny("GET", path, params=params)
        if status_code != 200:
            raise ApiError(
                f"HTTP {status_code}",
                status_code=status_code,
                body_snippet=body_snippet,
                retryable=status_code == 429 or status_code >= 500,
                details={"body_snippet": body_snippet},
            )
        if data is not None and not isinstance(data, (dict, list)):
            raise ApiError("Invalid JSON response", status_code=status_code, code="INVALID_JSON")
        return data


__all__ = ["ApiError", "DirectoryApiClient"]

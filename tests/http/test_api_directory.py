from __future__ import annotations

import json

import httpx
import pytest

from userimport.domain.exceptions import CreationError, NotificationError
from userimport.domain.models import CandidateAccount
from userimport.infra.http.api_directory import ApiAccountDirectory, ApiNotificationSender
from userimport.infra.http.directory_client import ApiError, DirectoryApiClient


def make_client(transport: httpx.BaseTransport, *, retries: int = 0) -> DirectoryApiClient:
    return DirectoryApiClient(
        baseUrl="https://directory.local",
        username="user",
        password="pass",
        retries=retries,
        retryBackoffSeconds=0,
        transport=transport,
    )


def test_exists_by_identifier_queries_accounts():
    def responder(request: httpx.Request) -> httpx.Response:
        assert request.method == "GET"
        assert request.url.path == "/api/accounts"
        assert request.url.params["identifier"] == "jdoe"
        assert request.headers["authorization"].startswith("Basic ")
        return httpx.Response(200, json={"items": [{"id": 1}]})

    directory = ApiAccountDirectory(make_client(httpx.MockTransport(responder)))
    assert directory.exists_by_identifier("jdoe")


def test_exists_by_email_accepts_plain_list():
    def responder(request: httpx.Request) -> httpx.Response:
        assert request.url.params["email"] == "john@example.com"
        return httpx.Response(200, json=[])

    directory = ApiAccountDirectory(make_client(httpx.MockTransport(responder)))
    assert not directory.exists_by_email("john@example.com")


def test_lookup_without_items_raises():
    def responder(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"unexpected": True})

    directory = ApiAccountDirectory(make_client(httpx.MockTransport(responder)))
    with pytest.raises(ApiError) as exc:
        directory.exists_by_identifier("jdoe")
    assert exc.value.code == "INVALID_JSON"


def test_canonical_role_uses_id_from_response():
    def responder(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/api/roles/EDITOR"
        return httpx.Response(200, json={"id": "editor", "label": "Editor"})

    directory = ApiAccountDirectory(make_client(httpx.MockTransport(responder)))
    assert directory.canonical_role("EDITOR") == "editor"


def test_canonical_role_falls_back_to_requested_id_and_none_on_404():
    def responder(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/editor"):
            return httpx.Response(200, json={"label": "Editor"})
        return httpx.Response(404, json={"error": "not found"})

    directory = ApiAccountDirectory(make_client(httpx.MockTransport(responder)))
    assert directory.canonical_role("editor") == "editor"
    assert directory.canonical_role("ghost") is None


@pytest.mark.parametrize("status,expected", [(200, True), (404, False)])
def test_role_exists(status, expected):
    def responder(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/api/roles/editor"
        return httpx.Response(status, json={"id": "editor"} if status == 200 else {"error": "not found"})

    directory = ApiAccountDirectory(make_client(httpx.MockTransport(responder)))
    assert directory.role_exists("editor") is expected


def test_role_exists_raises_on_server_error():
    def responder(request: httpx.Request) -> httpx.Response:
        return httpx.Response(403, text="forbidden")

    directory = ApiAccountDirectory(make_client(httpx.MockTransport(responder)))
    with pytest.raises(ApiError) as exc:
        directory.role_exists("editor")
    assert exc.value.code == "FORBIDDEN"


def test_create_account_posts_payload_and_returns_id():
    seen = {}

    def responder(request: httpx.Request) -> httpx.Response:
        seen["body"] = json.loads(request.content.decode("utf-8"))
        assert request.method == "POST"
        return httpx.Response(201, json={"id": 42})

    directory = ApiAccountDirectory(make_client(httpx.MockTransport(responder)))
    account_id = directory.create_account(
        CandidateAccount(identifier="jdoe", email="john@example.com", role="editor"), activate=False
    )

    assert account_id == 42
    assert seen["body"] == {
        "identifier": "jdoe",
        "email": "john@example.com",
        "init": "john@example.com",
        "role": "editor",
        "status": 0,
    }


def test_create_account_conflict_becomes_creation_error():
    def responder(request: httpx.Request) -> httpx.Response:
        return httpx.Response(409, json={"error": "identifier taken"})

    directory = ApiAccountDirectory(make_client(httpx.MockTransport(responder)))
    with pytest.raises(CreationError) as exc:
        directory.create_account(CandidateAccount("jdoe", "john@example.com", "editor"), activate=True)
    assert exc.value.message.startswith("Failed to create account jdoe: HTTP 409")


def test_create_account_network_failure_after_retries():
    calls = {"count": 0}

    def responder(request: httpx.Request) -> httpx.Response:
        calls["count"] += 1
        raise httpx.ConnectError("boom", request=request)

    client = make_client(httpx.MockTransport(responder), retries=2)
    directory = ApiAccountDirectory(client)
    with pytest.raises(CreationError) as exc:
        directory.create_account(CandidateAccount("jdoe", "john@example.com", "editor"), activate=True)

    assert "Network error" in exc.value.message
    assert calls["count"] == 3
    assert client.getRetryAttempts() == 2


def test_get_json_retries_on_503_then_succeeds():
    calls = {"count": 0}

    def responder(request: httpx.Request) -> httpx.Response:
        calls["count"] += 1
        if calls["count"] == 1:
            return httpx.Response(503, text="busy")
        return httpx.Response(200, json={"items": []})

    client = make_client(httpx.MockTransport(responder), retries=1)
    assert client.getJson("/api/accounts") == {"items": []}
    assert client.getRetryAttempts() == 1


def test_notification_sender_posts_template():
    def responder(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/api/accounts/42/notifications"
        assert json.loads(request.content.decode("utf-8")) == {"template": "register_admin_created"}
        return httpx.Response(202)

    ApiNotificationSender(make_client(httpx.MockTransport(responder))).send_welcome(42)


def test_notification_sender_error_status():
    def responder(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, text="mail down")

    sender = ApiNotificationSender(make_client(httpx.MockTransport(responder)))
    with pytest.raises(NotificationError) as exc:
        sender.send_welcome(42)
    assert "HTTP 500" in exc.value.message

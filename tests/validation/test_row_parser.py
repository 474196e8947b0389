import pytest

from userimport.domain.error_codes import ErrorCode
from userimport.domain.exceptions import ParseError
from userimport.domain.models import CandidateAccount
from userimport.domain.validation.row_parser import RowParser
from userimport.domain.validation.row_rules import resolve_role, split_email, validate_email, validate_identifier


class _DummyRoles:
    def __init__(self, roles=("authenticated", "editor")):
        self.roles = {role.lower(): role for role in roles}
        self.role_calls: list[str] = []

    def exists_by_identifier(self, identifier: str) -> bool:
        return False

    def exists_by_email(self, email: str) -> bool:
        return False

    def canonical_role(self, role_id: str):
        self.role_calls.append(role_id)
        return self.roles.get(role_id.lower())

    def role_exists(self, role_id: str) -> bool:
        return self.canonical_role(role_id) is not None

    def create_account(self, candidate, activate):
        raise AssertionError("parser must not create accounts")


def _parse(fields, default_role: str = "authenticated", roles=None):
    parser = RowParser(_DummyRoles() if roles is None else _DummyRoles(roles))
    return parser.parse(fields, 2, default_role)


def test_parse_valid_row_with_role():
    candidate = _parse(["  jdoe ", " john.doe@example.com ", " editor "])
    assert candidate == CandidateAccount(identifier="jdoe", email="john.doe@example.com", role="editor")


def test_parse_uses_default_role_when_column_missing_or_blank():
    assert _parse(["jdoe", "j@example.com"]).role == "authenticated"
    assert _parse(["jdoe", "j@example.com", "   "]).role == "authenticated"
    assert _parse(["jdoe", "j@example.com", ""], default_role="editor").role == "editor"


def test_parse_ignores_extra_columns():
    candidate = _parse(["jdoe", "j@example.com", "editor", "extra", "more"])
    assert candidate.role == "editor"


@pytest.mark.parametrize("fields", [[], ["jdoe"], [""]])
def test_parse_insufficient_fields(fields):
    with pytest.raises(ParseError) as exc:
        _parse(fields)
    assert exc.value.code == ErrorCode.INSUFFICIENT_FIELDS.value
    assert exc.value.message == "Insufficient data in row (expected at least identifier and email)"
    assert exc.value.row_number == 2


def test_parse_empty_identifier_checked_before_email():
    with pytest.raises(ParseError) as exc:
        _parse(["  ", ""])
    assert exc.value.code == ErrorCode.IDENTIFIER_EMPTY.value
    assert exc.value.message == "Identifier is empty"


def test_parse_empty_email():
    with pytest.raises(ParseError) as exc:
        _parse(["jdoe", "   "])
    assert exc.value.code == ErrorCode.EMAIL_EMPTY.value
    assert exc.value.message == "Email is empty"


def test_parse_invalid_email_checked_before_identifier():
    with pytest.raises(ParseError) as exc:
        _parse(["bad name!", "not-an-email"])
    assert exc.value.code == ErrorCode.INVALID_EMAIL.value
    assert exc.value.message == "Invalid email format: not-an-email"


def test_parse_invalid_identifier():
    with pytest.raises(ParseError) as exc:
        _parse(["john doe", "j@example.com"])
    assert exc.value.code == ErrorCode.INVALID_IDENTIFIER.value
    assert exc.value.message == "Invalid identifier format: john doe (only letters, numbers, @, ., _, - allowed)"


def test_parse_unknown_role_is_checked_last():
    roles = _DummyRoles()
    parser = RowParser(roles)
    with pytest.raises(ParseError) as exc:
        parser.parse(["jdoe", "j@example.com", "superadmin"], 5, "authenticated")
    assert exc.value.code == ErrorCode.UNKNOWN_ROLE.value
    assert exc.value.message == "Invalid role: superadmin"
    assert exc.value.row_number == 5
    assert roles.role_calls == ["superadmin"]


def test_parse_returns_role_in_directory_spelling():
    candidate = _parse(["jdoe", "j@example.com", "EDITOR"], roles=("authenticated", "Editor"))
    assert candidate.role == "Editor"


def test_parse_default_role_is_canonicalised():
    assert _parse(["jdoe", "j@example.com"], default_role="AUTHENTICATED").role == "authenticated"


def test_parse_unknown_default_role_is_reported():
    with pytest.raises(ParseError) as exc:
        _parse(["jdoe", "j@example.com"], default_role="ghost")
    assert exc.value.message == "Invalid role: ghost"


def test_parse_does_not_query_roles_for_invalid_rows():
    roles = _DummyRoles()
    with pytest.raises(ParseError):
        RowParser(roles).parse(["jdoe", "broken"], 2, "authenticated")
    assert roles.role_calls == []


@pytest.mark.parametrize(
    "value",
    ["jdoe", "john.doe", "j_doe-1", "user@corp", "A1"],
)
def test_identifier_allowed_characters(value):
    assert validate_identifier(value)


@pytest.mark.parametrize("value", ["john doe", "jdoe!", "ivan#1", "name/x", "имя"])
def test_identifier_rejected_characters(value):
    assert not validate_identifier(value)


@pytest.mark.parametrize(
    "value",
    ["a@example.com", "john.doe+tag@mail.example.org", "x_y@sub-domain.example.co"],
)
def test_email_accepted(value):
    assert validate_email(value)


@pytest.mark.parametrize(
    "value",
    [
        "plain",
        "a@@example.com",
        "a@b@example.com",
        "@example.com",
        "a@",
        "a@localhost",
        ".a@example.com",
        "a..b@example.com",
        "a@-example.com",
        "a@example-.com",
        "a b@example.com",
        ("x" * 65) + "@example.com",
    ],
)
def test_email_rejected(value):
    assert not validate_email(value)


def test_resolve_role_and_split_email_helpers():
    assert resolve_role(["a", "b", None], "authenticated") == "authenticated"
    assert resolve_role(["a", "b", " editor "], "authenticated") == "editor"
    assert split_email("john.doe@example.com") == ("john.doe", "example.com")

from __future__ import annotations

import re
from typing import Sequence

IDENTIFIER_RE = re.compile(r"[A-Za-z0-9@._-]+")

# dot-atom: атомы из atext, разделённые одиночными точками
EMAIL_LOCAL_RE = re.compile(
    r"[A-Za-z0-9!#$%&'*+/=?^_`{|}~-]+(?:\.[A-Za-z0-9!#$%&'*+/=?^_`{|}~-]+)*"
)
DOMAIN_LABEL_RE = re.compile(r"[A-Za-z0-9](?:[A-Za-z0-9-]{0,61}[A-Za-z0-9])?")

MAX_LOCAL_LENGTH = 64
MAX_DOMAIN_LENGTH = 253

IDENTIFIER_FIELD = 0
EMAIL_FIELD = 1
ROLE_FIELD = 2
MIN_FIELDS = 2


def validate_identifier(value: str) -> bool:
    """
    Назначение:
        Проверяет идентификатор на допустимые символы: буквы, цифры, @ . _ -
    """
    return IDENTIFIER_RE.fullmatch(value) is not None


def validate_email(value: str) -> bool:
    """
    Назначение:
        Проверка адреса по практичному подмножеству RFC 5322.

    Алгоритм:
        - ровно один '@';
        - локальная часть: dot-atom, не длиннее 64;
        - домен: минимум две метки, метки без '-' по краям, не длиннее 253.
    """
    if value.count("@") != 1:
        return False
    local, domain = value.split("@")
    if not local or len(local) > MAX_LOCAL_LENGTH:
        return False
    if EMAIL_LOCAL_RE.fullmatch(local) is None:
        return False
    if not domain or len(domain) > MAX_DOMAIN_LENGTH:
        return False
    labels = domain.split(".")
    if len(labels) < 2:
        return False
    return all(DOMAIN_LABEL_RE.fullmatch(label) is not None for label in labels)


def field_at(raw_fields: Sequence[str | None], index: int) -> str | None:
    if index >= len(raw_fields):
        return None
    value = raw_fields[index]
    if value is None:
        return None
    return value.strip()


def resolve_role(raw_fields: Sequence[str | None], default_role: str) -> str:
    """
    Назначение:
        Роль из третьего поля, если оно есть и непустое, иначе роль по умолчанию.
    """
    role = field_at(raw_fields, ROLE_FIELD)
    if role:
        return role
    return default_role


def split_email(email: str) -> tuple[str, str]:
    """Делит адрес на (local, domain) по последнему '@'."""
    local, _, domain = email.rpartition("@")
    return local, domain

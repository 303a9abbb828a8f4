from __future__ import annotations

import os
from collections.abc import Callable
from dataclasses import dataclass

from sqlalchemy.engine import URL, make_url

LOCAL_TEST_HOSTS = frozenset({"localhost", "127.0.0.1", "::1", "postgres", "lms_quiz_postgres"})
EXTRA_HOSTS_ENV = "LMS_QUIZ_TEST_DB_HOSTS"


@dataclass(frozen=True, slots=True)
class IntegrationDbSafetyResult:
    is_safe: bool
    reason: str
    database_name: str
    host: str


def _allowed_hosts() -> frozenset[str]:
    extra = {item.strip().lower() for item in os.environ.get(EXTRA_HOSTS_ENV, "").split(",")}
    return LOCAL_TEST_HOSTS | {item for item in extra if item}


_RULES: tuple[tuple[Callable[[URL, str, str], bool], str], ...] = (
    (
        lambda url, name, host: url.get_backend_name() == "postgresql",
        "Integration tests support only PostgreSQL test databases.",
    ),
    (lambda url, name, host: bool(name), "Database name is empty."),
    (
        lambda url, name, host: "test" in name.lower(),
        "Database name must clearly indicate a test database (contain 'test').",
    ),
    (
        lambda url, name, host: host in _allowed_hosts(),
        "Host is not in allowed local integration-test hosts.",
    ),
)


def assess_integration_db_safety(database_url: str) -> IntegrationDbSafetyResult:
    url = make_url(database_url)
    name = (url.database or "").strip()
    host = (url.host or "").strip().lower()
    for check, reason in _RULES:
        if not check(url, name, host):
            return IntegrationDbSafetyResult(is_safe=False, reason=reason, database_name=name, host=host)
    return IntegrationDbSafetyResult(is_safe=True, reason="ok", database_name=name, host=host)


def assert_safe_integration_db(database_url: str) -> None:
    result = assess_integration_db_safety(database_url)
    if not result.is_safe:
        raise RuntimeError(
            "Refusing to run integration tests against a non-test database.\n"
            f"Reason: {result.reason}\n"
            f"Resolved DB: name='{result.database_name}' host='{result.host}'\n"
            "Required: use a dedicated local PostgreSQL test DB, e.g. 'lms_quiz_test', "
            f"or list extra hosts in {EXTRA_HOSTS_ENV}."
        )

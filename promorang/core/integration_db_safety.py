from __future__ import annotations

from sqlalchemy.engine import make_url

ALLOWED_TEST_DB_HOSTS = frozenset({"localhost", "127.0.0.1", "::1", "postgres", "promorang_postgres"})


def find_integration_db_problem(database_url: str) -> str | None:
    """Return why the URL must not be truncated by integration tests, or None when it is safe."""
    parsed = make_url(database_url)
    db_name = (parsed.database or "").strip()
    host = (parsed.host or "").strip().lower()

    if parsed.get_backend_name() != "postgresql":
        return "integration tests run only against PostgreSQL"
    if not db_name:
        return "database name is empty"
    if "test" not in db_name.lower():
        return f"database '{db_name}' does not look like a test database (name must contain 'test')"
    if host not in ALLOWED_TEST_DB_HOSTS:
        return f"host '{host}' is not a local integration-test host"
    return None


def assert_safe_integration_db(database_url: str) -> None:
    problem = find_integration_db_problem(database_url)
    if problem is None:
        return
    raise RuntimeError(
        f"Refusing to run destructive integration tests: {problem}. "
        "Point DATABASE_URL at a dedicated local database such as 'promorang_test'."
    )

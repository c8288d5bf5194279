import pytest
from sqlalchemy import text

from loginlab.auth.gateway import (
    CredentialStoreError,
    SafeCredentialGateway,
    UnsafeCredentialGateway,
)
from loginlab.infra.db import create_db_engine

ALWAYS_TRUE = "' OR '1'='1"


def _rows(engine):
    with engine.connect() as conn:
        return conn.execute(text("SELECT username, password FROM user ORDER BY username")).all()


@pytest.fixture(params=[UnsafeCredentialGateway, SafeCredentialGateway])
def gateway(request, engine):
    return request.param(engine)


@pytest.fixture()
def safe(engine):
    return SafeCredentialGateway(engine)


@pytest.fixture()
def unsafe(engine):
    return UnsafeCredentialGateway(engine)


def test_signup_stores_hash_not_plaintext(gateway, engine):
    gateway.signup("alice", "secret1")
    rows = _rows(engine)
    assert [r.username for r in rows] == ["alice"]
    assert rows[0].password != "secret1"
    assert rows[0].password.startswith("$argon2")


def test_login_with_correct_password(gateway):
    gateway.signup("alice", "secret1")
    user = gateway.login("alice", "secret1")
    assert user is not None
    assert user.username == "alice"


def test_login_unknown_user_returns_none(gateway):
    gateway.signup("alice", "secret1")
    assert gateway.login("bob", "secret1") is None


def test_duplicate_signup_is_a_store_error(gateway):
    gateway.signup("alice", "secret1")
    with pytest.raises(CredentialStoreError):
        gateway.signup("alice", "other")


def test_missing_table_is_a_store_error(gateway, tmp_path):
    bare = create_db_engine(f"sqlite:///{tmp_path / 'bare.db'}", pool_size=1)
    g = type(gateway)(bare)
    with pytest.raises(CredentialStoreError):
        g.login("alice", "secret1")
    with pytest.raises(CredentialStoreError):
        g.signup("alice", "secret1")
    bare.dispose()


# --- safe: values are data, never syntax ---


def test_safe_wrong_password_is_rejected(safe):
    safe.signup("alice", "secret1")
    assert safe.login("alice", "wrongpass") is None


def test_safe_login_ignores_always_true_predicate(safe):
    safe.signup("alice", "secret1")
    assert safe.login(ALWAYS_TRUE, "anything") is None
    assert safe.login("alice' --", "anything") is None


@pytest.mark.parametrize("username", ["o'brien", "x', 'planted'), ('mallory", "a; DROP TABLE user; --", '"; --'])
def test_safe_stores_metacharacters_literally(safe, engine, username):
    safe.signup(username, "secret1")
    assert [r.username for r in _rows(engine)] == [username]
    user = safe.login(username, "secret1")
    assert user is not None
    assert user.username == username


# --- unsafe: documented vulnerabilities ---


def test_unsafe_login_ignores_password(unsafe):
    unsafe.signup("alice", "secret1")
    user = unsafe.login("alice", "wrongpass")
    assert user is not None
    assert user.username == "alice"


def test_unsafe_login_accepts_always_true_predicate(unsafe):
    unsafe.signup("alice", "secret1")
    user = unsafe.login(ALWAYS_TRUE, "anything")
    assert user is not None
    assert user.username == "alice"


def test_unsafe_login_comment_out_rest_of_statement(unsafe):
    unsafe.signup("alice", "secret1")
    user = unsafe.login("alice' --", "anything")
    assert user is not None
    assert user.username == "alice"


def test_unsafe_signup_username_alters_statement(unsafe, safe, engine):
    # Closes the VALUES tuple and appends a second row with a chosen password.
    unsafe.signup("x', 'planted'), ('mallory", "secret1")
    rows = {r.username: r.password for r in _rows(engine)}
    assert set(rows) == {"x", "mallory"}
    assert rows["x"] == "planted"
    # The planted row is not a valid hash: only the unsafe gateway lets it in.
    assert safe.login("x", "planted") is None
    assert unsafe.login("x", "whatever").username == "x"


def test_unsafe_signup_with_quote_breaks_the_statement(unsafe, engine):
    with pytest.raises(CredentialStoreError):
        unsafe.signup("o'brien", "secret1")
    assert _rows(engine) == []


def test_unsafe_logs_the_statement(unsafe):
    from loguru import logger

    seen = []
    sink_id = logger.add(lambda m: seen.append(str(m)), level="INFO")
    try:
        unsafe.login("alice", "secret1")
    finally:
        logger.remove(sink_id)
    assert any("SELECT * FROM user WHERE username = 'alice'" in line for line in seen)

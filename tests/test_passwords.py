import pytest

from loginlab.auth.passwords import hash_password, verify_password


def test_hash_is_salted_and_not_plaintext():
    h1 = hash_password("secret1")
    h2 = hash_password("secret1")
    assert h1 != h2
    assert "secret1" not in h1
    assert h1.startswith("$argon2")


def test_verify_password_match_and_mismatch():
    h = hash_password("secret1")
    assert verify_password(h, "secret1") is True
    assert verify_password(h, "wrongpass") is False


def test_verify_password_never_raises_on_bad_input():
    assert verify_password("", "secret1") is False
    assert verify_password(hash_password("x"), "") is False
    assert verify_password("planted", "planted") is False


def test_hash_password_rejects_empty():
    with pytest.raises(ValueError):
        hash_password("")

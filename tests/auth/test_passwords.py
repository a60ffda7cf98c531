"""Tests for auth/passwords.py - keyed HMAC-SHA512 password hashing."""

import base64

from auth.passwords import SALT_BYTES, hash_password, verify_password


class TestHashPassword:

    def test_returns_base64_hash_and_salt(self):
        password_hash, salt = hash_password("secret")

        assert len(base64.b64decode(password_hash)) == 64  # SHA-512 digest
        assert len(base64.b64decode(salt)) == SALT_BYTES

    def test_same_password_gets_fresh_salt(self):
        """Equal passwords never produce equal stored values."""
        first = hash_password("secret")
        second = hash_password("secret")

        assert first[0] != second[0]
        assert first[1] != second[1]


class TestVerifyPassword:

    def test_round_trip(self):
        password_hash, salt = hash_password("correct horse")
        assert verify_password("correct horse", password_hash, salt) is True

    def test_wrong_password(self):
        password_hash, salt = hash_password("correct horse")
        assert verify_password("wrong horse", password_hash, salt) is False

    def test_wrong_salt(self):
        password_hash, _ = hash_password("correct horse")
        _, other_salt = hash_password("correct horse")
        assert verify_password("correct horse", password_hash, other_salt) is False

    def test_unicode_password(self):
        password_hash, salt = hash_password("pässwörd-密码")
        assert verify_password("pässwörd-密码", password_hash, salt) is True

    def test_malformed_stored_values_never_match(self):
        assert verify_password("secret", "not base64!!", "also not") is False

"""Unit tests for the bcrypt credential hasher."""

from __future__ import annotations

import string

import pytest

from authsvc.infra.security.bcrypt_hasher import (
    RANDOM_PASSWORD_SYMBOLS,
    BcryptCredentialHasher,
    generate_random_password,
)
from authsvc.services._shared.errors import HashingError, VerificationError


@pytest.fixture()
def hasher() -> BcryptCredentialHasher:
    return BcryptCredentialHasher(rounds=4)


class TestHashAndVerify:
    def test_roundtrip_verifies(self, hasher):
        hashed = hasher.hash("Secure123!")
        assert hasher.verify("Secure123!", hashed) is True

    def test_wrong_password_is_false(self, hasher):
        hashed = hasher.hash("Secure123!")
        assert hasher.verify("Secure123?", hashed) is False

    def test_salted_outputs_differ(self, hasher):
        assert hasher.hash("Secure123!") != hasher.hash("Secure123!")

    def test_hash_embeds_cost_factor(self, hasher):
        assert hasher.hash("Secure123!").startswith("$2b$04$")

    @pytest.mark.parametrize("corrupt", ["", "not-a-hash", "$2b$04$short"])
    def test_corrupt_hash_is_false_not_error(self, hasher, corrupt):
        assert hasher.verify("Secure123!", corrupt) is False

    def test_non_string_plaintext_raises_hashing_error(self, hasher):
        with pytest.raises(HashingError):
            hasher.hash(None)  # type: ignore[arg-type]

    def test_non_string_hash_raises_verification_error(self, hasher):
        with pytest.raises(VerificationError):
            hasher.verify("Secure123!", None)  # type: ignore[arg-type]

    def test_long_passwords_are_accepted(self, hasher):
        long_pw = "Aa1!" * 40
        assert hasher.verify(long_pw, hasher.hash(long_pw)) is True

    def test_dummy_verify_returns_none(self, hasher):
        assert hasher.dummy_verify("whatever") is None
        # Second call reuses the cached dummy hash
        assert hasher.dummy_verify("whatever") is None

    @pytest.mark.parametrize("rounds", [3, 32])
    def test_rejects_out_of_range_cost(self, rounds):
        with pytest.raises(ValueError):
            BcryptCredentialHasher(rounds=rounds)


class TestGenerateRandomPassword:
    def test_default_length(self):
        assert len(generate_random_password()) == 12

    @pytest.mark.parametrize("length", [4, 5, 16, 64])
    def test_contains_every_class(self, length):
        pw = generate_random_password(length)
        assert len(pw) == length
        assert any(c in string.ascii_lowercase for c in pw)
        assert any(c in string.ascii_uppercase for c in pw)
        assert any(c in string.digits for c in pw)
        assert any(c in RANDOM_PASSWORD_SYMBOLS for c in pw)

    def test_below_minimum_length_raises(self):
        with pytest.raises(ValueError):
            generate_random_password(3)

    def test_exposed_on_hasher(self, hasher):
        assert len(hasher.generate_random_password(8)) == 8

    def test_outputs_vary(self):
        assert len({generate_random_password(16) for _ in range(20)}) > 1

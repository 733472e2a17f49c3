"""
Tests for the salt and PBKDF2 primitives.

Coverage:
    - Known reference vector
    - Determinism and salt composition order
    - Sensitivity to each input
    - Output shape for empty and long passwords
    - Fresh randomness on every salt generation
"""

import re

import pytest

import crypto_utils
from crypto_utils import (
    compose_salt,
    credentials_match,
    derive_credential,
    hex_upper,
    new_salt_component,
)
from errors import RandomSourceError


HEX64 = re.compile(r"^[0-9A-F]{64}$")

# PBKDF2-HMAC-SHA256, 100000 iterations, 32 bytes, salt b"53414C54bob@example.com"
REFERENCE_HASH = "8BB9455D5223E0FE4F67922BFB359312ADA64DD178D65002E1D0892978749FE4"


class TestComposeSalt:

    def test_component_comes_first(self):
        assert compose_salt("DEADBEEF", "alice") == b"DEADBEEFalice"
        assert compose_salt("DEADBEEF", "alice") != b"aliceDEADBEEF"

    def test_empty_identifier_is_component_alone(self):
        assert compose_salt("DEADBEEF", "") == b"DEADBEEF"

    def test_utf8_encoding(self):
        assert compose_salt("AB", "zoë@example.com") == b"AB" + "zoë@example.com".encode("utf-8")


class TestDeriveCredential:

    def test_reference_vector(self):
        assert derive_credential("53414C54", "bob@example.com", "correct horse battery staple") == REFERENCE_HASH

    def test_deterministic(self):
        first = derive_credential("DEADBEEF", "alice@example.com", "hunter2")
        second = derive_credential("DEADBEEF", "alice@example.com", "hunter2")
        assert first == second

    def test_single_character_changes_output(self):
        base = derive_credential("DEADBEEF", "alice@example.com", "hunter2")
        variants = {
            derive_credential("DEADBEEE", "alice@example.com", "hunter2"),
            derive_credential("DEADBEEF", "alice@example.co", "hunter2"),
            derive_credential("DEADBEEF", "alice@example.com", "hunter3"),
        }
        assert base not in variants
        assert len(variants) == 3

    def test_boundary_between_component_and_identifier_matters_only_as_bytes(self):
        # the full salt is a plain concatenation
        assert derive_credential("DEADBEEF", "alice", "pw") == derive_credential("DEADBEEFal", "ice", "pw")

    @pytest.mark.parametrize("password", ["", "x" * 2048])
    def test_output_shape(self, password):
        assert HEX64.match(derive_credential("DEADBEEF", "alice@example.com", password))


class TestNewSaltComponent:

    def test_shape(self):
        assert HEX64.match(new_salt_component())

    def test_not_repeated(self):
        assert new_salt_component() != new_salt_component()

    def test_random_source_failure(self, monkeypatch):
        def broken(n):
            raise OSError("no entropy")

        monkeypatch.setattr(crypto_utils.os, "urandom", broken)
        with pytest.raises(RandomSourceError, match="no entropy"):
            new_salt_component()


class TestHelpers:

    def test_hex_upper(self):
        assert hex_upper(b"SALT") == "53414C54"

    def test_credentials_match(self):
        assert credentials_match(REFERENCE_HASH, REFERENCE_HASH)
        assert credentials_match(REFERENCE_HASH, REFERENCE_HASH.lower())
        assert not credentials_match(REFERENCE_HASH, "0" * 64)
        assert not credentials_match(REFERENCE_HASH, "")

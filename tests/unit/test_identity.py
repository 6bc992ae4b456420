# SPDX-License-Identifier: MIT
"""Tests for the identity module."""

import string
from unittest.mock import patch

import pytest

from cache_relay.exceptions import FilesystemUnavailableError
from cache_relay.identity import IdentityProvider, generate_identity


class TestGenerateIdentity:
    """Test cases for generate_identity."""

    def test_generates_alphanumeric_token(self):
        token = generate_identity()
        assert len(token) >= 32
        assert all(c in string.ascii_letters + string.digits for c in token)

    def test_tokens_are_random(self):
        assert generate_identity() != generate_identity()

    def test_rejects_short_length(self):
        with pytest.raises(ValueError, match="at least 32"):
            generate_identity(16)


class TestIdentityProvider:
    """Test cases for IdentityProvider."""

    def test_creates_and_persists_identity(self, tmp_path):
        identity_file = tmp_path / "nested" / "cache.instance-id"
        provider = IdentityProvider(identity_file)

        identity = provider.get_identity()

        assert identity_file.read_text(encoding="utf-8") == identity
        assert len(identity) >= 32

    def test_reads_existing_identity(self, tmp_path):
        identity_file = tmp_path / "id"
        identity_file.write_text("x" * 40 + "\n", encoding="utf-8")

        assert IdentityProvider(identity_file).get_identity() == "x" * 40

    def test_regenerates_when_file_empty(self, tmp_path):
        identity_file = tmp_path / "id"
        identity_file.write_text("   \n", encoding="utf-8")

        identity = IdentityProvider(identity_file).get_identity()

        assert identity.strip()
        assert identity_file.read_text(encoding="utf-8") == identity

    def test_stable_across_providers(self, tmp_path):
        identity_file = tmp_path / "id"
        first = IdentityProvider(identity_file).get_identity()
        second = IdentityProvider(identity_file).get_identity()
        assert first == second

    def test_caches_value_in_process(self, tmp_path):
        identity_file = tmp_path / "id"
        provider = IdentityProvider(identity_file)
        first = provider.get_identity()

        identity_file.unlink()

        assert provider.get_identity() == first
        assert not identity_file.exists()

    def test_write_failure_raises_filesystem_error(self, tmp_path):
        provider = IdentityProvider(tmp_path / "id")
        with patch("pathlib.Path.write_text", side_effect=PermissionError("denied")):
            with pytest.raises(FilesystemUnavailableError, match="Cannot write"):
                provider.get_identity()

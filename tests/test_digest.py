"""Tests for digest module."""

import hashlib

import pytest

from smartwatch.config import MAX_HASHED_FILE_SIZE
from smartwatch.digest import digest, digest_or_raise
from smartwatch.models import DigestStatus


class TestDigest:
    """Tests for digest function."""

    def test_matches_sha256(self, tmp_path):
        path = tmp_path / "file.txt"
        path.write_bytes(b"hello world")

        result = digest(str(path))

        assert result.status == DigestStatus.OK
        assert result.fingerprint == hashlib.sha256(b"hello world").digest()

    def test_deterministic(self, tmp_path):
        path = tmp_path / "file.txt"
        path.write_bytes(b"same content")

        assert digest(str(path)) == digest(str(path))

    def test_one_more_byte_changes_fingerprint(self, tmp_path):
        path = tmp_path / "file.txt"
        path.write_bytes(b"content")
        before = digest(str(path))

        with open(path, "ab") as f:
            f.write(b"!")

        after = digest(str(path))
        assert before.ok and after.ok
        assert before.fingerprint != after.fingerprint

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty"
        path.write_bytes(b"")

        result = digest(str(path))

        assert result.fingerprint == hashlib.sha256(b"").digest()

    def test_directory_has_no_fingerprint(self, tmp_path):
        result = digest(str(tmp_path))

        assert result.status == DigestStatus.UNAVAILABLE
        assert result.reason == "directory"
        assert result.fingerprint is None
        assert result.error is None

    def test_file_at_cap_is_hashed(self, tmp_path):
        path = tmp_path / "exact"
        path.write_bytes(b"x" * 10)

        result = digest(str(path), max_size=10)

        assert result.fingerprint == hashlib.sha256(b"x" * 10).digest()

    def test_file_over_cap_has_no_fingerprint(self, tmp_path):
        path = tmp_path / "big"
        path.write_bytes(b"x" * 11)

        result = digest(str(path), max_size=10)

        assert result.status == DigestStatus.UNAVAILABLE
        assert result.reason == "too_large"
        assert result.fingerprint is None
        assert result.error is None

    def test_default_cap(self, tmp_path):
        path = tmp_path / "huge"
        with open(path, "wb") as f:
            f.truncate(MAX_HASHED_FILE_SIZE + 1)

        result = digest(str(path))

        assert result.status == DigestStatus.UNAVAILABLE
        assert result.reason == "too_large"

    def test_missing_file_is_an_error(self, tmp_path):
        result = digest(str(tmp_path / "missing"))

        assert result.status == DigestStatus.ERROR
        assert isinstance(result.error, FileNotFoundError)
        assert result.fingerprint is None

    def test_other_algorithm(self, tmp_path):
        path = tmp_path / "file.txt"
        path.write_bytes(b"abc")

        result = digest(str(path), algorithm="md5")

        assert result.fingerprint == hashlib.md5(b"abc").digest()


class TestDigestOrRaise:
    """Tests for digest_or_raise function."""

    def test_returns_bytes(self, tmp_path):
        path = tmp_path / "file.txt"
        path.write_bytes(b"abc")
        assert digest_or_raise(str(path)) == hashlib.sha256(b"abc").digest()

    def test_directory_returns_none(self, tmp_path):
        assert digest_or_raise(str(tmp_path)) is None

    def test_raises_on_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            digest_or_raise(str(tmp_path / "missing"))

"""Tests for digest helpers."""

import hashlib

import pytest

from ferryman.core.security import doc_id_digest, message_digest


class TestDigests:
    def test_message_digest_of_none_is_empty_string_digest(self) -> None:
        assert message_digest(None) == hashlib.sha256(b"").hexdigest()
        assert message_digest("") == message_digest(None)

    def test_message_digest(self) -> None:
        assert message_digest("boom") == hashlib.sha256(b"boom").hexdigest()

    def test_doc_id_digest_is_16_hex_prefix(self) -> None:
        digest = doc_id_digest("customer::42")

        assert digest == hashlib.sha256(b"customer::42").hexdigest()[:16]
        assert len(digest) == 16

    @pytest.mark.parametrize("length", [0, 65])
    def test_doc_id_digest_length_bounds(self, length: int) -> None:
        with pytest.raises(ValueError):
            doc_id_digest("x", length=length)

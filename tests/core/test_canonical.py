# tests/core/test_canonical.py
"""Tests for canonical JSON serialization and hashing."""

import hashlib
import math
from datetime import UTC, datetime, timedelta, timezone
from pathlib import Path

import pytest

from ferryman.contracts import DurabilityLevel
from ferryman.core.canonical import CANONICAL_VERSION, canonical_json, stable_hash


class TestCanonicalJson:
    def test_keys_sorted_without_whitespace(self) -> None:
        assert canonical_json({"b": 1, "a": [True, None]}) == '{"a":[true,null],"b":1}'

    def test_key_order_does_not_matter(self) -> None:
        assert canonical_json({"x": 1, "y": {"b": 2, "a": 1}}) == canonical_json({"y": {"a": 1, "b": 2}, "x": 1})

    def test_enums_use_value(self) -> None:
        assert canonical_json({"d": DurabilityLevel.MAJORITY}) == '{"d":"majority"}'

    def test_paths_use_posix_form(self) -> None:
        assert canonical_json({"p": Path("state") / "checkpoint.json"}) == '{"p":"state/checkpoint.json"}'

    def test_datetimes_normalized_to_utc(self) -> None:
        local = datetime(2024, 1, 1, 12, 0, tzinfo=timezone(timedelta(hours=2)))

        assert canonical_json(local) == canonical_json(datetime(2024, 1, 1, 10, 0, tzinfo=UTC))

    def test_naive_datetime_treated_as_utc(self) -> None:
        assert canonical_json(datetime(2024, 1, 1)) == '"2024-01-01T00:00:00+00:00"'

    def test_bytes_tagged(self) -> None:
        assert canonical_json(b"\x00\x01") == '{"__bytes__":"AAE="}'

    def test_tuples_are_lists(self) -> None:
        assert canonical_json((1, 2)) == "[1,2]"

    @pytest.mark.parametrize("value", [math.nan, math.inf, -math.inf])
    def test_non_finite_rejected(self, value: float) -> None:
        with pytest.raises(ValueError, match="non-finite"):
            canonical_json({"v": [value]})


class TestStableHash:
    def test_is_sha256_of_canonical_form(self) -> None:
        data = {"b": "x", "a": 1}

        assert stable_hash(data) == hashlib.sha256(canonical_json(data).encode()).hexdigest()

    def test_stable_across_key_order(self) -> None:
        assert stable_hash({"a": 1, "b": 2}) == stable_hash({"b": 2, "a": 1})

    def test_sensitive_to_values(self) -> None:
        assert stable_hash({"a": 1}) != stable_hash({"a": 2})

    def test_version_constant(self) -> None:
        assert CANONICAL_VERSION == "sha256-rfc8785-v1"

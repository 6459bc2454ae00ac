"""
Unit tests for the cache value codec.
"""

from datetime import date, datetime, timezone
from decimal import Decimal
from uuid import UUID

import pytest

from realty.services.cache import CacheCodec, CacheDecodeError, CacheEncodeError


@pytest.fixture
def codec():
    return CacheCodec()


class TestCacheCodec:
    def test_round_trip_nested_document(self, codec):
        value = {
            "properties": [{"id": "p1", "price": 1250000.5, "tags": ["sea", "view"]}],
            "total": 1,
            "is_verified": True,
            "notes": None,
            "title": "Résidence à Pune",
        }
        assert codec.decode(codec.encode(value)) == value

    def test_encode_produces_utf8_bytes(self, codec):
        data = codec.encode({"title": "Résidence"})
        assert isinstance(data, bytes)
        assert "Résidence".encode("utf-8") in data

    def test_encode_converts_rich_types(self, codec):
        value = {
            "id": UUID("12345678-1234-5678-1234-567812345678"),
            "available_from": date(2026, 1, 15),
            "created_at": datetime(2026, 1, 15, 8, 30, tzinfo=timezone.utc),
            "price": Decimal("10.5"),
        }
        decoded = codec.decode(codec.encode(value))
        assert decoded == {
            "id": "12345678-1234-5678-1234-567812345678",
            "available_from": "2026-01-15",
            "created_at": "2026-01-15T08:30:00+00:00",
            "price": 10.5,
        }

    def test_encode_unserializable_raises(self, codec):
        with pytest.raises(CacheEncodeError):
            codec.encode({"handle": object()})

    def test_decode_invalid_json_raises(self, codec):
        with pytest.raises(CacheDecodeError):
            codec.decode(b"{not json")

    def test_decode_invalid_utf8_raises(self, codec):
        with pytest.raises(CacheDecodeError):
            codec.decode(b"\xff\xfe\xfa")

    def test_decode_accepts_str(self, codec):
        assert codec.decode('{"a":1}') == {"a": 1}

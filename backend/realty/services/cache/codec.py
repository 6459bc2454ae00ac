"""
Cache value codec.

Encodes domain values to UTF-8 JSON bytes for the store and decodes them
back. Malformed stored bytes surface as CacheDecodeError, never as a raw
json or unicode error.
"""

import json
from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

from pydantic import BaseModel


class CacheCodecError(Exception):
    """Base class for codec failures."""


class CacheEncodeError(CacheCodecError):
    """Value cannot be represented as JSON."""


class CacheDecodeError(CacheCodecError):
    """Stored bytes are not valid UTF-8 JSON."""


def _default(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (set, frozenset, tuple)):
        return list(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


class CacheCodec:
    """JSON codec used for every cache entry."""

    encoding = "utf-8"

    def encode(self, value: Any) -> bytes:
        """
        Serialize value to bytes.

        Raises:
            CacheEncodeError: If value is not JSON-serializable
        """
        try:
            text = json.dumps(
                value, default=_default, separators=(",", ":"), ensure_ascii=False
            )
        except (TypeError, ValueError) as e:
            raise CacheEncodeError(str(e)) from e
        return text.encode(self.encoding)

    def decode(self, data: bytes) -> Any:
        """
        Deserialize bytes written by encode.

        Raises:
            CacheDecodeError: If data is not valid UTF-8 JSON
        """
        if isinstance(data, str):
            text = data
        else:
            try:
                text = bytes(data).decode(self.encoding)
            except (UnicodeDecodeError, TypeError) as e:
                raise CacheDecodeError(f"Invalid {self.encoding} payload") from e

        try:
            return json.loads(text)
        except ValueError as e:
            raise CacheDecodeError(f"Invalid JSON payload: {e}") from e

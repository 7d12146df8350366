"""
Purpose: Link-based sharing of a conversation.
A message list becomes a compact URL-safe token (compact JSON -> zlib ->
base64url without padding) carried in a query parameter.

Oversized conversations are refused rather than producing a link browsers
would truncate. Malformed tokens raise ShareDecodeError, which callers treat
as "ignore the link".

Testing: round trip on representative messages; size ceiling; garbage tokens.
"""

from __future__ import annotations
import base64
import binascii
import json
import zlib
from typing import Iterable, Mapping, Optional
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from ..models import Message

MAX_TOKEN_CHARS = 20000
SHARE_PARAM = "share"


class ShareTooLargeError(ValueError):
    """The encoded conversation exceeds the shareable size."""

    def __init__(self, size: int, limit: int) -> None:
        super().__init__(
            f"This chat is too long to share as a link ({size} characters, limit {limit})."
        )
        self.size = size
        self.limit = limit


class ShareDecodeError(ValueError):
    """The token is not a valid shared conversation."""


def encode(messages: Iterable[Message], *, max_chars: int = MAX_TOKEN_CHARS) -> str:
    raw = json.dumps(
        [m.to_dict() for m in messages], ensure_ascii=False, separators=(",", ":")
    ).encode("utf-8")
    token = base64.urlsafe_b64encode(zlib.compress(raw, 9)).decode("ascii").rstrip("=")
    if len(token) > max_chars:
        raise ShareTooLargeError(len(token), max_chars)
    return token


def decode(token: str) -> list[Message]:
    t = (token or "").strip()
    if not t:
        raise ShareDecodeError("Empty share token.")
    try:
        padded = t + "=" * (-len(t) % 4)
        raw = zlib.decompress(base64.urlsafe_b64decode(padded.encode("ascii")))
        data = json.loads(raw.decode("utf-8"))
    except (binascii.Error, zlib.error, UnicodeError, ValueError) as e:
        raise ShareDecodeError(f"Malformed share token: {e}") from e

    if not isinstance(data, list):
        raise ShareDecodeError("Share token does not contain a message list.")
    try:
        return [Message.from_dict(item) for item in data]
    except (ValueError, TypeError) as e:
        raise ShareDecodeError(f"Invalid shared message: {e}") from e


def build_share_url(base_url: str, token: str, *, param: str = SHARE_PARAM) -> str:
    """base_url with `param=token` set, replacing any previous value."""
    parts = urlsplit(base_url)
    query = [(k, v) for k, v in parse_qsl(parts.query, keep_blank_values=True) if k != param]
    query.append((param, token))
    return urlunsplit(parts._replace(query=urlencode(query)))


def extract_share_token(
    query_params: Mapping[str, object], *, param: str = SHARE_PARAM
) -> Optional[str]:
    value = query_params.get(param)
    if isinstance(value, (list, tuple)):
        value = value[0] if value else None
    if not isinstance(value, str) or not value.strip():
        return None
    return value.strip()

"""
Security Module - Token checks and input sanitation
===================================================

This module provides security-related functionality including:
- Shared token comparison
- Guest input sanitation
- Caller address normalisation
- Token masking for log output
"""

import hmac
import re
from typing import Any, Optional


# Runs of line breaks (including NEL and the Unicode separators) and tabs collapse to one space
_WHITESPACE_CONTROL = re.compile("[\r\n\t\x85\u2028\u2029]+")
# Any other C0 or C1 control character, plus DEL
_OTHER_CONTROL = re.compile("[\x00-\x08\x0b\x0c\x0e-\x1f\x7f-\x9f]")

IPV4_MAPPED_PREFIX = "::ffff:"


def tokens_match(provided: Optional[str], expected: str) -> bool:
    """
    Compare a presented token with the configured one in constant time.

    Both sides are trimmed. An empty expected token never matches.

    Args:
        provided: Token from the request header (may be None)
        expected: Configured shared token

    Returns:
        True if the tokens are equal
    """
    expected = (expected or "").strip()
    if not expected:
        return False
    provided = (provided or "").strip()
    return hmac.compare_digest(provided.encode("utf-8"), expected.encode("utf-8"))


def clean_field(value: Any, max_length: int) -> str:
    """
    Sanitize a free-text guest field.

    Whitespace control characters collapse to single spaces, other control
    characters are dropped, and the result is trimmed and truncated.

    Args:
        value: Raw field value from the request body
        max_length: Maximum length of the cleaned value

    Returns:
        Cleaned string, possibly empty

    Example:
        >>> clean_field("  Ada\\t\\tLovelace\\n", 40)
        'Ada Lovelace'
    """
    if value is None or (not isinstance(value, str) and not value):
        return ""
    text = value if isinstance(value, str) else str(value)
    text = text.strip()
    text = _WHITESPACE_CONTROL.sub(" ", text)
    text = _OTHER_CONTROL.sub("", text)
    return text[:max_length].strip()


def normalize_address(address: Optional[str]) -> str:
    """
    Normalise a peer address for use as a rate limit key.

    IPv4-mapped IPv6 addresses lose their ``::ffff:`` prefix so that the
    same client is counted once regardless of socket family.
    """
    if not address:
        return "unknown"
    if address.startswith(IPV4_MAPPED_PREFIX):
        return address[len(IPV4_MAPPED_PREFIX):]
    return address


def mask_token(token: str) -> str:
    """Mask a secret for display, keeping the last four characters."""
    if not token:
        return ""
    if len(token) <= 4:
        return "****"
    return "****" + token[-4:]

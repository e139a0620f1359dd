"""
Input Validators and Sanitizers

This module provides validation and sanitization functions for user inputs.
These functions help prevent security issues and ensure data integrity.

Security Considerations:
- Only absolute URLs with a scheme and a host are accepted; schemes can be narrowed
  with an allow-list
- Short codes are checked against the generator alphabet before any store lookup
- Length limits prevent DoS attacks
"""

from typing import Iterable, Optional
from urllib.parse import urlparse

MAX_SHORT_CODE_LENGTH = 32


def is_valid_url(
    url: str,
    allowed_schemes: Iterable[str] = (),
    max_length: int = 2048,
) -> bool:
    """
    Validate that a string is a well-formed absolute URL.

    Args:
        url: The URL string to validate
        allowed_schemes: Schemes accepted (compared case-insensitively); empty accepts any
        max_length: Maximum allowed length (default: 2048 per RFC 7230)

    Returns:
        True if the URL has a (permitted) scheme and a host, False otherwise
    """
    if not url or not isinstance(url, str):
        return False

    if len(url) > max_length or url != url.strip():
        return False

    try:
        result = urlparse(url)
        # Accessing .port raises for malformed ports like "http://host:abc"
        result.port
    except ValueError:
        return False

    if not result.scheme or not result.netloc or not result.hostname:
        return False

    allowed = {scheme.lower() for scheme in allowed_schemes}
    if allowed and result.scheme.lower() not in allowed:
        return False

    if any(ch.isspace() for ch in url):
        return False

    return True


def sanitize_short_code(short_code: str, alphabet: str) -> Optional[str]:
    """
    Validate short code format. Surrounding whitespace makes a code invalid.

    Args:
        short_code: The short code to sanitize
        alphabet: Characters a generated code may contain

    Returns:
        The short code if valid, None otherwise
    """
    if not short_code or not isinstance(short_code, str):
        return None

    # No generated code contains whitespace, so padding is not stripped
    if len(short_code) > MAX_SHORT_CODE_LENGTH:
        return None

    allowed = set(alphabet)
    if any(ch not in allowed for ch in short_code):
        return None

    return short_code

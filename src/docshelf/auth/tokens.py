"""Bearer token values and Authorization header parsing.

Learn: Tokens are opaque random strings, not JWTs. The value stored in the
tokens table is the only thing that makes a request authenticated, so it
comes from the `secrets` CSPRNG with at least 32 bytes of entropy.
"""

import base64
import binascii
import secrets
from typing import Optional

from docshelf.config import settings


def generate_token_value(nbytes: Optional[int] = None) -> str:
    """Mint a fresh URL-safe token value."""
    return secrets.token_urlsafe(nbytes or settings.token_bytes)


def parse_bearer_authorization(header: Optional[str]) -> Optional[str]:
    """Return the token from "Bearer <token>", or None if not a bearer header."""
    if not header:
        return None
    scheme, _, credentials = header.partition(" ")
    if scheme.lower() != "bearer":
        return None
    token = credentials.strip()
    return token or None


def parse_basic_authorization(header: Optional[str]) -> Optional[tuple[str, str]]:
    """Return (username, password) from "Basic <base64>", or None.

    The username slot carries the email address.
    """
    if not header:
        return None
    scheme, _, credentials = header.partition(" ")
    if scheme.lower() != "basic":
        return None
    try:
        decoded = base64.b64decode(credentials.strip(), validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError):
        return None
    username, sep, password = decoded.partition(":")
    if not sep:
        return None
    return username, password

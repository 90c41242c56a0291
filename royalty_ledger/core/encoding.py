# royalty_ledger/core/encoding.py
import base64
import binascii
from typing import Optional


def b64url_encode(data: bytes) -> str:
    """Unpadded base64url, the form keys and signatures travel in."""
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def b64url_decode(s: str, length: Optional[int] = None) -> bytes:
    """
    Decode unpadded base64url. Characters outside the URL-safe alphabet are
    rejected rather than skipped, and `length`, when given, is the exact
    number of bytes expected. Raises ValueError on any mismatch.
    """
    if set(s) & set("=+/"):
        raise ValueError("base64url data must be unpadded and use the URL-safe alphabet")
    try:
        data = base64.b64decode(s + "=" * (-len(s) % 4), altchars=b"-_", validate=True)
    except (binascii.Error, ValueError) as e:
        raise ValueError(f"Invalid base64url data: {e}") from e
    if length is not None and len(data) != length:
        raise ValueError(f"Expected {length} bytes, got {len(data)}")
    return data

"""Bearer token helpers for lanwake (itsdangerous)."""

import secrets
from typing import Optional

from itsdangerous import BadSignature, SignatureExpired, TimestampSigner

DEFAULT_PRINCIPAL = "admin"


def generate_secret() -> str:
    """Generate a cryptographically secure 32-byte hex secret for token signing."""
    return secrets.token_hex(32)


def make_token(secret: str, principal: str = DEFAULT_PRINCIPAL) -> str:
    """
    Create a signed bearer token for a principal.

    Args:
        secret: Hex secret from config (settings.secret).
        principal: Opaque identifier of the token holder.

    Returns:
        Token to send as ``Authorization: Bearer <token>``.
    """
    signer = TimestampSigner(secret)
    return signer.sign(principal).decode()


def verify_token(token: str, secret: str, max_age: Optional[int] = None) -> Optional[str]:
    """
    Verify a bearer token.

    Args:
        token: Token from the Authorization header.
        secret: Hex secret from config (settings.secret).
        max_age: Maximum age in seconds, or None for tokens that never expire.

    Returns:
        The authenticated principal, or None if the token is invalid or expired.
    """
    if not token or not secret:
        return None
    signer = TimestampSigner(secret)
    try:
        return signer.unsign(token, max_age=max_age).decode()
    except (BadSignature, SignatureExpired):
        return None

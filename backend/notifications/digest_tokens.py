"""
Signed tokens for digest links in emails.

A token carries the user id and the digest UUID so the link opens that one
digest without a password. Tokens are stateless (no database storage
needed) and expire after 30 days.
"""

import os
import hashlib
from typing import Optional
from itsdangerous import URLSafeTimedSerializer, BadSignature, SignatureExpired

DIGEST_SALT = "digest"


def _get_serializer() -> URLSafeTimedSerializer:
    """
    Get configured serializer for token generation and validation.

    Raises:
        ValueError: If DIGEST_LINK_SECRET_KEY environment variable not set
    """
    secret_key = os.getenv("DIGEST_LINK_SECRET_KEY")
    if not secret_key:
        raise ValueError("DIGEST_LINK_SECRET_KEY environment variable must be set.")

    return URLSafeTimedSerializer(
        secret_key,
        salt=DIGEST_SALT,
        signer_kwargs={"digest_method": hashlib.sha256},
    )


def generate_digest_token(user_id: str, digest_uuid: str) -> str:
    """
    Generate a signed token granting access to one digest.

    Args:
        user_id: Owner of the digest
        digest_uuid: UUID of the digest the link points to

    Returns:
        URL-safe token string (format: payload.timestamp.signature)

    Raises:
        ValueError: If DIGEST_LINK_SECRET_KEY not configured
    """
    serializer = _get_serializer()
    return serializer.dumps({"user_id": user_id, "digest_uuid": digest_uuid})


def validate_digest_token(token: str, max_age_days: int = 30) -> Optional[dict[str, str]]:
    """
    Validate a digest token and extract its payload.

    Never raises exceptions - returns None for any invalid token.

    Returns:
        {'user_id': ..., 'digest_uuid': ...} if valid, None if invalid or expired
    """
    try:
        serializer = _get_serializer()
        payload = serializer.loads(token, max_age=max_age_days * 24 * 60 * 60)
    except (BadSignature, SignatureExpired, ValueError, TypeError):
        return None

    if not isinstance(payload, dict) or not {"user_id", "digest_uuid"} <= payload.keys():
        return None
    return payload

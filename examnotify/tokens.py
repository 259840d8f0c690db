"""
Bearer token helpers.

Tokens are JWTs issued by the backend. The client never verifies them (it
does not hold the signing key); it only reads claims to learn who is logged
in and when the session ends.
"""

import logging
import time
from typing import Any, Dict, Optional

import jwt

logger = logging.getLogger("examnotify.tokens")

# Claims that may carry the user ID, in lookup order
SUBJECT_CLAIMS = ("sub", "userId", "id")


def decode_claims(token: Optional[str]) -> Optional[Dict[str, Any]]:
    """
    Decode the payload of a token without verifying it.

    Returns:
        Claims dictionary, or None if the token is missing or malformed
    """
    if not token:
        return None

    try:
        claims = jwt.decode(
            token,
            options={"verify_signature": False, "verify_exp": False},
            algorithms=["HS256", "HS384", "HS512", "RS256", "ES256"],
        )
    except jwt.PyJWTError as e:
        logger.debug(f"Could not decode token: {e}")
        return None

    return claims if isinstance(claims, dict) else None


def get_recipient_id(token: Optional[str]) -> Optional[str]:
    """Return the user ID carried by a token, or None."""
    claims = decode_claims(token)
    if not claims:
        return None

    for claim in SUBJECT_CLAIMS:
        value = claims.get(claim)
        if value not in (None, ""):
            return str(value)
    return None


def get_token_expiration_time(token: Optional[str]) -> Optional[float]:
    """Return the token expiry as a Unix timestamp in seconds, or None."""
    claims = decode_claims(token)
    if not claims:
        return None

    exp = claims.get("exp")
    if not isinstance(exp, (int, float)):
        return None
    return float(exp)


def is_token_expired(token: Optional[str], now: Optional[float] = None) -> bool:
    """
    Check whether a token is expired.

    A token without an expiry claim, or one that cannot be decoded, counts
    as expired.
    """
    expiration = get_token_expiration_time(token)
    if expiration is None:
        return True

    current = time.time() if now is None else now
    return expiration < int(current)


def get_token_time_remaining(token: Optional[str], now: Optional[float] = None) -> float:
    """Seconds until the token expires, never negative."""
    expiration = get_token_expiration_time(token)
    if expiration is None:
        return 0.0

    current = time.time() if now is None else now
    return max(expiration - current, 0.0)

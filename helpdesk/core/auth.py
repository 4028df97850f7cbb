"""
Password hashing and session token utilities.

WHY: This module owns every piece of credential material the helpdesk
handles:
1. Password hashing and constant-time verification with bcrypt
2. A dummy verification for unknown usernames, so the cost of "no such
   user" matches the cost of "wrong password"
3. Signing and decoding the session token that points at a server-side
   session row

Nothing in here touches the database; the token is only a signed pointer
and the session row decides whether it is still honored.
"""

from datetime import datetime
from typing import Any, Dict

from jose import jwt, JWTError
from passlib.context import CryptContext

from helpdesk.core.config import settings
from helpdesk.core.exceptions import AuthenticationError


# Password hashing context
# WHY: Rounds come from settings so the test suite can hash cheaply while
# production keeps bcrypt's default cost.
pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=settings.BCRYPT_ROUNDS,
)


# ============================================================================
# Password Hashing
# ============================================================================


def hash_password(password: str) -> str:
    """
    Hash a password using bcrypt.

    Args:
        password: Plain text password

    Returns:
        Hashed password (60 characters, includes salt and cost factor)
    """
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    Verify a password against its hash.

    WHY: passlib compares digests in constant time, so the comparison itself
    leaks nothing about how much of the password matched.

    Args:
        plain_password: Password provided by user
        hashed_password: Hashed password from database

    Returns:
        True if password matches, False otherwise
    """
    return pwd_context.verify(plain_password, hashed_password)


def dummy_verify_password() -> bool:
    """
    Spend the same time as a real verification, then fail.

    WHY: Called when the username does not exist. passlib verifies a fixed
    secret against a placeholder hash built with the context's own scheme
    and rounds, so the wall-clock cost matches verify_password on a real
    account and response timing cannot be used to enumerate usernames.

    Returns:
        Always False
    """
    return pwd_context.dummy_verify()


# ============================================================================
# Session Tokens
# ============================================================================


def create_session_token(
    session_id: str,
    principal: Dict[str, Any],
    expires_at: datetime,
) -> str:
    """
    Create a signed token for a server-side session.

    Token includes:
    - sid: Session row id (the token is useless once the row is gone)
    - sub: Account id
    - username, email, role: The minimal session principal
    - exp / iat: Expiry and issue time

    Args:
        session_id: Primary key of the session row
        principal: Session principal (id, username, email, role)
        expires_at: Session expiry, mirrored into the exp claim

    Returns:
        JWT token string

    Security Notes:
        - NEVER include passwords or hashes in the principal
    """
    claims = {
        "sid": session_id,
        "sub": str(principal["id"]),
        "username": principal["username"],
        "email": principal["email"],
        "role": principal["role"],
        "exp": expires_at,
        "iat": datetime.utcnow(),
    }
    return jwt.encode(claims, settings.SESSION_SECRET, algorithm=settings.SESSION_ALGORITHM)


def decode_session_token(token: str) -> Dict[str, Any]:
    """
    Verify and decode a session token.

    Args:
        token: JWT token string

    Returns:
        Decoded claims

    Raises:
        AuthenticationError: If the token is expired, malformed, badly signed
            or missing the session id
    """
    try:
        claims = jwt.decode(
            token,
            settings.SESSION_SECRET,
            algorithms=[settings.SESSION_ALGORITHM],
        )
    except jwt.ExpiredSignatureError:
        raise AuthenticationError(reason="token_expired")
    except JWTError:
        raise AuthenticationError(reason="token_invalid")

    if not claims.get("sid") or not claims.get("sub"):
        raise AuthenticationError(reason="token_incomplete")

    return claims

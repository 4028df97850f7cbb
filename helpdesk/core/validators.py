"""
Credential format rules shared by request schemas and services.
"""

import re
from typing import List

from helpdesk.core.constants import (
    PASSWORD_MIN_LENGTH,
    PASSWORD_SPECIAL_CHARACTERS,
    USERNAME_MAX_LENGTH,
    USERNAME_MIN_LENGTH,
    USERNAME_PATTERN,
)


def password_policy_errors(password: str) -> List[str]:
    """
    Check a password against the account password policy.

    Args:
        password: Candidate password

    Returns:
        List of violated rules; empty when the password is acceptable
    """
    errors = []

    if len(password) < PASSWORD_MIN_LENGTH:
        errors.append(f"Password must be at least {PASSWORD_MIN_LENGTH} characters")

    if not any(c.isupper() for c in password):
        errors.append("Password must contain at least one uppercase letter")

    if not any(c.islower() for c in password):
        errors.append("Password must contain at least one lowercase letter")

    if not any(c.isdigit() for c in password):
        errors.append("Password must contain at least one digit")

    if not re.search(PASSWORD_SPECIAL_CHARACTERS, password):
        errors.append("Password must contain at least one special character")

    return errors


def username_errors(username: str) -> List[str]:
    errors = []
    if not USERNAME_MIN_LENGTH <= len(username) <= USERNAME_MAX_LENGTH:
        errors.append(
            f"Username must be between {USERNAME_MIN_LENGTH} and {USERNAME_MAX_LENGTH} characters"
        )
    if not re.match(USERNAME_PATTERN, username):
        errors.append("Username may only contain letters, numbers and underscores")
    return errors

"""
Shared utility functions for authentication and security.

This module provides JWT token generation, password hashing and the
institution email rule used at signup and signin.
"""

from passlib.context import CryptContext
from jose import JWTError, jwt
from datetime import datetime, timedelta
from typing import Optional
import html
import os
import re

SECRET_KEY = os.getenv("SECRET_KEY", "uniraum-secret-key-change-in-production")
ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", 24 * 60))
ALLOWED_EMAIL_DOMAIN = os.getenv("ALLOWED_EMAIL_DOMAIN", "ostfalia.de")

EMAIL_PATTERN = re.compile(r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$')

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    Verify a password against its hash.

    Example:
        >>> hashed = get_password_hash("mypassword")
        >>> verify_password("mypassword", hashed)
        True
    """
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    """Hash a password."""
    return pwd_context.hash(password)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """
    Create a JWT access token.

    Args:
        data (dict): Claims to encode, usually sub (username) and role
        expires_delta (timedelta, optional): Token lifetime

    Returns:
        str: JWT token
    """
    to_encode = data.copy()
    if expires_delta:
        expire = datetime.utcnow() + expires_delta
    else:
        expire = datetime.utcnow() + timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)

    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)


def decode_access_token(token: str) -> Optional[dict]:
    """
    Decode a JWT access token.

    Returns:
        dict: Decoded claims, or None if the token is invalid or expired
    """
    try:
        return jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError:
        return None


def sanitize_input(input_str: Optional[str]) -> str:
    """
    Escape user supplied text before storing it.

    Example:
        >>> sanitize_input("<b>Lab</b>")
        '&lt;b&gt;Lab&lt;/b&gt;'
    """
    if input_str is None:
        return ""
    return html.escape(str(input_str).strip())


def validate_email(email: str) -> bool:
    """
    Validate email format.

    Example:
        >>> validate_email("user@ostfalia.de")
        True
        >>> validate_email("invalid-email")
        False
    """
    return bool(EMAIL_PATTERN.match(email or ""))


def is_institution_email(email: str) -> bool:
    """
    Check that an email belongs to the institution domain.

    Example:
        >>> is_institution_email("student@ostfalia.de")
        True
        >>> is_institution_email("student@gmail.com")
        False
    """
    return validate_email(email) and email.lower().endswith(f"@{ALLOWED_EMAIL_DOMAIN.lower()}")

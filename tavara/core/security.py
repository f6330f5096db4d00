"""
Tavara.care Coordination Service - Security Module

API key authentication, free-text sanitisation and
the security headers added to every response.
"""

import secrets
from typing import Optional
from fastapi import HTTPException, Security, status
from fastapi.security import APIKeyHeader
from tavara.core.settings import get_settings
from tavara.core.logging import logger

settings = get_settings()

# API Key header scheme
api_key_header = APIKeyHeader(name="X-API-Key", auto_error=False)


async def verify_api_key(api_key: Optional[str] = Security(api_key_header)) -> str:
    """
    Verify API key from request header.

    Args:
        api_key: API key from request header

    Returns:
        str: Validated API key, or "disabled" when keys are not enforced

    Raises:
        HTTPException: If API key is invalid or missing
    """
    if not settings.API_KEY_ENABLED:
        # API key authentication disabled
        return "disabled"

    if api_key is None:
        logger.warning("API request without API key")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing API key",
            headers={"WWW-Authenticate": "X-API-Key"}
        )

    if not secrets.compare_digest(api_key, settings.API_KEY or ""):
        logger.warning(f"Invalid API key attempt: {api_key[:8]}...")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid API key",
            headers={"WWW-Authenticate": "X-API-Key"}
        )

    return api_key


def sanitize_input(text: str, max_length: int = 5000) -> str:
    """
    Sanitize user-supplied text before it is stored or emailed.

    Args:
        text: Input text to sanitize
        max_length: Maximum allowed length

    Returns:
        str: Sanitized text

    Raises:
        ValueError: If input is not a string or exceeds maximum length
    """
    if not isinstance(text, str):
        raise ValueError("Input must be a string")

    # Check length
    if len(text) > max_length:
        raise ValueError(f"Input exceeds maximum length of {max_length} characters")

    # Remove null bytes
    text = text.replace('\x00', '')

    # Strip leading/trailing whitespace
    return text.strip()


def generate_verification_code() -> str:
    """Six-digit numeric code for phone verification."""
    return str(100000 + secrets.randbelow(900000))


class SecurityHeaders:
    """
    Security headers applied by the HTTP middleware in main.
    """

    @staticmethod
    def get_headers() -> dict:
        """Get recommended security headers."""
        return {
            "X-Content-Type-Options": "nosniff",
            "X-Frame-Options": "DENY",
            "X-XSS-Protection": "1; mode=block",
            "Strict-Transport-Security": "max-age=31536000; includeSubDomains",
        }

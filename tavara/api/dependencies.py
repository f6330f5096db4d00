"""
Tavara.care Coordination Service - API Dependencies

Dependency injection functions for FastAPI routes.
Provides request tracking, rate limiting and the acting profile.
"""

import uuid
import time
from typing import Optional
from fastapi import Depends, Header, HTTPException, Request, status
from sqlalchemy.orm import Session

from tavara.core.errors import NotFoundError
from tavara.core.security import verify_api_key
from tavara.core.settings import get_settings
from tavara.core.logging import logger
from tavara.db.base import get_db
from tavara.db.models import Profile, CarePlan, CareTeamMember

settings = get_settings()

# Simple in-memory rate limiter, per process
_rate_limit_cache = {}


def get_request_id(request: Request) -> str:
    """
    Generate or extract request ID for tracking.

    Args:
        request: FastAPI request object

    Returns:
        str: Unique request ID
    """
    # Try to get from header first
    request_id = request.headers.get("X-Request-ID")

    if not request_id:
        # Generate new request ID
        request_id = f"req_{uuid.uuid4().hex[:12]}"

    return request_id


def get_client_ip(request: Request) -> str:
    """
    Extract client IP address from request.

    Args:
        request: FastAPI request object

    Returns:
        str: Client IP address
    """
    # Check for forwarded IP (behind proxy)
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()

    # Check for real IP
    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip

    # Fallback to direct client
    return request.client.host if request.client else "unknown"


async def check_rate_limit(
    request: Request,
    request_id: str = Depends(get_request_id)
) -> None:
    """
    Sliding one-minute window per client IP.

    Applied to the public write endpoints: contact form, feedback,
    chat replies and WhatsApp codes.

    Raises:
        HTTPException: If rate limit exceeded
    """
    client_ip = get_client_ip(request)
    current_time = time.time()

    # Clean old entries (older than 60 seconds)
    _rate_limit_cache[client_ip] = [
        ts for ts in _rate_limit_cache.get(client_ip, [])
        if current_time - ts < 60
    ]

    # Check rate limit
    request_count = len(_rate_limit_cache[client_ip])
    if request_count >= settings.RATE_LIMIT_PER_MINUTE:
        logger.warning(
            f"Rate limit exceeded for IP: {client_ip}",
            extra={"request_id": request_id, "client_ip": client_ip}
        )
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Rate limit exceeded. Please try again later.",
            headers={"Retry-After": "60"}
        )

    # Add current request
    _rate_limit_cache[client_ip].append(current_time)


def reset_rate_limits():
    _rate_limit_cache.clear()


async def validate_request(
    request: Request,
    request_id: str = Depends(get_request_id),
    api_key: str = Depends(verify_api_key)
) -> dict:
    """
    Combined validation dependency for all protected endpoints.

    Returns:
        dict: Request context with metadata
    """
    context = {
        "request_id": request_id,
        "client_ip": get_client_ip(request),
        "api_key_valid": api_key != "disabled",
        "timestamp": time.time()
    }

    logger.debug("Request validated", extra=context)

    return context


def get_current_profile(
    x_user_id: Optional[str] = Header(default=None, alias="X-User-ID"),
    db: Session = Depends(get_db),
    _: dict = Depends(validate_request)
) -> Profile:
    """
    The acting user, identified by the X-User-ID header.

    Raises:
        HTTPException: 401 if the header is missing or names no profile
    """
    if not x_user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing X-User-ID header"
        )
    profile = db.get(Profile, x_user_id)
    if profile is None:
        logger.warning(f"Unknown user id in request: {x_user_id[:8]}...")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unknown user"
        )
    return profile


def require_admin(profile: Profile = Depends(get_current_profile)) -> Profile:
    if profile.role != "admin":
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required"
        )
    return profile


def require_self_or_admin(profile: Profile, user_id: str):
    """Raise 403 unless the acting profile is user_id or an admin."""
    if profile.id != user_id and profile.role != "admin":
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not allowed to act for another user"
        )


def require_plan_access(db: Session, care_plan_id: str, profile: Profile, owner_only: bool = False) -> CarePlan:
    """
    Load a care plan the acting profile may use.

    Admins and the owning family always pass; active care team members
    pass unless owner_only is set.
    """
    plan = db.get(CarePlan, care_plan_id)
    if plan is None:
        raise NotFoundError("CarePlan", care_plan_id)
    if profile.role == "admin" or plan.family_id == profile.id:
        return plan

    if not owner_only:
        member = (
            db.query(CareTeamMember.id)
            .filter(
                CareTeamMember.care_plan_id == plan.id,
                CareTeamMember.caregiver_id == profile.id,
                CareTeamMember.status == "active"
            )
            .first()
        )
        if member is not None:
            return plan

    raise HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail="No access to this care plan"
    )

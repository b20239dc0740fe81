"""Password and password-reset helpers.

Rate limiting lives in database functions; these wrappers only call them.
A failing rate-limit check lets the request through so an unconfigured
database never locks users out.
"""

from __future__ import annotations

import logging
import re
import secrets
import string
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

TOKEN_ALPHABET = string.ascii_uppercase + string.ascii_lowercase + string.digits
DEFAULT_CLIENT_IP = "localhost-dev"
RATE_LIMIT_MESSAGE = "Too many password reset attempts. Please try again in an hour."

_SPECIAL = re.compile(r'[!@#$%^&*(),.?":{}|<>]')


def validate_password_strength(password: str) -> Dict[str, Any]:
    requirements = {
        "length": len(password) >= 8,
        "uppercase": bool(re.search(r"[A-Z]", password)),
        "lowercase": bool(re.search(r"[a-z]", password)),
        "number": bool(re.search(r"\d", password)),
        "special": bool(_SPECIAL.search(password)),
    }
    score = sum(requirements.values())
    return {"requirements": requirements, "score": score, "is_valid": score >= 4 and requirements["length"]}


def generate_secure_token(length: int = 32) -> str:
    return "".join(secrets.choice(TOKEN_ALPHABET) for _ in range(length))


def check_password_reset_rate_limit(backend: Any, email: str, ip_address: str = DEFAULT_CLIENT_IP) -> Dict[str, Any]:
    try:
        allowed = backend.rpc(
            "check_password_reset_rate_limit",
            {"user_email": email.lower(), "user_ip": ip_address},
        )
    except Exception:
        logger.exception("Rate limit check failed; allowing request")
        return {"allowed": True}
    if allowed is False:
        return {"allowed": False, "message": RATE_LIMIT_MESSAGE}
    return {"allowed": True}


def log_password_reset_attempt(backend: Any, email: str, success: bool = False, ip_address: str = DEFAULT_CLIENT_IP) -> None:
    try:
        backend.rpc(
            "log_password_reset_attempt",
            {"user_email": email.lower(), "user_ip": ip_address, "attempt_success": success},
        )
    except Exception:
        logger.exception("Failed to log password reset attempt")


def cleanup_old_password_reset_attempts(backend: Any) -> None:
    try:
        backend.rpc("cleanup_old_password_reset_attempts")
    except Exception:
        logger.exception("Failed to clean up old password reset attempts")


def request_password_reset(
    backend: Any,
    email: str,
    *,
    redirect_to: Optional[str] = None,
    ip_address: str = DEFAULT_CLIENT_IP,
) -> Dict[str, Any]:
    """Rate-limit check, send the reset email, record the attempt."""
    email = (email or "").strip()
    if not email or "@" not in email:
        return {"sent": False, "message": "Please enter a valid email address"}

    limit = check_password_reset_rate_limit(backend, email, ip_address)
    if not limit["allowed"]:
        log_password_reset_attempt(backend, email, False, ip_address)
        return {"sent": False, "message": limit["message"]}

    try:
        backend.reset_password_for_email(email, redirect_to)
    except Exception:
        logger.exception("Password reset email failed for %s", email)
        log_password_reset_attempt(backend, email, False, ip_address)
        raise
    log_password_reset_attempt(backend, email, True, ip_address)
    return {"sent": True, "message": "Password reset email sent. Please check your inbox."}

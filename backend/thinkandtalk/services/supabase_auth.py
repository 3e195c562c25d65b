# backend/thinkandtalk/services/supabase_auth.py
"""
Supabase Auth access.

Token verification and admin user management go through the Supabase
service-role client. Table reads and writes do not: those use psycopg2
directly (see thinkandtalk.db).
"""

import logging
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Any, Dict, Optional

from supabase import Client, create_client

from thinkandtalk.config import get_required_env
from thinkandtalk.utils.helpers import normalize_email

logger = logging.getLogger("thinkandtalk-backend.auth")

# listUsers is paginated; one page covers the current user base
ADMIN_LIST_PAGE_SIZE = 1000


class UserCreationError(Exception):
    """Raised when Supabase refuses to create an auth user."""


@dataclass
class AuthUser:
    id: str
    email: Optional[str]
    user_metadata: Dict[str, Any] = field(default_factory=dict)


def _to_auth_user(user: Any) -> AuthUser:
    return AuthUser(
        id=str(user.id),
        email=getattr(user, "email", None),
        user_metadata=getattr(user, "user_metadata", None) or {},
    )


# -------------------------------------------------
# CLIENT
# -------------------------------------------------
@lru_cache(maxsize=1)
def get_admin_client() -> Client:
    """Service-role client (bypasses RLS). Built once per process."""
    return create_client(
        get_required_env("SUPABASE_URL"),
        get_required_env("SUPABASE_SERVICE_ROLE_KEY"),
    )


# -------------------------------------------------
# TOKEN → USER
# -------------------------------------------------
def get_user_from_token(token: str) -> Optional[AuthUser]:
    """
    Resolves a Supabase access token to its user.
    Returns None for an empty, expired or otherwise rejected token.
    """
    if not token:
        return None

    try:
        response = get_admin_client().auth.get_user(token)
    except Exception as e:
        logger.warning("Token rejected by Supabase: %s", e)
        return None

    user = getattr(response, "user", None)
    if user is None:
        return None

    return _to_auth_user(user)


# -------------------------------------------------
# ADMIN API
# -------------------------------------------------
def find_user_by_email(email: str) -> Optional[AuthUser]:
    email = normalize_email(email)
    if not email:
        return None

    users = get_admin_client().auth.admin.list_users(
        page=1, per_page=ADMIN_LIST_PAGE_SIZE
    )

    for user in users or []:
        if normalize_email(getattr(user, "email", None)) == email:
            return _to_auth_user(user)

    return None


def create_user(email: str, password: str, must_change_password: bool = True) -> AuthUser:
    try:
        response = get_admin_client().auth.admin.create_user(
            {
                "email": email,
                "password": password,
                "email_confirm": True,
                "user_metadata": {"must_change_password": must_change_password},
            }
        )
    except Exception as e:
        logger.error("❌ Supabase user creation failed for %s: %s", email, e)
        raise UserCreationError(str(e)) from e

    user = getattr(response, "user", None)
    if user is None:
        raise UserCreationError("Supabase returned no user")

    logger.info("👤 Auth user created: %s", user.id)
    return _to_auth_user(user)

# backend/thinkandtalk/auth.py
"""
FastAPI dependencies resolving the caller from the bearer token.
"""

from typing import Optional

from fastapi import Depends, Header, HTTPException, status

from thinkandtalk.services.role_service import ADMIN_ROLE, has_role
from thinkandtalk.services.supabase_auth import AuthUser, get_user_from_token
from thinkandtalk.utils.helpers import extract_bearer_token

UNAUTHENTICATED_MESSAGE = "Usuário não autenticado."


def get_optional_user(authorization: Optional[str] = Header(None)) -> Optional[AuthUser]:
    token = extract_bearer_token(authorization)
    if not token:
        return None
    return get_user_from_token(token)


def get_current_user(authorization: Optional[str] = Header(None)) -> AuthUser:
    user = get_optional_user(authorization)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=UNAUTHENTICATED_MESSAGE,
        )
    return user


def get_admin_user(user: AuthUser = Depends(get_current_user)) -> AuthUser:
    if not has_role(user.id, ADMIN_ROLE):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Acesso restrito a administradores.",
        )
    return user

# auth_api/app/api/dependencies.py
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional

from app.core.config import settings
from app.core.exceptions import AuthenticationFailure
from app.db.session import get_db
from app.models.user import User as UserModel
from app.services.session_manager import SessionManager

# auto_error=False: o token também pode vir no cookie, e rotas opcionais aceitam anônimos
bearer_scheme = HTTPBearer(auto_error=False, description="Access token (Bearer)")


async def get_session_manager(db: AsyncSession = Depends(get_db)) -> SessionManager:
    return SessionManager(db)


def get_access_token(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Optional[str]:
    """Header Authorization explícito primeiro, depois o cookie."""
    if credentials is not None and credentials.credentials:
        return credentials.credentials
    return request.cookies.get(settings.ACCESS_TOKEN_COOKIE_NAME) or None


async def get_optional_user(
    token: Optional[str] = Depends(get_access_token),
    manager: SessionManager = Depends(get_session_manager),
) -> Optional[UserModel]:
    """Identidade da requisição, ou None (anônimo) se o access token não for válido."""
    try:
        return await manager.resolve_identity(token)
    except AuthenticationFailure:
        return None


async def get_current_user(
    current_user: Optional[UserModel] = Depends(get_optional_user),
) -> UserModel:
    if current_user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=AuthenticationFailure.message,
            headers={"WWW-Authenticate": "Bearer"},
        )
    return current_user

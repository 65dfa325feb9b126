# auth_api/app/api/endpoints/auth.py
from typing import Any, Optional
from fastapi import APIRouter, Body, Depends, Request, Response, status

from app.api.dependencies import get_current_user, get_session_manager
from app.core.config import settings
from app.models.user import User as UserModel
from app.schemas.token import LogoutRequest, RefreshTokensRequest
from app.schemas.user import AuthResponse, LoginRequest, RegisterRequest, UserPublic
from app.services.session_manager import IssuedSession, SessionManager

router = APIRouter()


# --- Cookies ---
def set_auth_cookies(response: Response, issued: IssuedSession, manager: SessionManager) -> None:
    response.set_cookie(
        settings.ACCESS_TOKEN_COOKIE_NAME,
        issued.access_token,
        max_age=int(manager.access_token_ttl.total_seconds()),
        path="/",
        httponly=True,
        secure=settings.COOKIE_SECURE,
        samesite=settings.COOKIE_SAMESITE,
    )
    # O refresh token só viaja para as rotas de /auth (refresh e logout)
    response.set_cookie(
        settings.REFRESH_TOKEN_COOKIE_NAME,
        issued.refresh_token,
        max_age=int(manager.refresh_token_ttl.total_seconds()),
        path=settings.auth_prefix,
        httponly=True,
        secure=settings.COOKIE_SECURE,
        samesite=settings.COOKIE_SAMESITE,
    )

def clear_auth_cookies(response: Response) -> None:
    response.delete_cookie(settings.ACCESS_TOKEN_COOKIE_NAME, path="/")
    response.delete_cookie(settings.REFRESH_TOKEN_COOKIE_NAME, path=settings.auth_prefix)
# --- Fim Cookies ---


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def register(
    *,
    register_in: RegisterRequest,
    response: Response,
    manager: SessionManager = Depends(get_session_manager),
) -> Any:
    """
    Cria o usuário e já abre uma sessão para o fingerprint informado.

    Access e refresh tokens são entregues em cookies httpOnly.
    """
    issued = await manager.register(
        register_in, password=register_in.password, fingerprint=register_in.fingerprint
    )
    set_auth_cookies(response, issued, manager)
    return AuthResponse(user=UserPublic.model_validate(issued.user))


@router.post(
    "/login",
    response_model=AuthResponse,
    responses={400: {"description": "Credenciais inválidas"}},
)
async def login(
    *,
    login_in: LoginRequest,
    response: Response,
    manager: SessionManager = Depends(get_session_manager),
) -> Any:
    issued = await manager.login(
        login_in.login, password=login_in.password, fingerprint=login_in.fingerprint
    )
    set_auth_cookies(response, issued, manager)
    return AuthResponse(user=UserPublic.model_validate(issued.user))


@router.post(
    "/refresh-tokens",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={401: {"description": "Refresh token inválido, expirado, já usado ou de outro fingerprint"}},
)
async def refresh_tokens(
    *,
    refresh_in: RefreshTokensRequest,
    request: Request,
    response: Response,
    manager: SessionManager = Depends(get_session_manager),
) -> None:
    """
    Troca o refresh token (corpo ou cookie) por um novo par de tokens.

    O token apresentado é consumido: usar o mesmo token de novo falha.
    """
    token = refresh_in.refresh_token or request.cookies.get(settings.REFRESH_TOKEN_COOKIE_NAME)
    issued = await manager.refresh(token, fingerprint=refresh_in.fingerprint)
    set_auth_cookies(response, issued, manager)


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
async def logout(
    *,
    request: Request,
    response: Response,
    logout_in: Optional[LogoutRequest] = Body(None),
    manager: SessionManager = Depends(get_session_manager),
) -> None:
    """Sempre responde 204, exista ou não uma sessão para o token."""
    token = (logout_in.refresh_token if logout_in else None) or request.cookies.get(
        settings.REFRESH_TOKEN_COOKIE_NAME
    )
    await manager.logout(token)
    clear_auth_cookies(response)


@router.get("/credentials", response_model=AuthResponse)
async def read_credentials(current_user: UserModel = Depends(get_current_user)) -> Any:
    return AuthResponse(user=UserPublic.model_validate(current_user))

# auth_api/app/core/security.py
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional
from passlib.context import CryptContext
from jose import jwt, JWTError
from .config import settings
import secrets

pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=settings.BCRYPT_ROUNDS,
)

ACCESS_TOKEN_TYPE = "access"
# 32 bytes = 256 bits of entropy
REFRESH_TOKEN_BYTES = 32


def verify_password(plain_password: str, hashed_password: str) -> bool:
    try:
        # Limita o tamanho da senha ANTES de passar para o bcrypt (evita erros > 72 bytes)
        password_bytes = plain_password.encode('utf-8')[:72]
        return pwd_context.verify(password_bytes, hashed_password)
    except (ValueError, TypeError):
        # Hash malformado ou ausente
        return False

def get_password_hash(password: str) -> str:
    # Limita o tamanho da senha ANTES de passar para o bcrypt
    password_bytes = password.encode('utf-8')[:72]
    return pwd_context.hash(password_bytes)

# Used when the login does not exist, so the response time does not reveal it
_DUMMY_PASSWORD_HASH: Optional[str] = None

def verify_dummy_password(plain_password: str) -> bool:
    global _DUMMY_PASSWORD_HASH
    if _DUMMY_PASSWORD_HASH is None:
        _DUMMY_PASSWORD_HASH = get_password_hash(secrets.token_urlsafe(16))
    verify_password(plain_password, _DUMMY_PASSWORD_HASH)
    return False


# --- Access Token (JWT) ---
def create_access_token(
    user_id: int,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """
    Assina um access token autocontido para o usuário.

    O token carrega a própria expiração ('exp'), então a validação não precisa
    consultar o banco.
    """
    now = datetime.now(timezone.utc)
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    to_encode: Dict[str, Any] = {
        "iss": settings.JWT_ISSUER,
        "aud": settings.JWT_AUDIENCE,
        "iat": now,
        "nbf": now,
        "exp": now + expires_delta,
        "sub": str(user_id),
        "token_type": ACCESS_TOKEN_TYPE,
    }
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)

def decode_access_token(token: str) -> Dict | None:
    if not token:
        return None
    try:
        payload = jwt.decode(
            token,
            settings.SECRET_KEY,
            algorithms=[settings.ALGORITHM],
            audience=settings.JWT_AUDIENCE,
            issuer=settings.JWT_ISSUER,
            options={"verify_iss": True, "verify_aud": True}
        )
    except JWTError:
        return None
    if payload.get("token_type") != ACCESS_TOKEN_TYPE or "sub" not in payload:
        return None
    return payload


# --- Refresh Token (opaco, armazenado como hash) ---
def generate_refresh_token() -> str:
    """Gera um refresh token aleatório e impossível de adivinhar."""
    return secrets.token_urlsafe(REFRESH_TOKEN_BYTES)

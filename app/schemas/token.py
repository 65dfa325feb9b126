# auth_api/app/schemas/token.py
from pydantic import BaseModel
from typing import Optional

from app.schemas.user import Fingerprint

class TokenPayload(BaseModel):
    sub: str
    exp: int
    token_type: str

class RefreshTokensRequest(BaseModel):
    fingerprint: Fingerprint
    # Opcional: clientes que não usam cookie podem mandar o token no corpo
    refresh_token: Optional[str] = None

class LogoutRequest(BaseModel):
    refresh_token: Optional[str] = None

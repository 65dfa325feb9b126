# auth_api/app/schemas/user.py
from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Annotated, Optional
from datetime import datetime
import re

# Função de validação de senha
def password_strength_validator(password: str) -> str:
    if len(password) < 8:
        raise ValueError('Password must be at least 8 characters long')
    if not re.search(r"[a-z]", password):
        raise ValueError('Password must contain a lowercase letter')
    if not re.search(r"[A-Z]", password):
        raise ValueError('Password must contain an uppercase letter')
    if not re.search(r"[0-9]", password):
        raise ValueError('Password must contain a digit')
    if not re.search(r"[\W_]", password): # \W corresponde a não-alfanumérico
        raise ValueError('Password must contain a special character')
    return password

Fingerprint = Annotated[str, Field(min_length=1, max_length=255)]

class UserProfile(BaseModel):
    login: str = Field(..., min_length=3, max_length=100)
    first_name: Optional[str] = Field(None, max_length=100)
    last_name: Optional[str] = Field(None, max_length=100)

class UserCreate(UserProfile):
    password: str = Field(..., min_length=8)

    @field_validator('password')
    @classmethod
    def validate_password_strength(cls, v: str) -> str:
        return password_strength_validator(v)

class UserPublic(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    login: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    created_at: Optional[datetime] = None

class RegisterRequest(UserCreate):
    fingerprint: Fingerprint

class LoginRequest(BaseModel):
    login: str
    password: str
    fingerprint: Fingerprint

class AuthResponse(BaseModel):
    user: UserPublic

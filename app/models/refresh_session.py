# auth_api/app/models/refresh_session.py
from sqlalchemy import String, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship
from datetime import datetime

from app.db.base import Base
from app.core.clock import utcnow
from .user import User

class RefreshSession(Base):
    __tablename__ = "refresh_sessions"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    # Identifica o dispositivo/navegador do cliente; uma sessão ativa por fingerprint
    fingerprint: Mapped[str] = mapped_column(String(255), nullable=False)
    # Armazena um HASH do token, não o token em si, por segurança
    token_hash: Mapped[str] = mapped_column(String(64), unique=True, index=True, nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)

    user: Mapped["User"] = relationship(back_populates="refresh_sessions")

    __table_args__ = (
        UniqueConstraint("user_id", "fingerprint", name="uq_refresh_sessions_user_fingerprint"),
    )
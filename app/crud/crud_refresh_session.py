# auth_api/app/crud/crud_refresh_session.py
"""
Armazenamento das refresh sessions.

Nenhuma função aqui faz commit: quem chama (SessionManager) agrupa
"apagar a sessão anterior" + "criar a nova" na mesma transação.
"""
import hashlib
from datetime import datetime
from typing import NamedTuple, Optional
from sqlalchemy import delete
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from app.core.exceptions import DuplicateTokenError, SessionConflictError
from app.models.refresh_session import RefreshSession
from loguru import logger


class ConsumedSession(NamedTuple):
    id: int
    user_id: int
    fingerprint: str
    expires_at: datetime

    def is_expired(self, now: datetime) -> bool:
        return now >= self.expires_at


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode('utf-8')).hexdigest()


async def find_session(
    db: AsyncSession, *, fingerprint: str, token: str
) -> Optional[RefreshSession]:
    """Busca a sessão cujo token E fingerprint batem exatamente."""
    stmt = select(RefreshSession).where(
        RefreshSession.token_hash == hash_token(token),
        RefreshSession.fingerprint == fingerprint,
    )
    result = await db.execute(stmt)
    return result.scalars().first()


async def find_any_session_by_token(db: AsyncSession, *, token: str) -> Optional[RefreshSession]:
    stmt = select(RefreshSession).where(RefreshSession.token_hash == hash_token(token))
    result = await db.execute(stmt)
    return result.scalars().first()


async def delete_sessions_for_fingerprint(
    db: AsyncSession, *, user_id: int, fingerprint: str
) -> int:
    """Remove a(s) sessão(ões) anteriores do par (usuário, fingerprint)."""
    stmt = delete(RefreshSession).where(
        RefreshSession.user_id == user_id,
        RefreshSession.fingerprint == fingerprint,
    )
    result = await db.execute(stmt)
    if result.rowcount and result.rowcount > 1:
        logger.warning(
            f"Removed {result.rowcount} sessions for user ID {user_id} on a single fingerprint"
        )
    return result.rowcount or 0


async def create_session(
    db: AsyncSession, *, user_id: int, fingerprint: str, token: str, expires_at: datetime
) -> RefreshSession:
    token_hash_value = hash_token(token)

    existing = await db.execute(
        select(RefreshSession.id).where(RefreshSession.token_hash == token_hash_value)
    )
    if existing.first() is not None:
        raise DuplicateTokenError()

    db_session = RefreshSession(
        user_id=user_id,
        fingerprint=fingerprint,
        token_hash=token_hash_value,
        expires_at=expires_at,
    )
    db.add(db_session)
    try:
        await db.flush()
    except IntegrityError as e:
        # Violação de unicidade concorrente: outra sessão para o mesmo (usuário, fingerprint)
        # ou o mesmo token_hash gravado depois da checagem acima. Os dois casos são repetidos.
        logger.warning(
            f"Unique violation creating refresh session for user ID {user_id} "
            f"(fingerprint or token hash taken concurrently): {e.orig}"
        )
        raise SessionConflictError() from e
    return db_session


async def delete_session(db: AsyncSession, *, session: RefreshSession) -> None:
    await db.execute(delete(RefreshSession).where(RefreshSession.id == session.id))


async def delete_sessions_by_token(db: AsyncSession, *, token: str) -> int:
    stmt = delete(RefreshSession).where(RefreshSession.token_hash == hash_token(token))
    result = await db.execute(stmt)
    return result.rowcount or 0


async def consume_session(
    db: AsyncSession, *, fingerprint: str, token: str
) -> Optional[ConsumedSession]:
    """
    Busca e apaga a sessão em um único comando (DELETE ... RETURNING).

    Se duas requisições apresentarem o mesmo token ao mesmo tempo, somente
    uma recebe a linha de volta.
    """
    stmt = (
        delete(RefreshSession)
        .where(
            RefreshSession.token_hash == hash_token(token),
            RefreshSession.fingerprint == fingerprint,
        )
        .returning(
            RefreshSession.id,
            RefreshSession.user_id,
            RefreshSession.fingerprint,
            RefreshSession.expires_at,
        )
    )
    result = await db.execute(stmt)
    row = result.first()
    if row is None:
        return None
    return ConsumedSession(*row)


async def prune_expired_sessions(db: AsyncSession, *, now: datetime) -> int:
    """Remove sessões expiradas do banco (pode ser rodado periodicamente)."""
    stmt = delete(RefreshSession).where(RefreshSession.expires_at <= now)
    result = await db.execute(stmt)
    return result.rowcount or 0

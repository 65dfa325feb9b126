# auth_api/app/services/session_manager.py
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import AsyncIterator, Callable, Optional

from jose import JWTError
from loguru import logger
from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core import security
from app.core.clock import utcnow
from app.core.config import settings
from app.core.exceptions import (
    AuthenticationFailure,
    DuplicateTokenError,
    InfrastructureError,
    InvalidCredentialsError,
    InvalidRefreshTokenError,
    SessionConflictError,
    ConflictError,
)
from app.crud import crud_refresh_session
from app.crud.crud_user import user as crud_user
from app.models.refresh_session import RefreshSession
from app.models.user import User
from app.schemas.token import TokenPayload
from app.schemas.user import UserProfile


@dataclass
class IssuedSession:
    user: User
    access_token: str
    refresh_token: str
    session: RefreshSession

    @property
    def refresh_expires_at(self) -> datetime:
        return self.session.expires_at


class SessionManager:
    """
    Ciclo de vida da sessão: registro, login, rotação do refresh token e logout.

    Cada instância trabalha sobre uma única AsyncSession (uma requisição) e é
    dona do commit. O relógio é injetável para que a expiração possa ser
    testada sem esperar.
    """

    def __init__(
        self,
        db: AsyncSession,
        *,
        clock: Callable[[], datetime] = utcnow,
        access_token_ttl: Optional[timedelta] = None,
        refresh_token_ttl: Optional[timedelta] = None,
        max_issue_attempts: Optional[int] = None,
    ):
        self.db = db
        self.clock = clock
        self.access_token_ttl = access_token_ttl or timedelta(
            minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES
        )
        self.refresh_token_ttl = refresh_token_ttl or timedelta(
            days=settings.REFRESH_TOKEN_EXPIRE_DAYS
        )
        self.max_issue_attempts = max_issue_attempts or settings.SESSION_ISSUE_MAX_ATTEMPTS

    @asynccontextmanager
    async def _unit_of_work(self, action: str) -> AsyncIterator[None]:
        try:
            yield
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"{action}: storage failure: {e}")
            raise InfrastructureError() from e
        except Exception:
            await self.db.rollback()
            raise

    async def register(self, profile: UserProfile, password: str, fingerprint: str) -> IssuedSession:
        async with self._unit_of_work("register"):
            if await crud_user.get_by_login(self.db, login=profile.login):
                logger.info(f"Registro recusado: login '{profile.login}' já existe")
                raise ConflictError()
            hashed_password = security.get_password_hash(password)
            user = await crud_user.create(self.db, obj_in=profile, hashed_password=hashed_password)
            issued = await self._issue_session(user, fingerprint)
            await self.db.commit()
        logger.info(f"Usuário ID {user.id} registrado e sessão emitida")
        return issued

    async def login(self, login: str, password: str, fingerprint: str) -> IssuedSession:
        async with self._unit_of_work("login"):
            user = await crud_user.get_by_login(self.db, login=login)
            if user is None:
                security.verify_dummy_password(password)
                logger.warning("Login falhou: credenciais inválidas")
                raise InvalidCredentialsError()
            if not security.verify_password(password, user.hashed_password):
                logger.warning("Login falhou: credenciais inválidas")
                raise InvalidCredentialsError()

            # Sessão antiga deste dispositivo sai junto, na mesma transação
            await crud_refresh_session.delete_sessions_for_fingerprint(
                self.db, user_id=user.id, fingerprint=fingerprint
            )
            issued = await self._issue_session(user, fingerprint)
            await self.db.commit()
        logger.info(f"Login bem-sucedido para usuário ID {user.id}")
        return issued

    async def refresh(self, presented_token: Optional[str], fingerprint: str) -> IssuedSession:
        if not presented_token:
            raise InvalidRefreshTokenError()

        async with self._unit_of_work("refresh"):
            consumed = await crud_refresh_session.consume_session(
                self.db, fingerprint=fingerprint, token=presented_token
            )
            if consumed is None:
                logger.warning("Refresh recusado: token desconhecido, já usado ou de outro fingerprint")
                raise InvalidRefreshTokenError()

            if consumed.is_expired(self.clock()):
                # A linha já foi apagada pelo consume; persiste a limpeza antes de recusar
                await self.db.commit()
                logger.warning(f"Refresh recusado: sessão {consumed.id} expirada")
                raise InvalidRefreshTokenError()

            user = await crud_user.get(self.db, consumed.user_id)
            if user is None:
                raise InvalidRefreshTokenError()

            issued = await self._issue_session(user, fingerprint)
            await self.db.commit()
        logger.info(f"Refresh token rotacionado para usuário ID {user.id}")
        return issued

    async def logout(self, presented_token: Optional[str]) -> None:
        if not presented_token:
            return
        async with self._unit_of_work("logout"):
            removed = await crud_refresh_session.delete_sessions_by_token(
                self.db, token=presented_token
            )
            await self.db.commit()
        if removed:
            logger.info("Logout: refresh session removida")

    async def resolve_identity(self, access_token: Optional[str]) -> User:
        payload = security.decode_access_token(access_token) if access_token else None
        if payload is None:
            raise AuthenticationFailure()
        try:
            token_data = TokenPayload(**payload)
            user_id = int(token_data.sub)
        except (ValidationError, ValueError):
            raise AuthenticationFailure()

        async with self._unit_of_work("resolve_identity"):
            user = await crud_user.get(self.db, user_id)
        if user is None:
            raise AuthenticationFailure()
        return user

    async def _issue_session(self, user: User, fingerprint: str) -> IssuedSession:
        """
        Cria a refresh session (substituindo a anterior do mesmo fingerprint) e
        assina o access token. Não faz commit.
        """
        try:
            access_token = security.create_access_token(user.id, expires_delta=self.access_token_ttl)
        except JWTError as e:
            logger.error(f"Falha ao assinar access token para usuário ID {user.id}: {e}")
            raise InfrastructureError("Could not sign access token") from e

        expires_at = self.clock() + self.refresh_token_ttl
        for attempt in range(1, self.max_issue_attempts + 1):
            refresh_token = security.generate_refresh_token()
            try:
                async with self.db.begin_nested():
                    await crud_refresh_session.delete_sessions_for_fingerprint(
                        self.db, user_id=user.id, fingerprint=fingerprint
                    )
                    session = await crud_refresh_session.create_session(
                        self.db,
                        user_id=user.id,
                        fingerprint=fingerprint,
                        token=refresh_token,
                        expires_at=expires_at,
                    )
            except DuplicateTokenError:
                logger.warning(f"Colisão de refresh token (tentativa {attempt}), gerando outro")
                continue
            except SessionConflictError:
                logger.warning(
                    f"Conflito de unicidade ao criar sessão para usuário ID {user.id} (tentativa {attempt})"
                )
                continue
            return IssuedSession(
                user=user,
                access_token=access_token,
                refresh_token=refresh_token,
                session=session,
            )

        raise InfrastructureError("Could not allocate a unique refresh session")

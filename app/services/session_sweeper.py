# auth_api/app/services/session_sweeper.py
import asyncio
from typing import Callable, Optional

from loguru import logger
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from app.core.clock import utcnow
from app.crud import crud_refresh_session


async def sweep_expired_sessions(session_factory: sessionmaker, *, now=None) -> int:
    """Apaga as refresh sessions vencidas. A expiração continua sendo checada no refresh."""
    async with session_factory() as db:
        removed = await crud_refresh_session.prune_expired_sessions(db, now=now or utcnow())
        await db.commit()
    if removed:
        logger.info(f"Sweep: {removed} refresh session(s) expirada(s) removida(s)")
    return removed


class SessionSweeper:
    """Roda sweep_expired_sessions a cada `interval_seconds` até ser parado."""

    def __init__(self, session_factory_getter: Callable[[], sessionmaker], interval_seconds: float):
        self.session_factory_getter = session_factory_getter
        self.interval_seconds = interval_seconds
        self._task: Optional[asyncio.Task] = None

    def start(self) -> None:
        if self._task is None:
            self._task = asyncio.create_task(self._run(), name="refresh-session-sweeper")
            logger.info(f"Sweeper de sessões iniciado (intervalo: {self.interval_seconds}s)")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval_seconds)
            try:
                await sweep_expired_sessions(self.session_factory_getter())
            except SQLAlchemyError as e:
                # Próxima rodada tenta de novo
                logger.error(f"Sweep de sessões falhou: {e}")

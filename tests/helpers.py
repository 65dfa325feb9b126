from datetime import timedelta

from sqlalchemy import func, select

from app.core.clock import utcnow
from app.models.refresh_session import RefreshSession

STRONG_PASSWORD = "Str0ng!Passw0rd"


class FakeClock:
    """Relógio controlado pelo teste (UTC naive, como no banco)."""

    def __init__(self, start=None):
        self.now = start or utcnow()

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


async def count_sessions(db, *, user_id, fingerprint=None):
    stmt = select(func.count()).select_from(RefreshSession).where(RefreshSession.user_id == user_id)
    if fingerprint is not None:
        stmt = stmt.where(RefreshSession.fingerprint == fingerprint)
    return (await db.execute(stmt)).scalar_one()

import asyncio
from datetime import timedelta

from app.core.clock import utcnow
from app.crud import crud_refresh_session
from app.crud.crud_user import user as crud_user
from app.schemas.user import UserProfile
from app.services.session_sweeper import SessionSweeper, sweep_expired_sessions
from tests.helpers import count_sessions


async def seed_sessions(session_factory):
    now = utcnow()
    async with session_factory() as db:
        user = await crud_user.create(
            db, obj_in=UserProfile(login="alice"), hashed_password="not-a-real-hash"
        )
        await crud_refresh_session.create_session(
            db, user_id=user.id, fingerprint="old", token="token-old", expires_at=now - timedelta(hours=1)
        )
        await crud_refresh_session.create_session(
            db, user_id=user.id, fingerprint="new", token="token-new", expires_at=now + timedelta(hours=1)
        )
        await db.commit()
        return user.id


async def test_sweep_removes_only_expired_sessions(session_factory):
    user_id = await seed_sessions(session_factory)

    removed = await sweep_expired_sessions(session_factory)

    assert removed == 1
    async with session_factory() as db:
        assert await count_sessions(db, user_id=user_id, fingerprint="old") == 0
        assert await count_sessions(db, user_id=user_id, fingerprint="new") == 1


async def test_sweep_uses_given_time(session_factory):
    user_id = await seed_sessions(session_factory)

    removed = await sweep_expired_sessions(session_factory, now=utcnow() + timedelta(days=1))

    assert removed == 2
    async with session_factory() as db:
        assert await count_sessions(db, user_id=user_id) == 0


async def test_background_sweeper_runs_until_stopped(session_factory):
    user_id = await seed_sessions(session_factory)
    sweeper = SessionSweeper(lambda: session_factory, interval_seconds=0.01)

    sweeper.start()
    await asyncio.sleep(0.2)
    await sweeper.stop()

    async with session_factory() as db:
        assert await count_sessions(db, user_id=user_id, fingerprint="old") == 0
        assert await count_sessions(db, user_id=user_id, fingerprint="new") == 1


async def test_stopping_a_sweeper_that_never_started():
    sweeper = SessionSweeper(lambda: None, interval_seconds=60)

    await sweeper.stop()

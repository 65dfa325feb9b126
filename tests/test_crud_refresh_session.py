from datetime import timedelta

import pytest

from app.core.clock import utcnow
from app.core.exceptions import DuplicateTokenError, SessionConflictError
from app.crud import crud_refresh_session
from app.crud.crud_user import user as crud_user
from app.models.refresh_session import RefreshSession
from app.schemas.user import UserProfile
from tests.helpers import count_sessions


@pytest.fixture
async def user(db):
    created = await crud_user.create(
        db, obj_in=UserProfile(login="alice"), hashed_password="not-a-real-hash"
    )
    await db.commit()
    return created


async def add_session(db, user, fingerprint="dev1", token="token-1", expires_in=timedelta(days=1)):
    session = await crud_refresh_session.create_session(
        db, user_id=user.id, fingerprint=fingerprint, token=token, expires_at=utcnow() + expires_in
    )
    await db.commit()
    return session


def test_hash_token_is_sha256_hex():
    digest = crud_refresh_session.hash_token("abc")

    assert digest == "ba7816bf8f01cfea414140de5dae2223b00361a396177a9cb410ff61f20015ad"
    assert len(digest) == 64


async def test_token_is_stored_only_as_hash(db, user):
    session = await add_session(db, user, token="plain-token")

    assert session.token_hash != "plain-token"
    assert session.token_hash == crud_refresh_session.hash_token("plain-token")


async def test_find_session_requires_token_and_fingerprint(db, user):
    await add_session(db, user)

    assert await crud_refresh_session.find_session(db, fingerprint="dev1", token="token-1") is not None
    assert await crud_refresh_session.find_session(db, fingerprint="dev2", token="token-1") is None
    assert await crud_refresh_session.find_session(db, fingerprint="dev1", token="token-2") is None


async def test_find_any_session_by_token_ignores_fingerprint(db, user):
    created = await add_session(db, user)

    found = await crud_refresh_session.find_any_session_by_token(db, token="token-1")

    assert found.id == created.id
    assert await crud_refresh_session.find_any_session_by_token(db, token="other") is None


async def test_duplicate_token_raises(db, user):
    await add_session(db, user)

    with pytest.raises(DuplicateTokenError):
        await crud_refresh_session.create_session(
            db, user_id=user.id, fingerprint="dev2", token="token-1", expires_at=utcnow()
        )


async def test_second_session_for_same_fingerprint_conflicts(db, user):
    await add_session(db, user)

    with pytest.raises(SessionConflictError):
        await crud_refresh_session.create_session(
            db, user_id=user.id, fingerprint="dev1", token="token-2", expires_at=utcnow()
        )
    await db.rollback()


async def test_token_hash_race_past_duplicate_check_conflicts(db, user):
    # Linha ainda não gravada: a checagem de duplicata não a enxerga, só o índice único
    db.add(
        RefreshSession(
            user_id=user.id,
            fingerprint="dev2",
            token_hash=crud_refresh_session.hash_token("token-1"),
            expires_at=utcnow(),
        )
    )

    with pytest.raises(SessionConflictError):
        await crud_refresh_session.create_session(
            db, user_id=user.id, fingerprint="dev1", token="token-1", expires_at=utcnow()
        )
    await db.rollback()


async def test_delete_sessions_for_fingerprint_only_touches_that_pair(db, user):
    await add_session(db, user, fingerprint="dev1", token="token-1")
    await add_session(db, user, fingerprint="dev2", token="token-2")

    removed = await crud_refresh_session.delete_sessions_for_fingerprint(
        db, user_id=user.id, fingerprint="dev1"
    )
    await db.commit()

    assert removed == 1
    assert await count_sessions(db, user_id=user.id, fingerprint="dev1") == 0
    assert await count_sessions(db, user_id=user.id, fingerprint="dev2") == 1


async def test_delete_sessions_for_fingerprint_with_nothing_to_delete(db, user):
    removed = await crud_refresh_session.delete_sessions_for_fingerprint(
        db, user_id=user.id, fingerprint="dev1"
    )

    assert removed == 0


async def test_delete_session_is_idempotent(db, user):
    session = await add_session(db, user)

    await crud_refresh_session.delete_session(db, session=session)
    await crud_refresh_session.delete_session(db, session=session)
    await db.commit()

    assert await count_sessions(db, user_id=user.id) == 0


async def test_consume_session_returns_row_once(db, user):
    created = await add_session(db, user)

    consumed = await crud_refresh_session.consume_session(db, fingerprint="dev1", token="token-1")
    again = await crud_refresh_session.consume_session(db, fingerprint="dev1", token="token-1")
    await db.commit()

    assert consumed.id == created.id
    assert consumed.user_id == user.id
    assert consumed.fingerprint == "dev1"
    assert again is None
    assert await count_sessions(db, user_id=user.id) == 0


async def test_consume_session_with_wrong_fingerprint_keeps_the_row(db, user):
    await add_session(db, user)

    consumed = await crud_refresh_session.consume_session(db, fingerprint="dev2", token="token-1")
    await db.commit()

    assert consumed is None
    assert await count_sessions(db, user_id=user.id) == 1


async def test_consumed_session_expiry_is_inclusive(db, user):
    created = await add_session(db, user)

    consumed = await crud_refresh_session.consume_session(db, fingerprint="dev1", token="token-1")

    assert not consumed.is_expired(created.expires_at - timedelta(seconds=1))
    assert consumed.is_expired(created.expires_at)


async def test_delete_sessions_by_token(db, user):
    await add_session(db, user)

    assert await crud_refresh_session.delete_sessions_by_token(db, token="token-1") == 1
    assert await crud_refresh_session.delete_sessions_by_token(db, token="token-1") == 0


async def test_prune_expired_sessions(db, user):
    await add_session(db, user, fingerprint="old", token="token-old", expires_in=timedelta(days=-1))
    await add_session(db, user, fingerprint="new", token="token-new", expires_in=timedelta(days=1))

    removed = await crud_refresh_session.prune_expired_sessions(db, now=utcnow())
    await db.commit()

    assert removed == 1
    assert await count_sessions(db, user_id=user.id, fingerprint="old") == 0
    assert await count_sessions(db, user_id=user.id, fingerprint="new") == 1


async def test_deleting_user_cascades_to_sessions(db, user):
    await add_session(db, user)

    await db.delete(user)
    await db.commit()

    assert await count_sessions(db, user_id=user.id) == 0

from sqlalchemy import inspect

from app.db import initial_data


async def test_init_db_creates_all_tables(engine, monkeypatch):
    async def no_dispose():
        return None

    monkeypatch.setattr(initial_data, "get_async_engine", lambda: engine)
    monkeypatch.setattr(initial_data, "dispose_engine", no_dispose)

    await initial_data.init_db(drop=True)

    async with engine.connect() as conn:
        tables = await conn.run_sync(lambda sync_conn: inspect(sync_conn).get_table_names())
    assert {"users", "refresh_sessions"} <= set(tables)

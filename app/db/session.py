# auth_api/app/db/session.py
from sqlalchemy import event
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession
from sqlalchemy.orm import sessionmaker
from app.core.config import settings
from typing import AsyncGenerator, Optional
from sqlalchemy.ext.asyncio import AsyncEngine # For type hinting

# --- Delay Engine and Session Creation ---
_async_engine: Optional[AsyncEngine] = None
_AsyncSessionLocal: Optional[sessionmaker] = None

def _sqlite_on_connect(dbapi_connection, connection_record):
    # O driver não emite BEGIN sozinho; o listener "begin" abaixo assume isso,
    # senão SAVEPOINT (begin_nested) não funciona
    dbapi_connection.isolation_level = None
    # SQLite só aplica ON DELETE CASCADE com foreign_keys ligado
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()

def _sqlite_on_begin(conn):
    # IMMEDIATE: a trava de escrita é pega já no BEGIN; duas rotações do mesmo
    # token esperam uma pela outra em vez de falhar com "database is locked"
    conn.exec_driver_sql("BEGIN IMMEDIATE")

def create_engine_for_url(db_url: str, **kwargs) -> AsyncEngine:
    """Creates an async engine, wiring SQLite connections to enforce foreign keys."""
    engine = create_async_engine(db_url, **kwargs)
    if engine.dialect.name == "sqlite":
        event.listen(engine.sync_engine, "connect", _sqlite_on_connect)
        event.listen(engine.sync_engine, "begin", _sqlite_on_begin)
    return engine

def get_async_engine() -> AsyncEngine:
    """Creates the engine if it doesn't exist yet."""
    global _async_engine
    if _async_engine is None:
        # O usuário é responsável por fornecer o driver async correto no .env
        # Ex: "postgresql+asyncpg://...", "sqlite+aiosqlite:///..."
        db_url = settings.DATABASE_URL
        if not db_url:
            raise RuntimeError("DATABASE_URL not loaded from settings. Check .env file and config.py")
        _async_engine = create_engine_for_url(
            db_url,
            pool_pre_ping=True,
            echo=False # Change to True to see SQL logs
        )
    return _async_engine

def make_session_factory(engine: AsyncEngine) -> sessionmaker:
    return sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )

def get_session_local() -> sessionmaker:
    """Creates the session factory if it doesn't exist yet."""
    global _AsyncSessionLocal
    if _AsyncSessionLocal is None:
        _AsyncSessionLocal = make_session_factory(get_async_engine())
    return _AsyncSessionLocal
# --- End Delay ---


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    SessionLocal = get_session_local() # Get or create the session factory
    async with SessionLocal() as db:
        try:
            yield db
        finally:
            await db.close()

async def dispose_engine():
    global _async_engine, _AsyncSessionLocal
    if _async_engine:
        await _async_engine.dispose()
        _async_engine = None
        _AsyncSessionLocal = None

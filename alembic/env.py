# alembic/env.py
import asyncio
import sys
from logging.config import fileConfig
from pathlib import Path

from sqlalchemy import pool
from sqlalchemy.engine import Connection

from alembic import context

# Raiz do projeto no path para encontrar o pacote 'app'
sys.path.append(str(Path(__file__).resolve().parent.parent))

from app.core.config import settings
from app.db.base import Base
from app.db.session import create_engine_for_url
from app.models import user, refresh_session  # noqa: F401

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

# A URL vem sempre do Settings (.env), nunca do alembic.ini.
# Migrações rodam com o mesmo driver async da aplicação.
DATABASE_URL = settings.DATABASE_URL.replace("postgresql+psycopg2", "postgresql+asyncpg")


def _configure(**options) -> None:
    dialect = options.pop("dialect_name")
    context.configure(
        target_metadata=Base.metadata,
        compare_type=True,
        # SQLite não tem ALTER TABLE completo; o Alembic recria a tabela
        render_as_batch=dialect == "sqlite",
        **options,
    )
    with context.begin_transaction():
        context.run_migrations()


def run_offline() -> None:
    """Só gera o SQL (alembic upgrade --sql), sem conectar no banco."""
    _configure(
        url=DATABASE_URL,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        dialect_name=DATABASE_URL.split(":", 1)[0].split("+", 1)[0],
    )


def _run_with_connection(connection: Connection) -> None:
    _configure(connection=connection, dialect_name=connection.dialect.name)


async def run_online() -> None:
    # Mesmo engine da aplicação (listeners de SQLite inclusos), sem pool
    engine = create_engine_for_url(DATABASE_URL, poolclass=pool.NullPool)
    try:
        async with engine.connect() as connection:
            await connection.run_sync(_run_with_connection)
    finally:
        await engine.dispose()


if context.is_offline_mode():
    run_offline()
else:
    asyncio.run(run_online())

# auth_api/app/db/initial_data.py
import asyncio
import logging

# Configuração básica de logging
logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)

from app.db.base import Base
from app.db.session import get_async_engine, dispose_engine

# Importar TODOS os modelos para que Base.metadata os conheça
from app.models import user # noqa F401
from app.models import refresh_session # noqa F401

async def init_db(drop: bool = True) -> None:
    engine = get_async_engine()
    async with engine.begin() as conn:
        if drop:
            logger.info("Removendo todas as tabelas existentes (se houver)...")
            await conn.run_sync(Base.metadata.drop_all)
        logger.info("Criando tabelas: %s", ", ".join(Base.metadata.tables))
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Processo de inicialização do banco de dados concluído.")
    await dispose_engine()

async def main() -> None:
    await init_db()

if __name__ == "__main__":
    try:
        asyncio.run(main())
    except Exception:
        logger.exception("Ocorreu um erro durante a inicialização do banco de dados")
        raise

# auth_api/app/crud/crud_user.py
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from typing import Optional
from app.crud.base import CRUDBase
from app.models.user import User
from app.schemas.user import UserProfile
from app.core.exceptions import ConflictError
from loguru import logger


class CRUDUser(CRUDBase[User]):
    async def get_by_login(self, db: AsyncSession, *, login: str) -> Optional[User]:
        stmt = select(User).filter(User.login == login)
        result = await db.execute(stmt)
        return result.scalars().first()

    async def create(self, db: AsyncSession, *, obj_in: UserProfile, hashed_password: str) -> User:
        """
        Persiste um novo usuário com a senha já transformada em hash.

        Não faz commit: o chamador decide quando a transação termina.
        """
        db_obj = User(
            login=obj_in.login,
            hashed_password=hashed_password,
            first_name=obj_in.first_name,
            last_name=obj_in.last_name,
        )
        db.add(db_obj)
        try:
            await db.flush()
        except IntegrityError:
            # Corrida no login único; o chamador faz o rollback
            logger.warning(f"Registro concorrente para o login '{obj_in.login}'")
            raise ConflictError()
        return db_obj

user = CRUDUser(User)

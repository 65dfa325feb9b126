from sqlalchemy.orm import DeclarativeBase

class Base(DeclarativeBase):
    """
    Classe base declarativa da qual todos os modelos ORM herdarão.
    """
    pass

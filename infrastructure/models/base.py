"""
Declarative base for the order store models (SQLAlchemy 2.0 style)
"""
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    pass


# shared metadata for create_all
metadata = Base.metadata

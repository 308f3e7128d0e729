"""
Declarative base shared by every ORM model of the forum topic service.
"""

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    pass

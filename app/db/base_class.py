# app/db/base_class.py
from sqlalchemy.orm import DeclarativeBase, declared_attr


class Base(DeclarativeBase):
    # Table name defaults to the lowercased class name plus "s" unless set explicitly
    @declared_attr.directive
    def __tablename__(cls) -> str:
        return cls.__name__.lower() + "s"

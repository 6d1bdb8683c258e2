from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.schema import Column
from sqlalchemy.types import JSON, DateTime, String
from datetime import datetime


class Base(DeclarativeBase):
    pass


class RecordTable(Base):
    __tablename__ = "records"
    object_id = Column(String, primary_key=True)
    collection = Column(String, index=True)
    document = Column(JSON, default=dict)
    created_at = Column(DateTime, default=datetime.now)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)


class CredentialTable(Base):
    __tablename__ = "credentials"
    username = Column(String, primary_key=True, index=True)
    user_id = Column(String)
    hash_password = Column(String)
    salt = Column(String)

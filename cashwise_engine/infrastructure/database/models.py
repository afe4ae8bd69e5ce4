"""SQLAlchemy ORM models for the persisted key-value settings store"""

from sqlalchemy import Column, DateTime, JSON, String
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql import func

Base = declarative_base()


class AppSetting(Base):
    """Single persisted setting; value is stored as JSON"""

    __tablename__ = "app_setting"

    key = Column(String(100), primary_key=True)
    value = Column(JSON, nullable=True)
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

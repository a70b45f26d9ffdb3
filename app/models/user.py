from sqlalchemy import Boolean, Column, Integer, String, DateTime
from datetime import datetime
from app.db.base_class import Base


class User(Base):
    """Account credentials checked at login. Profile data lives elsewhere."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(64), unique=True, index=True, nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    password_hash = Column(String(255), nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

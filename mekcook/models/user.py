import uuid
from sqlalchemy import Column, String, DateTime, func
from sqlalchemy.orm import relationship
from mekcook.db.base import Base


class User(Base):
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False, unique=True, index=True)
    hashed_password = Column(String(255), nullable=False)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    recipes = relationship("Recipe", back_populates="user", cascade="all, delete-orphan")

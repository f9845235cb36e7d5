"""
Recipe models.

Recipe: A user's own recipe (ingredients and instructions are free text)
Schedule: A slot in the user's meal plan pointing at one of their recipes
"""
import uuid
from sqlalchemy import Column, String, Text, Time, DateTime, ForeignKey, func, Index
from sqlalchemy.orm import relationship

from mekcook.db.base import Base


class Recipe(Base):
    """
    A recipe owned by a single user.

    Every query goes through ``user_id`` so users never see each
    other's recipes.
    """
    __tablename__ = "recipes"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(String(255), nullable=False)
    ingredients = Column(Text)
    instructions = Column(Text)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)

    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    # Relationships
    user = relationship("User", back_populates="recipes")
    schedules = relationship("Schedule", back_populates="recipe", cascade="all, delete-orphan")

    __table_args__ = (
        Index('idx_recipes_user', 'user_id'),
    )


class Schedule(Base):
    """
    When a recipe is planned: free-form ``day`` and ``type`` labels
    (e.g. "monday" / "dinner") plus a time of day.

    Ownership is derived from the recipe.
    """
    __tablename__ = "schedules"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    type = Column(String(255), nullable=False)
    day = Column(String(255), nullable=False)
    time = Column(Time, nullable=False)
    recipe_id = Column(String(36), ForeignKey("recipes.id", ondelete="CASCADE"), nullable=False)

    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    recipe = relationship("Recipe", back_populates="schedules")

    __table_args__ = (
        Index('idx_schedules_recipe', 'recipe_id'),
    )

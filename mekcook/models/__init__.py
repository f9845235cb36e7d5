"""
SQLAlchemy models for MekCook.
"""
# Core entities
from mekcook.models.user import User

# Recipes & meal planning
from mekcook.models.recipe import Recipe, Schedule

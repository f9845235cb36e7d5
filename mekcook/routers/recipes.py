"""
Recipes router: CRUD over the authenticated user's recipes.
"""
from uuid import UUID

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from mekcook.core.deps import get_current_user
from mekcook.core.exceptions import ModelNotFoundException
from mekcook.core.http import envelope
from mekcook.db.session import get_db
from mekcook.models import Recipe
from mekcook.schemas.auth import UserResponse
from mekcook.schemas.recipe import (
    RecipeCreate,
    RecipeEnvelope,
    RecipeListEnvelope,
    RecipeResponse,
    RecipeUpdate,
)

router = APIRouter(prefix="/recipes", tags=["recipes"])


def get_user_recipe(db: Session, user: UserResponse, recipe_id: str) -> Recipe:
    """Get a recipe owned by ``user``, raise 404 otherwise."""
    recipe = db.query(Recipe).filter(
        Recipe.id == recipe_id,
        Recipe.user_id == user.id,
    ).first()
    if not recipe:
        raise ModelNotFoundException("Recipe", context={"user_id": user.id, "recipe_id": recipe_id})
    return recipe


@router.get("", response_model=RecipeListEnvelope)
def list_recipes(
    db: Session = Depends(get_db),
    current_user: UserResponse = Depends(get_current_user),
):
    recipes = db.query(Recipe).filter(Recipe.user_id == current_user.id).order_by(Recipe.created_at).all()
    return envelope(data=[RecipeResponse.model_validate(r) for r in recipes])


@router.get("/{recipe_id}", response_model=RecipeEnvelope)
def get_recipe(
    recipe_id: UUID,
    db: Session = Depends(get_db),
    current_user: UserResponse = Depends(get_current_user),
):
    recipe = get_user_recipe(db, current_user, str(recipe_id))
    return envelope(data=RecipeResponse.model_validate(recipe))


@router.post("", response_model=RecipeEnvelope, status_code=status.HTTP_201_CREATED)
def create_recipe(
    recipe_data: RecipeCreate,
    db: Session = Depends(get_db),
    current_user: UserResponse = Depends(get_current_user),
):
    recipe = Recipe(
        name=recipe_data.name,
        ingredients=recipe_data.ingredients,
        instructions=recipe_data.instructions,
        user_id=current_user.id,
    )
    db.add(recipe)
    db.commit()
    db.refresh(recipe)

    return envelope(status.HTTP_201_CREATED, data=RecipeResponse.model_validate(recipe))


@router.api_route("/{recipe_id}", methods=["PUT", "PATCH"], response_model=RecipeEnvelope)
def update_recipe(
    recipe_id: UUID,
    recipe_data: RecipeUpdate,
    db: Session = Depends(get_db),
    current_user: UserResponse = Depends(get_current_user),
):
    """Update the given fields; fields left out of the body are kept."""
    recipe = get_user_recipe(db, current_user, str(recipe_id))

    for field, value in recipe_data.model_dump(exclude_unset=True, exclude_none=True).items():
        setattr(recipe, field, value)

    db.commit()
    db.refresh(recipe)

    return envelope(data=RecipeResponse.model_validate(recipe))


@router.delete("/{recipe_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_recipe(
    recipe_id: UUID,
    db: Session = Depends(get_db),
    current_user: UserResponse = Depends(get_current_user),
) -> Response:
    recipe = get_user_recipe(db, current_user, str(recipe_id))
    db.delete(recipe)
    db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)

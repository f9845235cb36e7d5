"""
Schedules router for planning recipes on days/meals.

A schedule has no owner column of its own; every query joins through
``recipes`` so a user only ever sees schedules of their own recipes.
"""
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session, joinedload

from mekcook.core.deps import get_current_user
from mekcook.core.exceptions import ModelNotFoundException
from mekcook.core.http import envelope
from mekcook.db.session import get_db
from mekcook.models import Recipe, Schedule
from mekcook.routers.recipes import get_user_recipe
from mekcook.schemas.auth import UserResponse
from mekcook.schemas.recipe import (
    ScheduleCreate,
    ScheduleEnvelope,
    ScheduleListEnvelope,
    ScheduleResponse,
    ScheduleUpdate,
)

router = APIRouter(prefix="/schedules", tags=["schedules"])


def user_schedules(db: Session, user: UserResponse):
    """Schedules joined to recipes owned by ``user``, recipe eagerly loaded."""
    return (
        db.query(Schedule)
        .join(Recipe, Schedule.recipe_id == Recipe.id)
        .filter(Recipe.user_id == user.id)
        .options(joinedload(Schedule.recipe))
    )


def get_user_schedule(db: Session, user: UserResponse, schedule_id: str) -> Schedule:
    """Get a schedule whose recipe belongs to ``user``, raise 404 otherwise."""
    schedule = user_schedules(db, user).filter(Schedule.id == schedule_id).first()
    if not schedule:
        raise ModelNotFoundException("Schedule", context={"user_id": user.id, "schedule_id": schedule_id})
    return schedule


@router.get("", response_model=ScheduleListEnvelope)
def list_schedules(
    recipe_id: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    current_user: UserResponse = Depends(get_current_user),
):
    query = user_schedules(db, current_user)
    if recipe_id:
        query = query.filter(Schedule.recipe_id == recipe_id)

    schedules = query.order_by(Schedule.created_at).all()
    return envelope(data=[ScheduleResponse.model_validate(s) for s in schedules])


@router.get("/{schedule_id}", response_model=ScheduleEnvelope)
def get_schedule(
    schedule_id: UUID,
    db: Session = Depends(get_db),
    current_user: UserResponse = Depends(get_current_user),
):
    schedule = get_user_schedule(db, current_user, str(schedule_id))
    return envelope(data=ScheduleResponse.model_validate(schedule))


@router.post("", response_model=ScheduleEnvelope, status_code=status.HTTP_201_CREATED)
def create_schedule(
    schedule_data: ScheduleCreate,
    db: Session = Depends(get_db),
    current_user: UserResponse = Depends(get_current_user),
):
    recipe = get_user_recipe(db, current_user, schedule_data.recipe_id)

    schedule = Schedule(
        day=schedule_data.day,
        type=schedule_data.type,
        time=schedule_data.time,
        recipe_id=recipe.id,
    )
    db.add(schedule)
    db.commit()
    db.refresh(schedule)

    return envelope(status.HTTP_201_CREATED, data=ScheduleResponse.model_validate(schedule))


@router.api_route("/{schedule_id}", methods=["PUT", "PATCH"], response_model=ScheduleEnvelope)
def update_schedule(
    schedule_id: UUID,
    schedule_data: ScheduleUpdate,
    db: Session = Depends(get_db),
    current_user: UserResponse = Depends(get_current_user),
):
    schedule = get_user_schedule(db, current_user, str(schedule_id))

    for field, value in schedule_data.model_dump(exclude_unset=True, exclude_none=True).items():
        setattr(schedule, field, value)

    db.commit()
    db.refresh(schedule)

    return envelope(data=ScheduleResponse.model_validate(schedule))


@router.delete("/{schedule_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_schedule(
    schedule_id: UUID,
    db: Session = Depends(get_db),
    current_user: UserResponse = Depends(get_current_user),
) -> Response:
    schedule = get_user_schedule(db, current_user, str(schedule_id))
    db.delete(schedule)
    db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)

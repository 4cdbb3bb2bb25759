"""
api/routes/v1/favorites.py -- Favorite toggle and favorites listing.

Routes:
  PATCH /favoriteCar/{car_id}  -- toggle car_id in the caller's favorites
  GET   /favorites             -- the caller's favorites as full listings

Both routes sit behind the session gate (router-level dependency), so a
rejected session never reaches the handler body. They always act on the
session's own identity; a userId in the PATCH body must match it.
"""

from __future__ import annotations

from typing import Annotated, Optional

from fastapi import APIRouter, Depends, HTTPException, Path, Request

from api.models import (
    MAX_DB_ID,
    CarResponse,
    ErrorDetail,
    FavoritesResponse,
    FavoriteToggleRequest,
    FavoriteToggleResponse,
)
from auth.dependencies import get_current_user
from auth.models import User

router = APIRouter(dependencies=[Depends(get_current_user)])


@router.patch("/favoriteCar/{car_id}", response_model=FavoriteToggleResponse)
def toggle_favorite(
    request: Request,
    car_id: Annotated[int, Path(ge=1, le=MAX_DB_ID)],
    body: Optional[FavoriteToggleRequest] = None,
    current_user: User = Depends(get_current_user),
) -> FavoriteToggleResponse:
    """Add car_id to the caller's favorites if absent, remove it if present."""
    if body is not None and body.user_id is not None and body.user_id != current_user.id:
        raise HTTPException(
            status_code=403,
            detail=ErrorDetail(code="forbidden", message="You can only change your own favorites.").model_dump(),
        )
    favorites = request.app.state.context.favorites.toggle(current_user.id, car_id)
    return FavoriteToggleResponse(message="Car favorited", favorites=favorites)


@router.get("/favorites", response_model=FavoritesResponse)
def list_favorites(request: Request, current_user: User = Depends(get_current_user)) -> FavoritesResponse:
    """Return the caller's favorite listings in the order they were favorited."""
    cars = request.app.state.context.favorites.list_favorites(current_user.id)
    return FavoritesResponse(favorites=[CarResponse.from_car(c) for c in cars])

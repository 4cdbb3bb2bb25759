"""
api/routes/v1/cars.py -- Listing browse, search, and create routes.

Routes (in registration order to avoid path capture conflicts):
  GET  /cars            -- all listings
  GET  /carsByMake      -- case-insensitive exact match on make
  GET  /cars/{car_id}   -- one listing
  POST /sellACar        -- create a listing with up to N images (requires auth)

File uploads:
  /sellACar accepts multipart/form-data. Every part named "images" must be a
  JPEG, PNG, GIF or WebP image; each is capped at MAX_UPLOAD_BYTES. All files
  are checked before any is written, and written files are removed again if
  a later write or the insert fails.
"""

from __future__ import annotations

import logging
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Path, Request
from pydantic import ValidationError
from starlette.datastructures import UploadFile

from api.models import MAX_DB_ID, CarCreate, CarCreatedResponse, CarDetailResponse, CarListResponse, CarResponse
from auth.dependencies import get_current_user
from auth.models import User
from core.errors import NotFoundError, ValidationFailure
from listings.models import Car

logger = logging.getLogger("carmarket.api")

# Auth policy:
# - GET  /cars, /carsByMake, /cars/{id}: public
# - POST /sellACar:                      requires a valid session
router = APIRouter()

CarId = Annotated[int, Path(ge=1, le=MAX_DB_ID)]


@router.get("/cars", response_model=CarListResponse)
def list_cars(request: Request) -> CarListResponse:
    cars = request.app.state.context.cars.list_cars()
    return CarListResponse(cars=[CarResponse.from_car(c) for c in cars])


@router.get("/carsByMake", response_model=CarListResponse)
def cars_by_make(request: Request, make: Optional[str] = None) -> CarListResponse:
    """Return listings whose make matches exactly, ignoring case."""
    if not make or not make.strip():
        raise ValidationFailure("Please type a make.", field="make")
    cars = request.app.state.context.cars.find_by_make(make)
    if not cars:
        return CarListResponse(message="No cars with this make!", cars=[])
    return CarListResponse(message="Make found", cars=[CarResponse.from_car(c) for c in cars])


@router.get("/cars/{car_id}", response_model=CarDetailResponse)
def get_car(request: Request, car_id: CarId) -> CarDetailResponse:
    car = request.app.state.context.cars.get_car(car_id)
    if car is None:
        raise NotFoundError("Car not found")
    return CarDetailResponse(car=CarResponse.from_car(car))


@router.post("/sellACar", response_model=CarCreatedResponse, status_code=201)
async def sell_a_car(request: Request, current_user: User = Depends(get_current_user)) -> CarCreatedResponse:
    """Create a listing from a multipart form of listing fields plus "images" files."""
    context = request.app.state.context
    form = await request.form()

    raw = {k: v for k, v in form.items() if isinstance(v, str) and v.strip() != ""}
    try:
        fields = CarCreate.model_validate(raw)
    except ValidationError as exc:
        raise ValidationFailure(_summarize(exc)) from exc

    uploads = [f for f in form.getlist("images") if isinstance(f, UploadFile)]
    if len(uploads) > context.settings.max_images_per_listing:
        raise ValidationFailure(
            f"At most {context.settings.max_images_per_listing} images per listing.",
            field="images",
        )

    pending: list[tuple[Optional[str], bytes]] = []
    for upload in uploads:
        data = await upload.read(context.images.max_bytes + 1)
        context.images.check(upload.content_type, len(data))
        pending.append((upload.content_type, data))

    # Files written so far are removed again if a later save or the insert fails.
    stored: list[str] = []
    try:
        for content_type, data in pending:
            stored.append(context.images.save(content_type, data))
        car_id = context.cars.create_car(
            Car(
                make=fields.make,
                model=fields.model,
                year=fields.year,
                color=fields.color,
                price=fields.price,
                miles=fields.miles,
                fueltype=fields.fueltype,
                gearbox=fields.gearbox,
                city=fields.city,
                armored=fields.armored,
                car_owner_email=fields.car_owner_email,
                images=stored,
            )
        )
    except Exception:
        context.images.discard(stored)
        raise

    logger.info("User %s listed car id=%s with %d image(s)", current_user.id, car_id, len(stored))
    return CarCreatedResponse(message="Ad created", car=CarResponse.from_car(context.cars.get_car(car_id)))


def _summarize(exc: ValidationError) -> str:
    """Turn Pydantic errors into one user-facing line without internal structure."""
    parts = []
    for err in exc.errors():
        field = ".".join(str(p) for p in err.get("loc", ()))
        parts.append(f"{field}: {err.get('msg', 'invalid value')}")
    return "; ".join(parts)

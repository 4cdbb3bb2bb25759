"""
API request and response models for the CarMarket REST endpoints.

These Pydantic v2 models define the HTTP transport contract. They are kept
separate from the dataclasses in auth/models.py and listings/models.py, which
own the internal domain representation; route handlers map between the two.

Wire names are camelCase (passwordConfirm, carOwnerEmail, userId) to match
the existing frontend, declared as aliases so Python code stays snake_case.
No identity response model has a password field.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from auth.models import User
from listings.models import Car

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"

# Largest id a signed 64-bit INTEGER column can hold; path ids above it never
# reach the database.
MAX_DB_ID = 2**63 - 1


# ---------------------------------------------------------------------------
# Shared envelopes
# ---------------------------------------------------------------------------


class ErrorDetail(BaseModel):
    """Machine-readable error payload."""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    detail: Optional[str] = None


class ErrorResponse(BaseModel):
    """Top-level error envelope returned on 4xx/5xx responses."""

    model_config = ConfigDict(frozen=True)

    error: ErrorDetail


class MessageResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    message: str


class HealthResponse(BaseModel):
    """Response for GET /health."""

    model_config = ConfigDict(frozen=True)

    status: str = "healthy"
    version: str
    components: dict[str, str] = Field(default_factory=dict)


# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------


class SignupRequest(BaseModel):
    """Body for POST /signup.

    Field-level rules only. password/passwordConfirm equality is checked by
    auth.validation.check_password_confirmation() in the route.
    """

    model_config = ConfigDict(str_strip_whitespace=True, populate_by_name=True)

    name: str = Field(min_length=2, max_length=20)
    email: str = Field(max_length=254, pattern=EMAIL_PATTERN)
    password: str = Field(min_length=1, max_length=255)
    password_confirm: Optional[str] = Field(default=None, alias="passwordConfirm", max_length=255)

    @field_validator("email")
    @classmethod
    def lowercase_email(cls, value: str) -> str:
        return value.lower()


class LoginRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    email: str = Field(min_length=1, max_length=254)
    password: str = Field(min_length=1, max_length=255)


class UserResponse(BaseModel):
    """Public view of an identity. Never carries the credential."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: int
    name: str
    email: str
    favorites: list[int]
    created_at: str = Field(alias="createdAt")

    @classmethod
    def from_user(cls, user: User) -> "UserResponse":
        return cls(
            id=user.id,
            name=user.name,
            email=user.email,
            favorites=list(user.favorites),
            created_at=user.created_at,
        )


class SignupResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: str
    new_user: UserResponse = Field(alias="newUser")


class CurrentUserResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    current_user: UserResponse = Field(alias="currentUser")


# ---------------------------------------------------------------------------
# Listings
# ---------------------------------------------------------------------------


class CarCreate(BaseModel):
    """Listing fields submitted with POST /sellACar (multipart form)."""

    model_config = ConfigDict(str_strip_whitespace=True, populate_by_name=True)

    model: str = Field(min_length=2, max_length=40)
    make: str = Field(min_length=2, max_length=15)
    year: int = Field(ge=1000, le=9999)
    color: str = Field(min_length=2, max_length=15)
    price: float = Field(ge=0)
    miles: Optional[int] = Field(default=None, ge=0)
    fueltype: Optional[str] = Field(default=None, max_length=30)
    gearbox: Optional[str] = Field(default=None, max_length=30)
    city: Optional[str] = Field(default=None, max_length=60)
    armored: bool = False
    car_owner_email: Optional[str] = Field(default=None, alias="carOwnerEmail", max_length=254)


class CarResponse(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: int
    make: str
    model: str
    year: int
    color: str
    price: float
    miles: Optional[int] = None
    fueltype: Optional[str] = None
    gearbox: Optional[str] = None
    city: Optional[str] = None
    armored: bool = False
    car_owner_email: Optional[str] = Field(default=None, alias="carOwnerEmail")
    images: list[str] = Field(default_factory=list)
    created_at: str = Field(default="", alias="createdAt")

    @classmethod
    def from_car(cls, car: Car) -> "CarResponse":
        return cls(
            id=car.id,
            make=car.make,
            model=car.model,
            year=car.year,
            color=car.color,
            price=car.price,
            miles=car.miles,
            fueltype=car.fueltype,
            gearbox=car.gearbox,
            city=car.city,
            armored=car.armored,
            car_owner_email=car.car_owner_email,
            images=list(car.images),
            created_at=car.created_at,
        )


class CarListResponse(BaseModel):
    message: Optional[str] = None
    cars: list[CarResponse]


class CarDetailResponse(BaseModel):
    car: CarResponse


class CarCreatedResponse(BaseModel):
    message: str
    car: CarResponse


# ---------------------------------------------------------------------------
# Favorites
# ---------------------------------------------------------------------------


class FavoriteToggleRequest(BaseModel):
    """Optional body for PATCH /favoriteCar/{carId}. userId, when sent, must be the caller's id."""

    model_config = ConfigDict(populate_by_name=True)

    user_id: Optional[int] = Field(default=None, alias="userId")


class FavoriteToggleResponse(BaseModel):
    message: str
    favorites: list[int]


class FavoritesResponse(BaseModel):
    favorites: list[CarResponse]


# ---------------------------------------------------------------------------
# Inquiries
# ---------------------------------------------------------------------------


class EmailRequest(BaseModel):
    """Body for POST /sendEmail. Every field except subject is required and non-empty."""

    model_config = ConfigDict(str_strip_whitespace=True, populate_by_name=True)

    name: str = Field(min_length=1, max_length=100)
    email: str = Field(max_length=254, pattern=EMAIL_PATTERN)
    number: str = Field(min_length=1, max_length=40)
    message: str = Field(min_length=1, max_length=5000)
    car_owner_email: str = Field(alias="carOwnerEmail", max_length=254, pattern=EMAIL_PATTERN)
    subject: str = Field(default="car", max_length=200)

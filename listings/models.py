"""
listings/models.py -- Domain dataclass for a car listing.

Pure data container with zero logic. Queries live in listings/store.py,
image file handling in listings/images.py.
"""

from dataclasses import dataclass, field
from typing import Optional


@dataclass
class Car:
    """A vehicle offered for sale.

    images holds stored file names (not paths), in upload order. Listings
    are immutable once created; users reference them by id from their
    favorites but never own them.

    id is None before the record is written to the database.
    """

    make: str
    model: str
    year: int
    color: str
    price: float
    id: Optional[int] = None
    miles: Optional[int] = None
    fueltype: Optional[str] = None
    gearbox: Optional[str] = None
    city: Optional[str] = None
    armored: bool = False
    car_owner_email: Optional[str] = None
    images: list[str] = field(default_factory=list)
    created_at: str = ""  # ISO 8601, set by store on insert

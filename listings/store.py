"""
listings/store.py -- SQLAlchemy-backed persistence and queries for car listings.

Uses SQLAlchemy Core (not ORM) so the Car dataclass in listings/models.py
remains the authoritative domain representation. Swapping SQLite for
PostgreSQL is a connection string change.

Pattern: Repository + Data Mapper. CarStore is the repository; _row_to_car
is the mapper. Route handlers never touch SQL directly.

Security: all queries use bound parameters. No f-strings in SQL.

Usage:
    store = CarStore("sqlite:///carmarket.db")
    car_id = store.create_car(Car(make="Volvo", model="V70", year=2004, color="blue", price=3500))
    store.find_by_make("volvo")
    store.get_many([car_id, 999])   # -> {car_id: Car}
    store.close()
"""

import json
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import Boolean, Column, Float, Integer, MetaData, String, Table, Text, func

from core.db import make_engine, storage_errors
from listings.models import Car

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

metadata = MetaData()

_cars = Table(
    "cars",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("make", String(15), nullable=False),
    Column("model", String(40), nullable=False),
    Column("year", Integer, nullable=False),
    Column("color", String(15), nullable=False),
    Column("miles", Integer),
    Column("fueltype", String(30)),
    Column("gearbox", String(30)),
    Column("city", String(60)),
    Column("price", Float, nullable=False),
    Column("armored", Boolean, nullable=False, server_default="0"),
    Column("car_owner_email", String(254)),
    Column("images", Text),  # JSON array of stored file names
    Column("created_at", String(32), nullable=False),
)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class CarStore:
    """Repository for Car listings, including the make filter used by search."""

    def __init__(self, db_url: str) -> None:
        self.engine = make_engine(db_url)
        with storage_errors("schema creation"):
            metadata.create_all(self.engine)

    def create_car(self, car: Car) -> int:
        """Insert a listing and return its id."""
        with storage_errors("create_car"), self.engine.begin() as conn:
            result = conn.execute(
                _cars.insert().values(
                    make=car.make,
                    model=car.model,
                    year=car.year,
                    color=car.color,
                    miles=car.miles,
                    fueltype=car.fueltype,
                    gearbox=car.gearbox,
                    city=car.city,
                    price=car.price,
                    armored=car.armored,
                    car_owner_email=car.car_owner_email,
                    images=json.dumps(car.images),
                    created_at=_now_iso(),
                )
            )
            return result.inserted_primary_key[0]

    def get_car(self, car_id: int) -> Optional[Car]:
        with storage_errors("get_car"), self.engine.connect() as conn:
            row = conn.execute(_cars.select().where(_cars.c.id == car_id)).fetchone()
        return _row_to_car(row) if row is not None else None

    def get_many(self, car_ids: list[int]) -> dict[int, Car]:
        """Return the listings that still exist among car_ids, keyed by id.

        Missing ids are simply absent from the result; callers decide the
        order and whether a gap matters.
        """
        if not car_ids:
            return {}
        with storage_errors("get_many"), self.engine.connect() as conn:
            rows = conn.execute(_cars.select().where(_cars.c.id.in_(car_ids))).fetchall()
        return {r.id: _row_to_car(r) for r in rows}

    def list_cars(self) -> list[Car]:
        """Return every listing, oldest first."""
        with storage_errors("list_cars"), self.engine.connect() as conn:
            rows = conn.execute(_cars.select().order_by(_cars.c.id)).fetchall()
        return [_row_to_car(r) for r in rows]

    def find_by_make(self, make: str) -> list[Car]:
        """Return listings whose make equals make, ignoring case."""
        with storage_errors("find_by_make"), self.engine.connect() as conn:
            rows = conn.execute(
                _cars.select().where(func.lower(_cars.c.make) == make.strip().lower()).order_by(_cars.c.id)
            ).fetchall()
        return [_row_to_car(r) for r in rows]

    def delete_car(self, car_id: int) -> bool:
        """Delete a listing. Favorites that pointed at it are left to be skipped on read."""
        with storage_errors("delete_car"), self.engine.begin() as conn:
            result = conn.execute(_cars.delete().where(_cars.c.id == car_id))
        return result.rowcount > 0

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mappers
# ---------------------------------------------------------------------------


def _row_to_car(row) -> Car:
    return Car(
        id=row.id,
        make=row.make,
        model=row.model,
        year=row.year,
        color=row.color,
        miles=row.miles,
        fueltype=row.fueltype,
        gearbox=row.gearbox,
        city=row.city,
        price=row.price,
        armored=bool(row.armored),
        car_owner_email=row.car_owner_email,
        images=json.loads(row.images) if row.images else [],
        created_at=row.created_at,
    )

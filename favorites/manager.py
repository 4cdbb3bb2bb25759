"""
favorites/manager.py -- Toggle and expand a user's favorite listings.

There is one write entry point, toggle(). Callers never say "add" or
"remove"; current membership decides. Persistence is a single-row change
inside one transaction (see UserStore.toggle_favorite), never a rewrite of
the whole set, so concurrent toggles by the same user on different listings
are all kept.

list_favorites() joins the stored ids against the listing store. Listings
deleted after being favorited are dropped from the result instead of failing
the request.
"""

from __future__ import annotations

import logging

from auth.store import UserStore
from core.errors import NotFoundError
from listings.models import Car
from listings.store import CarStore

logger = logging.getLogger("carmarket.favorites")


class FavoriteToggleManager:
    """Owns the user <-> listing favorite relation."""

    def __init__(self, users: UserStore, cars: CarStore) -> None:
        self._users = users
        self._cars = cars

    def toggle(self, user_id: int, car_id: int) -> list[int]:
        """Flip car_id in the user's favorites and return the updated ids.

        The result is duplicate-free and in favoriting order.
        Raises NotFoundError if the user does not exist and StorageError if
        the write fails (in which case nothing was changed).
        """
        favorites = self._users.toggle_favorite(user_id, car_id)
        if favorites is None:
            raise NotFoundError("User not found")
        logger.info(
            "User %s %s car %s (%d favorites)",
            user_id,
            "favorited" if car_id in favorites else "unfavorited",
            car_id,
            len(favorites),
        )
        return favorites

    def list_favorites(self, user_id: int) -> list[Car]:
        """Return the user's favorite listings as full records, in favoriting order."""
        if self._users.get_by_id(user_id) is None:
            raise NotFoundError("User not found")
        ids = self._users.get_favorite_ids(user_id)
        found = self._cars.get_many(ids)
        missing = len(ids) - len(found)
        if missing:
            logger.debug("Skipping %d deleted listing(s) in favorites of user %s", missing, user_id)
        return [found[car_id] for car_id in ids if car_id in found]

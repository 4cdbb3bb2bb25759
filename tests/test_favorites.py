"""
tests/test_favorites.py -- Unit tests for favorites/manager.py.

Covers:
  - toggle from empty, back to empty, and with a second listing
  - toggling the same id twice restores any starting set
  - unknown user -> NotFoundError; storage failure -> StorageError, no change
  - list_favorites() expands ids in favoriting order and skips deleted listings
  - concurrent toggles of distinct listings for one user are all kept
"""

from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor
from unittest.mock import MagicMock

import pytest

from auth.models import User
from core.errors import NotFoundError, StorageError
from favorites.manager import FavoriteToggleManager
from listings.models import Car


def _new_car(context, make="Volvo") -> int:
    return context.cars.create_car(Car(make=make, model="Model", year=2010, color="red", price=1000.0))


class TestToggle:
    def test_empty_to_one(self, context, user):
        assert context.favorites.toggle(user.id, 1) == [1]

    def test_one_back_to_empty(self, context, user):
        context.favorites.toggle(user.id, 1)
        assert context.favorites.toggle(user.id, 1) == []

    def test_second_listing_is_added(self, context, user):
        context.favorites.toggle(user.id, 1)
        assert set(context.favorites.toggle(user.id, 2)) == {1, 2}

    @pytest.mark.parametrize(
        ("start", "target"),
        [((), 1), ((1,), 1), ((1, 2, 3), 2), ((1, 2, 3), 4), ((7,), 8)],
    )
    def test_double_toggle_restores_start(self, context, user, start, target):
        for car_id in start:
            context.favorites.toggle(user.id, car_id)
        before = set(context.users.get_favorite_ids(user.id))
        context.favorites.toggle(user.id, target)
        after = context.favorites.toggle(user.id, target)
        assert set(after) == before

    def test_result_has_no_duplicates(self, context, user):
        for car_id in (1, 2, 1, 1, 3):
            result = context.favorites.toggle(user.id, car_id)
        assert sorted(result) == sorted(set(result))

    def test_unknown_user(self, context):
        with pytest.raises(NotFoundError):
            context.favorites.toggle(12345, 1)

    def test_storage_failure_propagates(self):
        users = MagicMock()
        users.toggle_favorite.side_effect = StorageError("A storage error occurred.")
        manager = FavoriteToggleManager(users, MagicMock())
        with pytest.raises(StorageError):
            manager.toggle(1, 1)


class TestListFavorites:
    def test_expands_in_favoriting_order(self, context, user):
        first, second = _new_car(context, "Saab"), _new_car(context, "Audi")
        context.favorites.toggle(user.id, second)
        context.favorites.toggle(user.id, first)
        cars = context.favorites.list_favorites(user.id)
        assert [c.id for c in cars] == [second, first]
        assert cars[0].make == "Audi"

    def test_deleted_listing_is_skipped(self, context, user):
        keep, gone = _new_car(context), _new_car(context)
        context.favorites.toggle(user.id, keep)
        context.favorites.toggle(user.id, gone)
        context.cars.delete_car(gone)
        assert [c.id for c in context.favorites.list_favorites(user.id)] == [keep]

    def test_empty(self, context, user):
        assert context.favorites.list_favorites(user.id) == []

    def test_unknown_user(self, context):
        with pytest.raises(NotFoundError):
            context.favorites.list_favorites(12345)


class TestConcurrency:
    def test_concurrent_distinct_toggles_are_all_kept(self, context, user):
        """Many threads add different listings to one user at once; none is lost."""
        car_ids = list(range(100, 124))
        barrier = threading.Barrier(8)

        def add(car_id: int) -> None:
            try:
                barrier.wait(timeout=5)
            except threading.BrokenBarrierError:
                pass
            context.favorites.toggle(user.id, car_id)

        with ThreadPoolExecutor(max_workers=8) as pool:
            list(pool.map(add, car_ids))

        assert set(context.users.get_favorite_ids(user.id)) == set(car_ids)

    def test_concurrent_toggles_on_other_users_do_not_interfere(self, context, user):
        other_id = context.users.create_user(User(name="bob", email="b@x.com", hashed_password="x"))

        def work(args):
            uid, car_id = args
            context.favorites.toggle(uid, car_id)

        jobs = [(user.id, n) for n in range(10)] + [(other_id, n) for n in range(10, 20)]
        with ThreadPoolExecutor(max_workers=6) as pool:
            list(pool.map(work, jobs))

        assert set(context.users.get_favorite_ids(user.id)) == set(range(10))
        assert set(context.users.get_favorite_ids(other_id)) == set(range(10, 20))

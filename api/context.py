"""
api/context.py -- The application context built once at startup.

Replaces module-level singletons: every store and service the routes need
hangs off one AppContext, stored on app.state.context by the lifespan in
api/main.py and closed on shutdown. Tests build their own AppContext over
an isolated database and inject it the same way.
"""

from __future__ import annotations

from dataclasses import dataclass

from auth.store import UserStore
from core.config import Settings
from favorites.manager import FavoriteToggleManager
from listings.images import ImageStore
from listings.store import CarStore
from notify.mailer import Mailer


@dataclass
class AppContext:
    settings: Settings
    users: UserStore
    cars: CarStore
    favorites: FavoriteToggleManager
    images: ImageStore
    mailer: Mailer

    @classmethod
    def build(cls, settings: Settings) -> "AppContext":
        """Open stores against settings.database_url and wire the services together."""
        users = UserStore(settings.database_url)
        cars = CarStore(settings.database_url)
        return cls(
            settings=settings,
            users=users,
            cars=cars,
            favorites=FavoriteToggleManager(users, cars),
            images=ImageStore(settings.upload_dir, settings.max_upload_bytes),
            mailer=Mailer(
                host=settings.smtp_host,
                port=settings.smtp_port,
                username=settings.smtp_username,
                password=settings.smtp_password,
                use_tls=settings.smtp_use_tls,
                sender=settings.mail_sender,
            ),
        )

    def close(self) -> None:
        self.users.close()
        self.cars.close()

"""
core/config.py -- CarMarket settings, read from the environment and .env.

Every environment read goes through get_settings(); nothing else in the tree
touches os.environ. Field names map to upper-case variables (upload_dir ->
UPLOAD_DIR, smtp_host -> SMTP_HOST). List fields take JSON, e.g.
ALLOWED_HOSTS='["cars.example.com"]'.

get_settings() is cached, so the process sees one Settings instance. The
lifespan in api/main.py hands that instance to AppContext.build(); tests
build their own copy with model_copy(update=...).

SECRET_KEY signs session tokens (HS256). It is checked when Settings is
built, which makes a missing or short key a startup failure.

Layer rule: core/ is the kernel. This module may not import from api/,
auth/, listings/, favorites/, or notify/.
"""

import logging
import secrets
from functools import lru_cache

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("carmarket.config")

_SEVEN_DAYS = 7 * 24 * 60 * 60


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file.

    All fields have defaults so Settings() can be instantiated in test
    environments without a real .env file. The model_validator enforces
    the SECRET_KEY rules at startup.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ------------------------------------------------------------------
    # Core
    # ------------------------------------------------------------------

    debug: bool = False
    # Empty string means "not configured"; the validator either generates a
    # dev key or raises, so callers never see "".
    secret_key: str = ""
    database_url: str = "sqlite:///carmarket.db"

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    token_expire_seconds: int = _SEVEN_DAYS
    session_cookie_name: str = "jwt"
    session_max_age_seconds: int = _SEVEN_DAYS
    secure_cookies: bool = False
    login_rate_limit: str = "10/minute"

    # ------------------------------------------------------------------
    # Listings
    # ------------------------------------------------------------------

    upload_dir: str = "public/images"
    max_upload_bytes: int = 5 * 1024 * 1024
    max_images_per_listing: int = 3

    # ------------------------------------------------------------------
    # Outbound mail (empty smtp_host disables delivery)
    # ------------------------------------------------------------------

    smtp_host: str = ""
    smtp_port: int = 587
    smtp_username: str = ""
    smtp_password: str = ""
    smtp_use_tls: bool = True
    mail_sender: str = ""

    # ------------------------------------------------------------------
    # HTTP
    # ------------------------------------------------------------------

    allowed_hosts: list[str] = ["localhost", "127.0.0.1", "testserver"]
    cors_origins: list[str] = ["http://localhost:3000"]

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @model_validator(mode="after")
    def validate_secret_key(self) -> "Settings":
        """Check the session signing key before the app serves anything.

        With DEBUG on, a missing key is replaced by a random one, so every
        restart logs all users out. Without DEBUG a missing key is fatal.
        A key under 32 characters is fatal either way.
        """
        if not self.secret_key and self.debug:
            self.secret_key = secrets.token_hex(32)
            logger.warning("SECRET_KEY not set; generated a throwaway key. Sessions end on restart.")
        elif not self.secret_key:
            raise ValueError(
                "SECRET_KEY is required in production mode: session cookies are signed with it. "
                "Set SECRET_KEY in the environment or .env, or set DEBUG=true for local development."
            )
        if len(self.secret_key) < 32:
            raise ValueError("SECRET_KEY must be at least 32 characters.")
        return self


@lru_cache
def get_settings() -> Settings:
    """Build Settings once per process.

    Tests that change the environment call get_settings.cache_clear() first.
    """
    return Settings()

"""
auth/models.py -- Domain dataclass for identities.

Pattern: Data class (pure data container, zero logic). Stores and routes do
the work; the API layer decides which fields leave the process.

Layer rule: no imports from api/, listings/, favorites/, or notify/.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class User:
    """A registered marketplace user.

    hashed_password is the bcrypt hash of the credential. It is loaded so
    login can verify it, and it is never copied into any API response model.

    favorites holds listing ids in the order they were favorited. The store
    fills it from the user_favorites join table; it is never written back
    as a whole.
    """

    name: str
    email: str  # always lowercase
    hashed_password: str
    id: int | None = None
    favorites: list[int] = field(default_factory=list)
    created_at: str = ""  # ISO 8601, set by store on insert
